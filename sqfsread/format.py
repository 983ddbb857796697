"""On-disk structures of the squashfs 4.0 format and helpers to decode them."""

from __future__ import annotations

import stat as _stat
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Type, TypeVar

MAGIC = 0x73717368
MAGIC_SWAP = 0x68737173

MAJOR = 4
MINOR = 0
START = 0

METADATA_SIZE = 8192
METADATA_LOG = 13

FILE_SIZE = 131072
FILE_LOG = 17

FILE_MAX_SIZE = 1048576
FILE_MAX_LOG = 20

IDS = 65536
NAME_LEN = 256

INVALID_FRAG = 0xFFFFFFFF
INVALID_XATTR = 0xFFFFFFFF
INVALID_BLK = 0xFFFFFFFFFFFFFFFF

# Bit positions in SuperBlock.flags
FLAG_NOI = 0
FLAG_NOD = 1
FLAG_NOF = 3
FLAG_NO_FRAG = 4
FLAG_ALWAYS_FRAG = 5
FLAG_DUPLICATE = 6
FLAG_EXPORT = 7
FLAG_COMP_OPT = 10

XATTR_USER = 0
XATTR_TRUSTED = 1
XATTR_SECURITY = 2
XATTR_VALUE_OOL = 256
XATTR_PREFIX_MASK = 0xFF

COMPRESSED_BIT = 1 << 15
COMPRESSED_BIT_BLOCK = 1 << 24

CACHED_BLKS = 8

MAX_FILE_SIZE_LOG = 64
MAX_FILE_SIZE = 1 << (MAX_FILE_SIZE_LOG - 2)

META_INDEXES = METADATA_SIZE // 4
META_ENTRIES = 127
META_SLOTS = 8


class SquashfsError(Exception):
    """Raised when on-disk data cannot be decoded."""


class Compression(IntEnum):
    ZLIB = 1
    LZMA = 2
    LZO = 3
    XZ = 4
    LZ4 = 5
    ZSTD = 6


class InodeType(IntEnum):
    DIR = 1
    REG = 2
    SYMLINK = 3
    BLKDEV = 4
    CHRDEV = 5
    FIFO = 6
    SOCKET = 7
    LDIR = 8
    LREG = 9
    LSYMLINK = 10
    LBLKDEV = 11
    LCHRDEV = 12
    LFIFO = 13
    LSOCKET = 14


class _Record:
    _LAYOUT: ClassVar[struct.Struct]


R = TypeVar("R", bound=_Record)


@dataclass(frozen=True)
class SuperBlock(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IIIIIHHHHHHQQQQQQQQ")

    s_magic: int
    inodes: int
    mkfs_time: int
    block_size: int
    fragments: int
    compression: int
    block_log: int
    flags: int
    no_ids: int
    s_major: int
    s_minor: int
    root_inode: int
    bytes_used: int
    id_table_start: int
    xattr_id_table_start: int
    inode_table_start: int
    directory_table_start: int
    fragment_table_start: int
    lookup_table_start: int

    def has_flag(self, bit: int) -> bool:
        """Whether the filesystem flag at bit position ``bit`` is set."""
        return bool(self.flags & (1 << bit))


@dataclass(frozen=True)
class DirIndex(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    index: int
    start_block: int
    size: int


@dataclass(frozen=True)
class DirHeader(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    count: int
    start_block: int
    inode_number: int


@dataclass(frozen=True)
class DirEntry(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HHHH")

    offset: int
    inode_number: int
    type: int
    size: int


@dataclass(frozen=True)
class FragmentEntry(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<QII")

    start_block: int
    size: int
    unused: int


@dataclass(frozen=True)
class XattrEntry(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HH")

    type: int
    size: int


@dataclass(frozen=True)
class XattrVal(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<I")

    vsize: int


@dataclass(frozen=True)
class XattrId(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<QII")

    xattr: int
    count: int
    size: int


@dataclass(frozen=True)
class XattrIdTable(_Record):
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<QII")

    xattr_table_start: int
    xattr_ids: int
    unused: int


def _layout_of(record_type: type) -> struct.Struct:
    layout = getattr(record_type, "_LAYOUT", None)
    if not isinstance(layout, struct.Struct):
        raise TypeError(f"{record_type!r} is not an on-disk record type")
    return layout


def record_size(record_type: type) -> int:
    """Size in bytes of a record type on disk."""
    return _layout_of(record_type).size


def unpack(record_type: Type[R], data: bytes, offset: int = 0) -> R:
    """Decode one little-endian record of ``record_type`` from ``data``."""
    layout = _layout_of(record_type)
    if offset < 0 or len(data) - offset < layout.size:
        raise SquashfsError(
            f"need {layout.size} bytes for {record_type.__name__}, "
            f"have {max(len(data) - offset, 0)}"
        )
    return record_type(*layout.unpack_from(data, offset))


def read_le(data: bytes, width: int) -> int:
    """Read an unsigned little-endian integer of ``width`` bits (16, 32 or 64)."""
    if width not in (16, 32, 64):
        raise ValueError(f"unsupported integer width: {width}")
    nbytes = width // 8
    if len(data) < nbytes:
        raise SquashfsError(f"need {nbytes} bytes, have {len(data)}")
    return int.from_bytes(data[:nbytes], "little")


def swap16(value: int) -> int:
    """Exchange the two bytes of a 16-bit value."""
    return ((value >> 8) + (value << 8)) & 0xFFFF


def file_mode(inode_type: int) -> int:
    """The S_IF* file-type bits for an inode type, or 0 if unknown."""
    return _MODES.get(inode_type, 0)


_MODES = {
    InodeType.DIR: _stat.S_IFDIR,
    InodeType.LDIR: _stat.S_IFDIR,
    InodeType.REG: _stat.S_IFREG,
    InodeType.LREG: _stat.S_IFREG,
    InodeType.SYMLINK: _stat.S_IFLNK,
    InodeType.LSYMLINK: _stat.S_IFLNK,
    InodeType.BLKDEV: _stat.S_IFBLK,
    InodeType.LBLKDEV: _stat.S_IFBLK,
    InodeType.CHRDEV: _stat.S_IFCHR,
    InodeType.LCHRDEV: _stat.S_IFCHR,
    InodeType.FIFO: _stat.S_IFIFO,
    InodeType.LFIFO: _stat.S_IFIFO,
    InodeType.SOCKET: _stat.S_IFSOCK,
    InodeType.LSOCKET: _stat.S_IFSOCK,
}


def makedev(major: int, minor: int) -> int:
    """Combine major and minor numbers into a device number."""
    return (
        ((major & 0xFFFFF000) << 32)
        | ((major & 0xFFF) << 8)
        | ((minor & 0xFFFFFF00) << 12)
        | (minor & 0xFF)
    )


@dataclass(frozen=True)
class Inode:
    """The fixed-size part of a decoded inode."""

    inode_type: InodeType
    mode: int
    uid: int
    guid: int
    mtime: int
    inode_number: int
    nlink: int = 1
    xattr: int = INVALID_XATTR
    file_size: int = 0
    start_block: int = 0
    fragment: int = INVALID_FRAG
    offset: int = 0
    sparse: int = 0
    parent_inode: int = 0
    dir_index_count: int = 0
    rdev: int = 0
    symlink_size: int = 0

    @property
    def major(self) -> int:
        return (self.rdev >> 8) & 0xFFF

    @property
    def minor(self) -> int:
        return (self.rdev & 0xFF) | ((self.rdev >> 12) & 0xFFF00)


_BASE = struct.Struct("<HHHHII")
_DIR = struct.Struct("<IIHHI")
_LDIR = struct.Struct("<IIIIHHI")
_REG = struct.Struct("<IIII")
_LREG = struct.Struct("<QQQIIII")
_SYMLINK = struct.Struct("<II")
_DEV = struct.Struct("<II")
_LDEV = struct.Struct("<III")
_IPC = struct.Struct("<I")
_LIPC = struct.Struct("<II")
_U32 = struct.Struct("<I")


def _extra(layout: struct.Struct, data: bytes, offset: int = _BASE.size) -> tuple:
    if len(data) - offset < layout.size:
        raise SquashfsError(
            f"inode truncated: need {offset + layout.size} bytes, have {len(data)}"
        )
    return layout.unpack_from(data, offset)


def decode_inode(data: bytes) -> Inode:
    """Decode an inode record, including its type-specific fields."""
    if len(data) < _BASE.size:
        raise SquashfsError(f"inode truncated: have {len(data)} bytes")
    raw_type, mode, uid, guid, mtime, number = _BASE.unpack_from(data)
    try:
        itype = InodeType(raw_type)
    except ValueError:
        raise SquashfsError(f"unknown inode type {raw_type}") from None

    common = dict(
        inode_type=itype,
        mode=mode | file_mode(itype),
        uid=uid,
        guid=guid,
        mtime=mtime,
        inode_number=number,
    )

    if itype is InodeType.DIR:
        start, nlink, size, offset, parent = _extra(_DIR, data)
        return Inode(**common, nlink=nlink, file_size=size, start_block=start,
                     offset=offset, parent_inode=parent)
    if itype is InodeType.LDIR:
        nlink, size, start, parent, count, offset, xattr = _extra(_LDIR, data)
        return Inode(**common, nlink=nlink, file_size=size, start_block=start,
                     offset=offset, parent_inode=parent, dir_index_count=count,
                     xattr=xattr)
    if itype is InodeType.REG:
        start, frag, offset, size = _extra(_REG, data)
        return Inode(**common, start_block=start, fragment=frag, offset=offset,
                     file_size=size)
    if itype is InodeType.LREG:
        start, size, sparse, nlink, frag, offset, xattr = _extra(_LREG, data)
        return Inode(**common, start_block=start, file_size=size, sparse=sparse,
                     nlink=nlink, fragment=frag, offset=offset, xattr=xattr)
    if itype in (InodeType.SYMLINK, InodeType.LSYMLINK):
        nlink, size = _extra(_SYMLINK, data)
        xattr = INVALID_XATTR
        if itype is InodeType.LSYMLINK:
            (xattr,) = _extra(_U32, data, _BASE.size + _SYMLINK.size + size)
        return Inode(**common, nlink=nlink, symlink_size=size, xattr=xattr)
    if itype in (InodeType.BLKDEV, InodeType.CHRDEV):
        nlink, rdev = _extra(_DEV, data)
        return Inode(**common, nlink=nlink, rdev=rdev)
    if itype in (InodeType.LBLKDEV, InodeType.LCHRDEV):
        nlink, rdev, xattr = _extra(_LDEV, data)
        return Inode(**common, nlink=nlink, rdev=rdev, xattr=xattr)
    if itype in (InodeType.FIFO, InodeType.SOCKET):
        (nlink,) = _extra(_IPC, data)
        return Inode(**common, nlink=nlink)
    nlink, xattr = _extra(_LIPC, data)
    return Inode(**common, nlink=nlink, xattr=xattr)