"""Extended attributes stored in the xattr metadata table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Iterator, Optional, Tuple, Union

from .format import (
    INVALID_BLK,
    INVALID_XATTR,
    XATTR_PREFIX_MASK,
    XATTR_SECURITY,
    XATTR_VALUE_OOL,
    SquashfsError,
    XattrEntry,
    XattrId,
    XattrIdTable,
    XattrVal,
    read_le,
    record_size,
    unpack,
)
from .table import Table, load_table
from .util import pread

PREFIXES = (b"user.", b"trusted.", b"security.")
_PREFIX_MAX = XATTR_SECURITY


@dataclass(frozen=True)
class MetadataCursor:
    """A position in metadata: a block's on-disk position and an offset in it."""

    block: int
    offset: int


Reader = Callable[[MetadataCursor, int], Tuple[bytes, MetadataCursor]]
"""Reads ``size`` bytes at a cursor, returning them and the cursor after them."""


class _Cursors(IntFlag):
    NONE = 0
    VSIZE = 1
    VAL = 2
    NEXT = 4


def metadata_cursor(ref: int, base: int) -> MetadataCursor:
    """Cursor for a packed metadata reference relative to ``base``."""
    return MetadataCursor(base + (ref >> 16), ref & 0xFFFF)


def split_prefix(name: Union[str, bytes]) -> Tuple[int, bytes]:
    """Split an attribute name into its prefix type and the rest of the name."""
    raw = name.encode() if isinstance(name, str) else bytes(name)
    for kind, prefix in enumerate(PREFIXES):
        if raw.startswith(prefix):
            return kind, raw[len(prefix):]
    raise ValueError(f"unsupported xattr namespace: {raw!r}")


class XattrIterator:
    """Walks the extended attributes of one inode.

    Call ``read_next`` while ``remain`` is positive, then any of the
    accessors for the entry just read. Iterating yields (name, value) pairs.
    """

    def __init__(self, reader: Reader, table_start: int,
                 info: Optional[XattrId] = None) -> None:
        self._reader = reader
        self._table_start = table_start
        self.info = info
        self.remain = info.count if info is not None else 0
        self.type = 0
        self.ool = False
        self.entry: Optional[XattrEntry] = None
        self.val: Optional[XattrVal] = None
        self._cursors = _Cursors.NONE
        self._c_next: Optional[MetadataCursor] = None
        self._c_name: Optional[MetadataCursor] = None
        self._c_vsize: Optional[MetadataCursor] = None
        self._c_val: Optional[MetadataCursor] = None
        if info is not None:
            self._c_next = metadata_cursor(info.xattr, table_start)
            self._cursors = _Cursors.NEXT

    def _read(self, cursor: MetadataCursor, size: int) -> Tuple[bytes, MetadataCursor]:
        data, after = self._reader(cursor, size)
        if len(data) != size:
            raise SquashfsError(f"xattr metadata truncated: wanted {size} bytes")
        return bytes(data), after

    def _current(self) -> XattrEntry:
        if self.entry is None:
            raise SquashfsError("no xattr entry has been read")
        return self.entry

    def read_next(self) -> None:
        """Advance to the next entry."""
        if self.remain == 0:
            raise SquashfsError("no xattr entries remain")
        if not self._cursors & _Cursors.NEXT:
            self.ool = False  # skip the stored value as if it were inline
            self.value()

        raw, self._c_name = self._read(self._c_next, record_size(XattrEntry))
        entry = unpack(XattrEntry, raw)
        self.entry = entry
        self.type = entry.type & XATTR_PREFIX_MASK
        self.ool = bool(entry.type & XATTR_VALUE_OOL)
        if self.type > _PREFIX_MAX:
            raise SquashfsError(f"unknown xattr prefix type {self.type}")
        self.remain -= 1
        self._cursors = _Cursors.NONE

    def name_size(self) -> int:
        """Length of the full name, prefix included."""
        return self._current().size + len(PREFIXES[self.type])

    def name(self, prefix: bool = True) -> bytes:
        """The entry's name, with its namespace prefix if ``prefix``."""
        entry = self._current()
        data, self._c_vsize = self._read(self._c_name, entry.size)
        self._cursors |= _Cursors.VSIZE
        return PREFIXES[self.type] + data if prefix else data

    def value_size(self) -> int:
        """Size of the entry's value, following an out-of-line reference."""
        if not self._cursors & _Cursors.VSIZE:
            self.name(False)
        vsize = record_size(XattrVal)
        raw, self._c_val = self._read(self._c_vsize, vsize)
        self.val = unpack(XattrVal, raw)
        if self.ool:
            raw, self._c_next = self._read(self._c_val, 8)
            self._cursors |= _Cursors.NEXT
            pos = read_le(raw, 64)
            self._c_val = metadata_cursor(pos, self._table_start)
            raw, self._c_val = self._read(self._c_val, vsize)
            self.val = unpack(XattrVal, raw)
        self._cursors |= _Cursors.VAL
        return self.val.vsize

    def value(self) -> bytes:
        """The entry's value."""
        if not self._cursors & _Cursors.VAL:
            self.value_size()
        data, after = self._read(self._c_val, self.val.vsize)
        if not self.ool:
            self._c_next = after
            self._cursors |= _Cursors.NEXT
        return data

    def find(self, name: Union[str, bytes]) -> bool:
        """Advance to the entry called ``name``; False if there is none."""
        try:
            kind, rest = split_prefix(name)
        except ValueError:
            return False
        while self.remain:
            self.read_next()
            if self.type != kind and self.entry.size != len(rest):
                continue
            if self.name(False) == rest:
                return True
        return False

    def __iter__(self) -> Iterator[Tuple[bytes, bytes]]:
        while self.remain:
            self.read_next()
            yield self.name(True), self.value()


def open_xattrs(
    reader: Reader,
    table: Optional[Table],
    table_start: int,
    xattr_index: int,
    read_block: Callable[[int], bytes],
) -> XattrIterator:
    """An iterator over the attributes at ``xattr_index`` in the id table."""
    if table is None or not table.blocks or xattr_index == INVALID_XATTR:
        return XattrIterator(reader, table_start, None)
    info = unpack(XattrId, table.get(xattr_index, read_block))
    return XattrIterator(reader, table_start, info)


def lookup_xattr(
    reader: Reader,
    table: Optional[Table],
    table_start: int,
    xattr_index: int,
    read_block: Callable[[int], bytes],
    name: Union[str, bytes],
) -> Optional[bytes]:
    """The value of attribute ``name``, or None if the inode lacks it."""
    attrs = open_xattrs(reader, table, table_start, xattr_index, read_block)
    if not attrs.find(name):
        return None
    return attrs.value()


def read_xattr_id_table(source, start: int, offset: int = 0
                        ) -> Tuple[Optional[XattrIdTable], Table]:
    """Read the xattr id table header and its block pointers.

    ``start`` is the superblock's xattr_id_table_start; when it marks the
    table absent, the header is None and the table is empty.
    """
    each = record_size(XattrId)
    if start == INVALID_BLK:
        return None, Table(each=each)
    size = record_size(XattrIdTable)
    raw = pread(source, size, start + offset)
    if len(raw) != size:
        raise SquashfsError("xattr id table header truncated")
    info = unpack(XattrIdTable, raw)
    table = load_table(source, start + size + offset, each, info.xattr_ids)
    return info, table