"""Two-way mapping between squashfs inode ids and FUSE inode numbers.

There are three kinds of inode identifier:

* the squashfs inode id, a 48-bit on-disk location of the inode data;
* the squashfs inode number, a sequential 32-bit number stored in the inode;
* the FUSE inode number, where 0 means "no entry" and 1 is the root.

When FUSE inode numbers are wide enough to hold an inode id, the id is used
directly with small adjustments for the reserved values. Otherwise the inode
number is used, and the inode id is found either through the export table
or through a reference-counted cache of registered entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from .format import SquashfsError

FUSE_ROOT_ID = 1
FUSE_INODE_NONE = 0
INODE_NONE = 1
INODE_ID_BYTES = 6

_LOOKUP_ERRORS = (SquashfsError, OSError, KeyError)


class Inode64Map:
    """Mapping used when a FUSE inode number can hold a whole inode id.

    The root inode maps to FUSE_ROOT_ID and inode id 0 maps to 2; neither 1
    nor 2 can be a real inode id, since inodes are larger than that.
    """

    def __init__(self, root_id: int) -> None:
        self.root_id = root_id

    def to_fuse(self, inode_id: int) -> int:
        if inode_id == self.root_id:
            return FUSE_ROOT_ID
        if inode_id == 0:
            return 2
        return inode_id

    def to_sqfs(self, ino: int) -> int:
        if ino == FUSE_ROOT_ID:
            return self.root_id
        if ino == 2:
            return 0
        return ino

    def entry_to_fuse(self, inode_id: int, inode_number: int) -> int:
        """The FUSE inode number for a directory entry."""
        return self.to_fuse(inode_id)

    def register(self, inode_id: int, inode_number: int) -> int:
        """Announce an entry to FUSE; nothing needs remembering here."""
        return self.entry_to_fuse(inode_id, inode_number)

    def forget(self, ino: int, refs: int = 1) -> None:
        """FUSE has dropped references; this mapping keeps no state."""
        return None


class _Inode32Base:
    """Shared number conversion for maps keyed by inode number.

    Most inode numbers N map to N + 1, the root's number maps to
    FUSE_ROOT_ID, and inode number 0 takes the place left by the root.
    """

    def __init__(
        self,
        root_id: int,
        root_number: int,
        inode_number_of: Callable[[int], int],
    ) -> None:
        self.root_id = root_id
        self.root_number = root_number
        self._inode_number_of = inode_number_of

    def _num_to_fuse(self, number: int) -> int:
        if number == self.root_number:
            return FUSE_ROOT_ID
        if number == 0:
            return self.root_number + 1
        return number + 1

    def _fuse_to_num(self, ino: int) -> int:
        if ino == FUSE_ROOT_ID:
            return self.root_number
        if ino == self.root_number + 1:
            return 0
        return ino - 1

    def _id_to_fuse(self, inode_id: int) -> int:
        try:
            number = self._inode_number_of(inode_id)
        except _LOOKUP_ERRORS:
            return FUSE_INODE_NONE
        return self._num_to_fuse(number)


@dataclass
class _CacheEntry:
    inode_id: int
    refcount: int


class Inode32Map(_Inode32Base):
    """Narrow mapping that caches inode number to inode id for known entries."""

    def __init__(
        self,
        root_id: int,
        root_number: int,
        inode_number_of: Callable[[int], int],
    ) -> None:
        super().__init__(root_id, root_number, inode_number_of)
        self._cache: Dict[int, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def to_fuse(self, inode_id: int) -> int:
        """The FUSE inode number for an inode id, or FUSE_INODE_NONE."""
        return self._id_to_fuse(inode_id)

    def entry_to_fuse(self, inode_id: int, inode_number: int) -> int:
        """The FUSE inode number for a directory entry."""
        return self._num_to_fuse(inode_number)

    def to_sqfs(self, ino: int) -> int:
        """The inode id for a FUSE inode number, or INODE_NONE if unknown."""
        if ino == FUSE_ROOT_ID:
            return self.root_id
        entry = self._cache.get(self._fuse_to_num(ino))
        return entry.inode_id if entry is not None else INODE_NONE

    def register(self, inode_id: int, inode_number: int) -> int:
        """Remember an entry handed to FUSE, counting references."""
        entry = self._cache.get(inode_number)
        if entry is not None:
            entry.refcount += 1
        else:
            self._cache[inode_number] = _CacheEntry(inode_id, 1)
        return self.entry_to_fuse(inode_id, inode_number)

    def forget(self, ino: int, refs: int = 1) -> None:
        """Drop ``refs`` references, removing the entry when none are left."""
        number = self._fuse_to_num(ino)
        entry = self._cache.get(number)
        if entry is None:
            return
        if entry.refcount > refs:
            entry.refcount -= refs
        else:
            del self._cache[number]


class Inode32ExportMap(_Inode32Base):
    """Narrow mapping that finds inode ids through the export table."""

    def __init__(
        self,
        root_id: int,
        root_number: int,
        inode_number_of: Callable[[int], int],
        export_lookup: Callable[[int], int],
    ) -> None:
        super().__init__(root_id, root_number, inode_number_of)
        self._export_lookup = export_lookup

    def to_fuse(self, inode_id: int) -> int:
        """The FUSE inode number for an inode id, or FUSE_INODE_NONE."""
        return self._id_to_fuse(inode_id)

    def entry_to_fuse(self, inode_id: int, inode_number: int) -> int:
        """The FUSE inode number for a directory entry."""
        return self._num_to_fuse(inode_number)

    def to_sqfs(self, ino: int) -> int:
        """The inode id for a FUSE inode number, or INODE_NONE if unknown."""
        if ino == FUSE_ROOT_ID:
            return self.root_id
        try:
            return self._export_lookup(self._fuse_to_num(ino))
        except _LOOKUP_ERRORS:
            return INODE_NONE

    def register(self, inode_id: int, inode_number: int) -> int:
        """Announce an entry to FUSE; the export table needs no cache."""
        return self.entry_to_fuse(inode_id, inode_number)

    def forget(self, ino: int, refs: int = 1) -> None:
        """FUSE has dropped references; this mapping keeps no state."""
        return None


InodeMap = Union[Inode64Map, Inode32Map, Inode32ExportMap]


def create_inode_map(
    root_id: int,
    root_number: Optional[int] = None,
    ino_width: int = 8,
    export_lookup: Optional[Callable[[int], int]] = None,
    inode_number_of: Optional[Callable[[int], int]] = None,
) -> InodeMap:
    """Choose the mapping strategy for FUSE inode numbers ``ino_width`` bytes wide."""
    if ino_width >= INODE_ID_BYTES:
        return Inode64Map(root_id)
    if root_number is None or inode_number_of is None:
        raise ValueError(
            "narrow inode numbers need the root inode number and an inode lookup"
        )
    if export_lookup is not None:
        return Inode32ExportMap(root_id, root_number, inode_number_of, export_lookup)
    return Inode32Map(root_id, root_number, inode_number_of)