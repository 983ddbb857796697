"""Lookup tables whose entries are spread across metadata blocks."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Callable, List

from .format import METADATA_SIZE, SquashfsError
from .util import pread

_BLOCK_POINTER = struct.Struct("<Q")


@dataclass
class Table:
    """Fixed-size entries indexed across a list of metadata block positions."""

    each: int
    blocks: List[int] = field(default_factory=list)

    def get(self, idx: int, read_block: Callable[[int], bytes]) -> bytes:
        """The raw bytes of entry ``idx``.

        ``read_block`` takes the on-disk position of a metadata block and
        returns its decompressed contents.
        """
        if idx < 0:
            raise SquashfsError(f"table index {idx} out of range")
        pos = idx * self.each
        bnum, off = divmod(pos, METADATA_SIZE)
        if bnum >= len(self.blocks):
            raise SquashfsError(f"table index {idx} out of range")
        data = read_block(self.blocks[bnum])
        entry = data[off:off + self.each]
        if len(entry) != self.each:
            raise SquashfsError(
                f"metadata block too short for table entry {idx}"
            )
        return bytes(entry)


def load_table(source, start: int, each: int, count: int) -> Table:
    """Read the block pointers of a table with ``count`` entries of ``each`` bytes."""
    if count == 0:
        return Table(each=each)
    nblocks = -(-(each * count) // METADATA_SIZE)
    size = nblocks * _BLOCK_POINTER.size
    raw = pread(source, size, start)
    if len(raw) != size:
        raise SquashfsError(
            f"table at {start} truncated: need {size} bytes, have {len(raw)}"
        )
    blocks = [value for (value,) in _BLOCK_POINTER.iter_unpack(raw)]
    return Table(each=each, blocks=blocks)