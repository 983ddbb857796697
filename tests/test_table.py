import io
import struct

import pytest

from sqfsread.format import METADATA_SIZE, SquashfsError
from sqfsread.table import Table, load_table


def _image(start, pointers):
    return io.BytesIO(b"\xaa" * start + struct.pack(f"<{len(pointers)}Q", *pointers))


def test_empty_table_has_no_blocks():
    table = load_table(io.BytesIO(b""), 0, 8, 0)
    assert table.blocks == []
    assert table.each == 8


def test_single_block_pointer_read():
    table = load_table(_image(16, [4096]), 16, 8, 10)
    assert table.blocks == [4096]


def test_entries_spanning_two_blocks():
    each = 8
    count = METADATA_SIZE // each + 1
    table = load_table(_image(4, [100, 200]), 4, each, count)
    assert table.blocks == [100, 200]


def test_truncated_pointer_list_raises():
    each = 8
    count = METADATA_SIZE // each + 1
    with pytest.raises(SquashfsError):
        load_table(_image(0, [100]), 0, each, count)


def test_get_reads_from_the_right_block_and_offset():
    each = 4
    blocks = {
        100: bytes(range(256)) * (METADATA_SIZE // 256),
        200: b"wxyz" + b"\x00" * 12,
    }
    seen = []

    def read_block(pos):
        seen.append(pos)
        return blocks[pos]

    table = Table(each=each, blocks=[100, 200])
    assert table.get(1, read_block) == bytes([4, 5, 6, 7])
    assert table.get(METADATA_SIZE // each, read_block) == b"wxyz"
    assert seen == [100, 200]


def test_get_out_of_range_raises():
    table = Table(each=8, blocks=[0])
    with pytest.raises(SquashfsError):
        table.get(METADATA_SIZE // 8, lambda pos: b"\x00" * METADATA_SIZE)
    with pytest.raises(SquashfsError):
        table.get(-1, lambda pos: b"\x00" * METADATA_SIZE)


def test_get_short_block_raises():
    table = Table(each=8, blocks=[0])
    with pytest.raises(SquashfsError):
        table.get(2, lambda pos: b"\x00" * 20)