import io
import struct

import pytest

from sqfsread.format import INVALID_BLK, INVALID_XATTR, SquashfsError
from sqfsread.table import Table
from sqfsread.xattr import (
    MetadataCursor,
    lookup_xattr,
    metadata_cursor,
    open_xattrs,
    read_xattr_id_table,
    split_prefix,
)

BASE = 1000
ID_BLOCK = 7


def entry(kind, name, value):
    return struct.pack("<HH", kind, len(name)) + name + struct.pack("<I", len(value)) + value


def build_block():
    head = entry(0, b"alpha", b"one") + entry(2, b"selinux", b"ctx")
    ool_header = struct.pack("<HH", 1 | 256, 3) + b"big" + struct.pack("<I", 8)
    tail_offset = len(head) + len(ool_header) + 8
    tail = entry(0, b"after", b"z")
    ool_offset = tail_offset + len(tail)
    ool_value = b"out-of-line"
    block = (head + ool_header + struct.pack("<Q", ool_offset) + tail
             + struct.pack("<I", len(ool_value)) + ool_value)
    return block, tail_offset


BLOCK, TAIL_OFFSET = build_block()


def make_reader(blocks):
    def reader(cursor, size):
        data = blocks[cursor.block][cursor.offset:cursor.offset + size]
        return data, MetadataCursor(cursor.block, cursor.offset + size)
    return reader


READER = make_reader({BASE: BLOCK})
ID_DATA = struct.pack("<QII", 0, 4, 0) + struct.pack("<QII", TAIL_OFFSET, 1, 0)
READ_BLOCK = {ID_BLOCK: ID_DATA}.__getitem__
TABLE = Table(each=16, blocks=[ID_BLOCK])


def attrs(index=0, reader=READER, table=TABLE):
    return open_xattrs(reader, table, BASE, index, READ_BLOCK)


def test_metadata_cursor_splits_reference():
    cursor = metadata_cursor((3 << 16) | 0x10, 100)
    assert cursor == MetadataCursor(103, 0x10)


@pytest.mark.parametrize(
    "name, expected",
    [("user.foo", (0, b"foo")), ("trusted.x", (1, b"x")),
     (b"security.selinux", (2, b"selinux"))],
)
def test_split_prefix(name, expected):
    assert split_prefix(name) == expected


def test_split_prefix_rejects_unknown():
    with pytest.raises(ValueError):
        split_prefix("system.posix_acl_access")


def test_iterate_all_entries():
    assert list(attrs()) == [
        (b"user.alpha", b"one"),
        (b"security.selinux", b"ctx"),
        (b"trusted.big", b"out-of-line"),
        (b"user.after", b"z"),
    ]


def test_second_id_starts_later():
    assert list(attrs(1)) == [(b"user.after", b"z")]


def test_lookup_values():
    assert lookup_xattr(READER, TABLE, BASE, 0, READ_BLOCK, "user.alpha") == b"one"
    assert lookup_xattr(READER, TABLE, BASE, 0, READ_BLOCK, "trusted.big") == b"out-of-line"
    assert lookup_xattr(READER, TABLE, BASE, 0, READ_BLOCK, "user.after") == b"z"


def test_lookup_missing_and_bad_prefix():
    assert lookup_xattr(READER, TABLE, BASE, 0, READ_BLOCK, "user.missing") is None
    assert lookup_xattr(READER, TABLE, BASE, 0, READ_BLOCK, "system.alpha") is None


def test_skipping_values_including_out_of_line():
    it = attrs()
    for _ in range(4):
        it.read_next()
    assert it.name(False) == b"after"
    assert it.value() == b"z"
    assert it.remain == 0


def test_out_of_line_flags():
    it = attrs()
    for _ in range(3):
        it.read_next()
    assert it.ool is True
    assert it.type == 1
    assert it.value_size() == len(b"out-of-line")


def test_value_size_without_reading_name():
    it = attrs()
    it.read_next()
    assert it.value_size() == len(b"one")
    assert it.value() == b"one"


def test_name_size_includes_prefix():
    it = attrs()
    it.read_next()
    assert it.name_size() == len(b"user.alpha")
    assert it.name() == b"user.alpha"


def test_exhausted_iterator_raises():
    it = attrs()
    assert len(list(it)) == 4
    assert it.remain == 0
    with pytest.raises(SquashfsError):
        it.read_next()


def test_no_xattrs_for_invalid_index():
    it = attrs(INVALID_XATTR)
    assert it.remain == 0
    assert list(it) == []


def test_no_xattrs_when_table_empty():
    it = attrs(0, table=Table(each=16))
    assert it.remain == 0
    assert lookup_xattr(READER, Table(each=16), BASE, 0, READ_BLOCK, "user.alpha") is None


def test_unknown_prefix_type_raises():
    reader = make_reader({BASE: entry(3, b"x", b"y")})
    it = open_xattrs(reader, Table(each=16, blocks=[ID_BLOCK]), BASE, 0,
                     {ID_BLOCK: struct.pack("<QII", 0, 1, 0)}.__getitem__)
    with pytest.raises(SquashfsError):
        it.read_next()


def test_truncated_metadata_raises():
    reader = make_reader({BASE: BLOCK[:6]})
    it = attrs(reader=reader)
    it.read_next()
    with pytest.raises(SquashfsError):
        it.name()


def test_read_id_table_with_offset():
    data = b"\0" * 10 + struct.pack("<QII", 500, 3, 0) + struct.pack("<Q", 777)
    info, table = read_xattr_id_table(io.BytesIO(data), 0, 10)
    assert info.xattr_table_start == 500
    assert info.xattr_ids == 3
    assert table.blocks == [777]
    assert table.each == 16


def test_read_id_table_absent():
    info, table = read_xattr_id_table(io.BytesIO(b""), INVALID_BLK)
    assert info is None
    assert table.blocks == []


def test_read_id_table_truncated():
    with pytest.raises(SquashfsError):
        read_xattr_id_table(io.BytesIO(b"\0" * 4), 0)