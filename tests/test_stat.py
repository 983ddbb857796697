import stat

import pytest

from sqfsread.format import Inode, InodeType, makedev
from sqfsread.stat import build_stat

IDS = {0: 1000, 1: 2000}


def _inode(itype, mode, **extra):
    return Inode(inode_type=itype, mode=mode, uid=0, guid=1, mtime=1234567,
                 inode_number=5, **extra)


def test_regular_file():
    inode = _inode(InodeType.REG, stat.S_IFREG | 0o644, file_size=4096, nlink=2)
    st = build_stat(inode, 131072, IDS.__getitem__)
    assert st.st_mode == stat.S_IFREG | 0o644
    assert st.st_size == 4096
    assert st.st_blocks == 4096 // 512
    assert st.st_nlink == 2
    assert st.st_blksize == 131072
    assert (st.st_uid, st.st_gid) == (1000, 2000)
    assert st.st_atime == st.st_mtime == st.st_ctime == 1234567
    assert st.st_ino == 0


def test_symlink_size():
    inode = _inode(InodeType.SYMLINK, stat.S_IFLNK | 0o777, symlink_size=11)
    st = build_stat(inode, 4096, IDS.__getitem__)
    assert st.st_size == 11
    assert st.st_blocks == 0


def test_char_device_rdev():
    inode = _inode(InodeType.CHRDEV, stat.S_IFCHR | 0o600, rdev=(5 << 8) | 1)
    st = build_stat(inode, 4096, IDS.__getitem__)
    assert st.st_rdev == makedev(5, 1)
    assert st.st_size == 0


def test_directory_has_no_size():
    inode = _inode(InodeType.DIR, stat.S_IFDIR | 0o755, file_size=99)
    st = build_stat(inode, 4096, IDS.__getitem__)
    assert st.st_size == 0
    assert stat.S_ISDIR(st.st_mode)


def test_owner_override_skips_lookup():
    inode = _inode(InodeType.REG, stat.S_IFREG | 0o644)

    def lookup(index):
        raise AssertionError("lookup should not be used")

    st = build_stat(inode, 4096, lookup, uid=42, gid=43)
    assert (st.st_uid, st.st_gid) == (42, 43)


def test_lookup_error_propagates():
    inode = _inode(InodeType.REG, stat.S_IFREG | 0o644)
    with pytest.raises(KeyError):
        build_stat(inode, 4096, {}.__getitem__)