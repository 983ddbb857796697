"""Building stat results for inodes."""

from __future__ import annotations

import stat as _stat
from dataclasses import dataclass
from typing import Callable

from .format import Inode, makedev


@dataclass
class StatResult:
    """The fields of a stat structure; ``st_ino`` is left for the caller."""

    st_mode: int = 0
    st_ino: int = 0
    st_nlink: int = 0
    st_uid: int = 0
    st_gid: int = 0
    st_rdev: int = 0
    st_size: int = 0
    st_blocks: int = 0
    st_blksize: int = 0
    st_atime: int = 0
    st_mtime: int = 0
    st_ctime: int = 0


def build_stat(
    inode: Inode,
    block_size: int,
    lookup_id: Callable[[int], int],
    uid: int = 0,
    gid: int = 0,
) -> StatResult:
    """Fill a StatResult from ``inode``.

    ``lookup_id`` maps an id-table index to a real uid or gid; errors it
    raises propagate. A positive ``uid`` or ``gid`` overrides the stored owner.
    """
    st = StatResult(
        st_mode=inode.mode,
        st_nlink=inode.nlink,
        st_atime=inode.mtime,
        st_mtime=inode.mtime,
        st_ctime=inode.mtime,
        st_blksize=block_size,
    )
    if _stat.S_ISREG(st.st_mode):
        st.st_size = inode.file_size
        st.st_blocks = st.st_size // 512
    elif _stat.S_ISBLK(st.st_mode) or _stat.S_ISCHR(st.st_mode):
        st.st_rdev = makedev(inode.major, inode.minor)
    elif _stat.S_ISLNK(st.st_mode):
        st.st_size = inode.symlink_size

    st.st_uid = uid if uid > 0 else lookup_id(inode.uid)
    st.st_gid = gid if gid > 0 else lookup_id(inode.guid)
    return st