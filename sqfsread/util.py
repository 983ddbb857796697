"""File access and user-facing error messages for squashfs images."""

from __future__ import annotations

import errno
import os
import sys
from typing import Iterable, Optional, Tuple, Union

from .format import Compression

BAD_FORMAT_MESSAGE = "This doesn't look like a squashfs image."
GENERIC_MESSAGE = "Something went wrong trying to read the squashfs image."


class OpenError(OSError):
    """Raised when an image file cannot be opened."""


def pread(file, size: int, offset: int) -> bytes:
    """Read up to ``size`` bytes at ``offset`` from an fd or binary file object.

    The result may be shorter than ``size`` at end of file.
    """
    if isinstance(file, int):
        if hasattr(os, "pread"):
            return os.pread(file, size, offset)
        os.lseek(file, offset, os.SEEK_SET)
        return os.read(file, size)
    file.seek(offset)
    return file.read(size)


def open_image_file(path: Union[str, os.PathLike]):
    """Open an image read-only, reporting failure on stderr."""
    try:
        return open(path, "rb")
    except OSError as exc:
        print(f"Can't open squashfs image: {exc.strerror or exc}", file=sys.stderr)
        raise OpenError(exc.errno, f"Can't open squashfs image: {path}") from exc


def version_message(
    major: int, minor: int, lowest: Tuple[int, int], highest: Tuple[int, int]
) -> str:
    """Explain that a filesystem version is outside the supported range."""
    text = f"Squashfs version {major}.{minor} detected, only version"
    if tuple(lowest) == tuple(highest):
        text += f" {lowest[0]}.{lowest[1]}"
    else:
        text += f"s {lowest[0]}.{lowest[1]} to {highest[0]}.{highest[1]}"
    return text + " supported."


def _compression_name(comp: Union[int, str, None]) -> Optional[str]:
    if comp is None:
        return None
    if isinstance(comp, str):
        return comp
    try:
        return Compression(comp).name.lower()
    except ValueError:
        return None


def compression_message(
    found: Union[int, str], supported: Iterable[Union[int, str, None]]
) -> str:
    """Explain that an image's compression is not among those supported."""
    names = [n for n in map(_compression_name, supported) if n is not None]
    found_name = _compression_name(found) or "unknown"
    return (
        f"Squashfs image uses {found_name} compression, this version "
        f"supports only {', '.join(names)}."
    )


def enoattr() -> int:
    """The errno value meaning an extended attribute does not exist."""
    code = getattr(errno, "ENOATTR", None)
    if code is None:
        code = errno.ENODATA
    return code