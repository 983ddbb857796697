"""Depth-first walk over a directory tree, reporting paths as it goes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Iterable, Iterator, List, Optional, Union

from .format import SquashfsError
from .stack import Stack

PATH_SEPARATOR = "/"

Name = Union[str, bytes]
OpenDir = Callable[[Any], Iterable[Any]]


class _State(Enum):
    DESCEND = auto()
    NAME_REMOVE = auto()
    ERROR = auto()
    FINISHED = auto()
    ASCEND = auto()
    GET_ENTRY = auto()


@dataclass(frozen=True)
class TraverseItem:
    """One step of a traversal.

    For an ordinary item ``entry`` is the directory entry and ``path`` its
    path below the starting directory. When ``dir_end`` is true, the
    directory at ``path`` (whose entry is ``entry``) has been finished.
    """

    path: Name
    entry: Any
    dir_end: bool = False


@dataclass
class _Level:
    entries: Iterator[Any]
    entry: Any


def _close_level(level: _Level) -> None:
    close = getattr(level.entries, "close", None)
    if callable(close):
        close()


def _entry_name(entry: Any) -> Name:
    return entry.name


def _entry_is_dir(entry: Any) -> bool:
    flag = entry.is_dir
    return bool(flag() if callable(flag) else flag)


class Traversal:
    """Recursive, in-order traversal of everything below ``root``.

    ``open_dir`` is called with ``root`` and later with each directory
    entry to descend into; it returns that directory's entries. An entry
    has a ``name`` (str or bytes) and an ``is_dir`` flag or method. The
    starting directory itself is not reported. After every subdirectory's
    contents an item with ``dir_end`` set is produced.
    """

    def __init__(self, open_dir: OpenDir, root: Any) -> None:
        self._open_dir = open_dir
        self._stack: Stack[_Level] = Stack(on_pop=_close_level)
        self._names: List[Name] = []
        self._entry: Any = None
        self._state = _State.ERROR
        try:
            self._push(root, None)
        except BaseException:
            self.close()
            raise
        # The root has no name, so the first removal takes nothing away.
        self._state = _State.NAME_REMOVE

    def __iter__(self) -> "Traversal":
        return self

    def __enter__(self) -> "Traversal":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _push(self, node: Any, entry: Any) -> None:
        entries = iter(self._open_dir(node))
        self._stack.push(_Level(entries, entry))

    def _path(self) -> Name:
        if not self._names:
            return ""
        first = self._names[0]
        sep: Name = PATH_SEPARATOR.encode() if isinstance(first, bytes) else PATH_SEPARATOR
        return sep.join(self._names)

    def __next__(self) -> TraverseItem:
        try:
            return self._advance()
        except StopIteration:
            raise
        except BaseException:
            self._state = _State.ERROR
            raise

    def _advance(self) -> TraverseItem:
        while True:
            state = self._state
            if state is _State.GET_ENTRY:
                level = self._stack.top()
                entry = next(level.entries, _END)
                if entry is _END:
                    self._state = _State.ASCEND
                else:
                    self._entry = entry
                    self._names.append(_entry_name(entry))
                    self._state = (
                        _State.DESCEND if _entry_is_dir(entry) else _State.NAME_REMOVE
                    )
                    return TraverseItem(self._path(), entry, False)
            elif state is _State.NAME_REMOVE:
                if self._names:
                    self._names.pop()
                self._state = _State.GET_ENTRY
            elif state is _State.DESCEND:
                self._push(self._entry, self._entry)
                self._state = _State.GET_ENTRY
            elif state is _State.ASCEND:
                level = self._stack.pop()
                if len(self._stack) > 0:
                    self._entry = level.entry
                    self._state = _State.NAME_REMOVE
                    return TraverseItem(self._path(), level.entry, True)
                self._state = _State.FINISHED
            elif state is _State.FINISHED:
                raise StopIteration
            else:
                raise SquashfsError("traversal is closed or has failed")

    def prune(self) -> None:
        """Do not descend into the directory just returned."""
        self._state = _State.NAME_REMOVE

    def close(self) -> None:
        """Release every open directory; the traversal cannot continue."""
        self._stack.clear()
        self._names.clear()
        self._entry = None
        self._state = _State.ERROR


_END = object()


def list_paths(open_dir: OpenDir, root: Any) -> List[Name]:
    """Paths of every entry below ``root``, in traversal order."""
    with Traversal(open_dir, root) as trv:
        return [item.path for item in trv if not item.dir_end]