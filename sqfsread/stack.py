"""A LIFO stack with an optional hook run on every popped value."""

from __future__ import annotations

from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Stack(Generic[T]):
    """A stack whose ``on_pop`` callback sees every value as it is removed."""

    def __init__(self, on_pop: Optional[Callable[[T], None]] = None) -> None:
        self._items: List[T] = []
        self._on_pop = on_pop

    def push(self, value: T) -> T:
        """Put ``value`` on top and return it."""
        self._items.append(value)
        return value

    def pop(self) -> T:
        """Remove and return the top value, running the pop hook on it."""
        if not self._items:
            raise IndexError("pop from empty stack")
        value = self._items.pop()
        if self._on_pop is not None:
            self._on_pop(value)
        return value

    def top(self) -> T:
        """The top value, left in place."""
        if not self._items:
            raise IndexError("top of empty stack")
        return self._items[-1]

    def at(self, index: int) -> T:
        """The value at ``index``, counting from the bottom."""
        if not 0 <= index < len(self._items):
            raise IndexError(f"stack index {index} out of range")
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        """Pop every value, top first."""
        while self._items:
            self.pop()