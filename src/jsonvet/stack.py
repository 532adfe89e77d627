"""Scoped stacks used by the validation context.

A ``SafeStack`` does not require releases in strict LIFO order. Releasing a
guard removes its own entry and every entry pushed after it, so an ancestor
frame can clean up after descendants that were unwound by an exception.
"""

from __future__ import annotations

from collections.abc import Iterator
from types import TracebackType
from typing import Generic, TypeVar

from jsonvet.result import PropertyName, property_name_to_string

T = TypeVar("T")


class _Entry(Generic[T]):
    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value


class ScopeGuard:
    """Release handle returned by ``SafeStack.enter()``.

    Can be called directly or used as a context manager. Releasing more than
    once is a no-op.
    """

    __slots__ = ("_stack", "_entry")

    def __init__(self, stack: SafeStack[T], entry: _Entry[T]) -> None:
        self._stack = stack
        self._entry = entry

    def release(self) -> None:
        self._stack._release(self._entry)

    __call__ = release

    def __enter__(self) -> ScopeGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class SafeStack(Generic[T]):
    """Stack whose entries can be released out of order."""

    def __init__(self) -> None:
        self._entries: list[_Entry[T]] = []

    def enter(self, value: T) -> ScopeGuard:
        """Push ``value`` and return the guard that releases it."""
        entry = _Entry(value)
        self._entries.append(entry)
        return ScopeGuard(self, entry)

    def _release(self, entry: _Entry[T]) -> None:
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index] is entry:
                del self._entries[index:]
                return

    def top(self) -> T | None:
        """Most recently entered value, or None."""
        return self._entries[-1].value if self._entries else None

    def values(self) -> Iterator[T]:
        """Iterate values from the most recent to the oldest."""
        for entry in reversed(self._entries):
            yield entry.value

    def is_empty(self) -> bool:
        return not self._entries

    def is_any(self) -> bool:
        return bool(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class PathTracker(SafeStack[PropertyName]):
    """Tracks the path from the root to the value being validated."""

    def get_path(self) -> list[PropertyName]:
        return [entry.value for entry in self._entries]

    def __str__(self) -> str:
        return ".".join(property_name_to_string(entry.value) for entry in self._entries)
