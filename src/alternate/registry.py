"""Bookkeeping of live supervised processes, keyed by rotation value."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

HandleT = TypeVar("HandleT")


class ProcessRegistry(Generic[HandleT]):
    """Map rotation values to the handles of their running processes.

    Entries are removed when the coordinator consumes the exit notification,
    not when the OS reaps the process. The registry never touches processes.
    """

    def __init__(self) -> None:
        self._handles: dict[str, HandleT] = {}

    def get(self, value: str) -> HandleT | None:
        return self._handles.get(value)

    def set(self, value: str, handle: HandleT) -> None:
        self._handles[value] = handle

    def unset(self, value: str) -> None:
        self._handles.pop(value, None)

    def count(self) -> int:
        return len(self._handles)

    def for_each(self, fn: Callable[[str, HandleT], None]) -> None:
        """Call ``fn(value, handle)`` for every entry; order is unspecified."""

        for value, handle in list(self._handles.items()):
            fn(value, handle)

    def values(self) -> list[str]:
        return list(self._handles)

    def __contains__(self, value: object) -> bool:
        return value in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))
