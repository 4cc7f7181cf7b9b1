"""Cyclic cursor over the rotation values."""

from __future__ import annotations

from collections.abc import Sequence

from alternate.errors import CursorNotStartedError

_NOT_STARTED = -1


class RotationCursor:
    """Track the committed rotation slot within a fixed list of values.

    Each list position is its own slot, so ``[A, B, A]`` rotates through three
    slots even though two of them share a value.
    """

    def __init__(self, values: Sequence[str]) -> None:
        if not values:
            raise ValueError("Rotation values must not be empty.")
        self._values = tuple(values)
        self._index = _NOT_STARTED

    @property
    def index(self) -> int:
        return self._index

    @property
    def started(self) -> bool:
        return self._index != _NOT_STARTED

    @property
    def values(self) -> tuple[str, ...]:
        return self._values

    def current(self) -> str:
        """Return the value of the committed slot."""

        if not self.started:
            raise CursorNotStartedError("No rotation has been committed yet.")
        return self._values[self._index % len(self._values)]

    def next(self) -> str:
        """Return the value of the slot the next rotation targets."""

        return self._values[(self._index + 1) % len(self._values)]

    def advance(self) -> None:
        self._index += 1
