"""Error types shared by the supervisor components."""

from __future__ import annotations


class AlternateError(RuntimeError):
    """Base class for supervisor runtime errors."""


class CursorNotStartedError(AlternateError):
    """Current value requested before the first rotation was committed."""


class ProcessStartError(AlternateError):
    """Command could not be launched for a rotation value."""

    def __init__(self, message: str, *, value: str) -> None:
        super().__init__(message)
        self.value = value


class ProcessSignalError(AlternateError):
    """Signal could not be delivered to a supervised process."""
