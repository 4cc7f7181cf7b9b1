"""Messages consumed by the rotation coordinator loop."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RotateRequested:
    """Advance to the next value in the rotation."""


@dataclass(frozen=True, slots=True)
class ShutdownRequested:
    """Terminate every supervised process and exit once they are gone."""


@dataclass(frozen=True, slots=True)
class KillRequested:
    """Kill every supervised process and return without waiting."""


@dataclass(frozen=True, slots=True)
class ProcessExited:
    """A process started for ``value`` has exited."""

    value: str
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class OverlapElapsed:
    """The overlap delay of a pending rotation has elapsed."""

    rotation_id: int = 0


Event = RotateRequested | ShutdownRequested | KillRequested | ProcessExited | OverlapElapsed
