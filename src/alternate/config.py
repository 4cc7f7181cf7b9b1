"""Runtime configuration for the rotation supervisor."""

from __future__ import annotations

import logging
import os
import re
import signal
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_PLACEHOLDER = "%alt"
DEFAULT_ROTATE_SIGNAL = "SIGUSR1"
DEFAULT_LOG_PREFIX = "alternate | "

_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_DURATION_GROUP = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([^\d.]+)")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid command-line or environment configuration."""


@dataclass(frozen=True, slots=True)
class RotationConfig:
    """Validated inputs of one supervisor run."""

    command_template: str
    placeholder: str
    values: tuple[str, ...]
    overlap_seconds: float = 0.0

    def validate(self) -> None:
        """Raise ``ConfigError`` if the configuration cannot be supervised."""

        if not self.command_template.strip():
            raise ConfigError("Command must not be empty.")
        if not self.placeholder:
            raise ConfigError("Placeholder must not be empty.")
        if not self.values:
            raise ConfigError("At least one value is required.")
        if self.overlap_seconds < 0:
            raise ConfigError("Overlap must be >= 0.")


@dataclass(slots=True)
class Settings:
    """Environment-level settings that do not change per invocation."""

    placeholder: str = DEFAULT_PLACEHOLDER
    rotate_signal: str = DEFAULT_ROTATE_SIGNAL
    log_level: str = "INFO"
    log_prefix: str = DEFAULT_LOG_PREFIX

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``ALTERNATE_*`` environment variables."""

        return cls(
            placeholder=os.getenv("ALTERNATE_PLACEHOLDER", DEFAULT_PLACEHOLDER),
            rotate_signal=os.getenv("ALTERNATE_ROTATE_SIGNAL", DEFAULT_ROTATE_SIGNAL).upper(),
            log_level=os.getenv("ALTERNATE_LOG_LEVEL", "INFO").upper(),
            log_prefix=os.getenv("ALTERNATE_LOG_PREFIX", DEFAULT_LOG_PREFIX),
        )

    def validate(self) -> None:
        if not self.placeholder:
            raise ConfigError("Placeholder must not be empty.")
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(
                f"ALTERNATE_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}.",
            )
        resolve_signal(self.rotate_signal)

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def resolve_signal(name: str) -> signal.Signals:
    """Map a signal name such as ``SIGUSR1`` or ``USR1`` to the platform signal."""

    normalized = name.upper()
    if not normalized.startswith("SIG"):
        normalized = f"SIG{normalized}"
    try:
        return signal.Signals[normalized]
    except KeyError as error:
        raise ConfigError(f"Unknown signal name: {name!r}") from error


def parse_overlap(text: str) -> float:
    """Parse a duration like ``10s``, ``1m30s`` or ``250ms`` into seconds.

    A bare ``0`` is accepted; any other number needs a unit.
    """

    invalid = ConfigError(f"Invalid overlap: '{text}'")
    body = text
    sign = 1.0
    if body[:1] in ("-", "+"):
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]
    if body == "0":
        return 0.0
    if not body:
        raise invalid

    total = 0.0
    position = 0
    while position < len(body):
        match = _DURATION_GROUP.match(body, position)
        if match is None:
            raise invalid
        number, unit = match.groups()
        scale = _NANOSECONDS.get(unit)
        if scale is None:
            raise invalid
        total += float(number) * scale
        position = match.end()
    return sign * total / 1e9


def parse_arguments(
    args: Sequence[str],
    *,
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> RotationConfig:
    """Build a validated config from ``COMMAND VALUE... OVERLAP``."""

    if len(args) < 3:  # noqa: PLR2004
        raise ConfigError("Not enough arguments")

    overlap_text = args[-1]
    overlap_seconds = parse_overlap(overlap_text)
    if overlap_seconds < 0:
        raise ConfigError(f"Invalid overlap: '{overlap_text}'")

    config = RotationConfig(
        command_template=args[0],
        placeholder=placeholder,
        values=tuple(args[1:-1]),
        overlap_seconds=overlap_seconds,
    )
    config.validate()
    return config
