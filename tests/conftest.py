"""Shared test fixtures."""

from __future__ import annotations

import logging
import shlex
import sys
import threading
import time
from collections.abc import Callable

import pytest

from alternate.log import LOGGER_NAME


class LineSink:
    """Thread-safe text sink that records each written line with its arrival time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffer = ""
        self._lines: list[tuple[float, str]] = []

    def write(self, text: str) -> int:
        now = time.monotonic()
        with self._lock:
            self._buffer += text
            *complete, self._buffer = self._buffer.split("\n")
            self._lines.extend((now, line) for line in complete)
        return len(text)

    def flush(self) -> None:
        return None

    def lines(self) -> list[str]:
        with self._lock:
            return [line for _, line in self._lines]

    def time_of(self, line: str) -> float | None:
        with self._lock:
            for stamp, seen in self._lines:
                if seen == line:
                    return stamp
        return None

    def count(self, line: str) -> int:
        return self.lines().count(line)


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture()
def stdout_sink() -> LineSink:
    return LineSink()


@pytest.fixture()
def stderr_sink() -> LineSink:
    return LineSink()


@pytest.fixture()
def wait_until() -> Callable[..., bool]:
    return _wait_until


@pytest.fixture()
def testbin_command() -> Callable[..., str]:
    """Build a command template that runs ``alternate.testbin`` for ``%alt``."""

    def _make(*, exit_after: float = -1.0, exit_after_term: float = 0.0) -> str:
        return (
            f"{shlex.quote(sys.executable)} -m alternate.testbin %alt "
            f"--exit-after {exit_after} --exit-after-term {exit_after_term}"
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_alternate_logger():
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    handlers = list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
