"""OS signal wiring for the rotation coordinator."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

logger = logging.getLogger(__name__)


class Controllable(Protocol):
    def request_rotate(self) -> None: ...

    def request_shutdown(self) -> None: ...


@contextmanager
def install_signal_handlers(
    target: Controllable,
    *,
    rotate_signal: signal.Signals | None = None,
) -> Iterator[None]:
    """Route rotate/terminate signals to ``target`` while the block runs.

    TERM (sent programmatically, e.g. by a process manager) and INT (Ctrl-C)
    both request a graceful shutdown. Previous handlers are restored on exit.
    """

    if rotate_signal is None:
        rotate_signal = getattr(signal, "SIGUSR1", None)

    routes: dict[signal.Signals, Callable[[], None]] = {}
    if rotate_signal is not None:
        routes[rotate_signal] = target.request_rotate
    for name in ("SIGTERM", "SIGINT"):
        signum = getattr(signal, name, None)
        if signum is not None and signum not in routes:
            routes[signum] = target.request_shutdown

    originals: dict[signal.Signals, object] = {}

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.info("Received signal %s", name)
        routes[signal.Signals(signum)]()

    try:
        for signum in routes:
            originals[signum] = signal.getsignal(signum)
            signal.signal(signum, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        logger.debug("Not in main thread, signal handlers not installed")
        _restore(originals)
        originals = {}

    try:
        yield
    finally:
        _restore(originals)


def _restore(originals: dict[signal.Signals, object]) -> None:
    for signum, original in originals.items():
        try:
            signal.signal(signum, original)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            pass
