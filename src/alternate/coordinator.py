"""Rotation coordinator: the single event loop that owns cursor and registry.

All other activity (process waits, output pumps, overlap timers, OS signal
handlers) runs elsewhere and only puts event objects on the coordinator queue.
Events are handled one at a time, so cursor and registry need no locking.
The queue is a ``queue.SimpleQueue``: its ``put`` is reentrant, so the
``request_*`` methods may be called from OS signal handlers.
"""

from __future__ import annotations

import enum
import logging
import queue
from typing import Any, Protocol

from alternate.config import RotationConfig
from alternate.errors import ProcessSignalError, ProcessStartError
from alternate.events import (
    Event,
    KillRequested,
    OverlapElapsed,
    ProcessExited,
    RotateRequested,
    ShutdownRequested,
)
from alternate.registry import ProcessRegistry
from alternate.rotation import RotationCursor
from alternate.runner import SignalKind
from alternate.timer import OverlapTimer

logger = logging.getLogger(__name__)


class CoordinatorOutcome(enum.Enum):
    """Why the coordinator loop returned."""

    COMPLETED = "completed"
    KILLED = "killed"
    START_FAILED = "start_failed"


class CoordinatorState(enum.Enum):
    EMPTY = "empty"
    SINGLE_ACTIVE = "single_active"
    OVERLAPPING = "overlapping"
    DRAINING = "draining"


class Runner(Protocol):
    """Process operations the coordinator depends on."""

    def start(self, command_template: str, placeholder: str, value: str) -> Any:
        """Start the command for ``value``; raise ``ProcessStartError`` on failure."""

    def signal(self, handle: Any, kind: SignalKind) -> None:
        """Signal a started process; raise ``ProcessSignalError`` on failure."""


class RotationCoordinator:
    """Rotate a templated command through ``config.values``.

    The first value is started when :meth:`run` begins. Each rotate request
    starts the next value and, after ``config.overlap_seconds``, terminates the
    process of the current value. The loop returns once every supervised
    process has exited, or right away after a kill request.
    """

    def __init__(
        self,
        config: RotationConfig,
        runner: Runner,
        events: queue.SimpleQueue[Event],
        *,
        timer: OverlapTimer | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._events = events
        self._timer = timer or OverlapTimer(events)
        self.cursor = RotationCursor(config.values)
        self.registry: ProcessRegistry[Any] = ProcessRegistry()
        self._draining = False
        self._rotation_id = 0
        self._pending_rotation: int | None = None

    # -- control capability ------------------------------------------------------

    def request_rotate(self) -> None:
        self._events.put(RotateRequested())

    def request_shutdown(self) -> None:
        self._events.put(ShutdownRequested())

    def request_kill(self) -> None:
        self._events.put(KillRequested())

    # -- observation ---------------------------------------------------------------

    @property
    def state(self) -> CoordinatorState:
        if self._draining:
            return CoordinatorState.DRAINING
        count = self.registry.count()
        if count == 0:
            return CoordinatorState.EMPTY
        if count > 1 or self._pending_rotation is not None:
            return CoordinatorState.OVERLAPPING
        return CoordinatorState.SINGLE_ACTIVE

    @property
    def rotation_pending(self) -> bool:
        return self._pending_rotation is not None

    # -- loop ----------------------------------------------------------------------

    def run(self) -> CoordinatorOutcome:
        config = self._config
        logger.info(
            "Starting with command %r, placeholder %r, values %r, overlap %ss",
            config.command_template,
            config.placeholder,
            list(config.values),
            config.overlap_seconds,
        )
        try:
            if not self.start():
                return CoordinatorOutcome.START_FAILED
            while True:
                outcome = self.handle(self._events.get())
                if outcome is not None:
                    return outcome
        finally:
            self._timer.cancel_all()

    def handle(self, event: Event) -> CoordinatorOutcome | None:
        """Apply one event; return an outcome when the loop must stop."""

        if isinstance(event, KillRequested):
            return self._on_kill()
        if isinstance(event, ShutdownRequested):
            self._on_shutdown()
        elif isinstance(event, ProcessExited):
            return self._on_exit(event)
        elif isinstance(event, OverlapElapsed):
            self._on_overlap_elapsed(event)
        elif isinstance(event, RotateRequested):
            self._on_rotate()
        else:
            logger.warning("Ignoring unknown event %r", event)
        return None

    def start(self) -> bool:
        """Launch the first value; ``False`` means there is nothing to supervise."""

        value = self.cursor.next()
        if not self._launch(value):
            logger.error("Cannot start the first process, exiting")
            return False
        self.cursor.advance()
        return True

    def _on_kill(self) -> CoordinatorOutcome:
        logger.info("Kill requested, sending KILL to all processes and exiting")
        self._signal_all(SignalKind.KILL)
        return CoordinatorOutcome.KILLED

    def _on_shutdown(self) -> None:
        logger.info(
            "Shutdown requested, sending TERM to all processes, "
            "will exit after all processes have exited",
        )
        self._draining = True
        self._signal_all(SignalKind.TERMINATE)

    def _on_exit(self, event: ProcessExited) -> CoordinatorOutcome | None:
        logger.info("Process with value %r exited (code %s)", event.value, event.returncode)
        self.registry.unset(event.value)
        if self._pending_rotation is not None and self.cursor.next() not in self.registry:
            logger.info(
                "Rotation to value %r cancelled, its process is no longer running",
                self.cursor.next(),
            )
            self._pending_rotation = None
        if self.registry.count() == 0:
            logger.info("All processes have exited, exiting")
            return CoordinatorOutcome.COMPLETED
        return None

    def _on_rotate(self) -> None:
        if self._draining:
            logger.info("Rotation requested while shutting down, ignoring")
            return

        value = self.cursor.next()
        logger.info("Rotating to value %r", value)
        if value in self.registry:
            logger.warning(
                "A process with value %r is already running, cannot run again",
                value,
            )
            return
        if not self._launch(value):
            return
        if not self.cursor.started:
            self.cursor.advance()
            return

        overlap = self._config.overlap_seconds
        if overlap == 0:
            self._complete_rotation()
            return

        self._rotation_id += 1
        self._pending_rotation = self._rotation_id
        logger.info(
            "Waiting %ss before sending TERM to process with value %r",
            overlap,
            self.cursor.current(),
        )
        self._timer.schedule(overlap, self._rotation_id)

    def _on_overlap_elapsed(self, event: OverlapElapsed) -> None:
        if event.rotation_id != self._pending_rotation:
            logger.debug("Ignoring superseded overlap timer %d", event.rotation_id)
            return
        self._pending_rotation = None
        if self._draining:
            logger.info("Overlap elapsed while shutting down, nothing to rotate")
            return
        self._complete_rotation()

    def _complete_rotation(self) -> None:
        value = self.cursor.next()
        if value not in self.registry:
            logger.info("Rotation to value %r cancelled, its process is no longer running", value)
            return
        self._retire_current()
        self.cursor.advance()

    def _retire_current(self) -> None:
        value = self.cursor.current()
        handle = self.registry.get(value)
        if handle is None:
            logger.info("Process with value %r is no longer running, nothing to retire", value)
            return
        logger.info("Sending TERMINATE to process with value %r", value)
        self._send(value, handle, SignalKind.TERMINATE)

    def _launch(self, value: str) -> bool:
        logger.info("Running command with value %r", value)
        try:
            handle = self._runner.start(
                self._config.command_template,
                self._config.placeholder,
                value,
            )
        except ProcessStartError as error:
            logger.error("Failed to run the command with value %r: %s", value, error)
            return False
        self.registry.set(value, handle)
        return True

    def _signal_all(self, kind: SignalKind) -> None:
        def _send_one(value: str, handle: Any) -> None:
            logger.info("Sending %s to process with value %r", kind.name, value)
            self._send(value, handle, kind)

        self.registry.for_each(_send_one)

    def _send(self, value: str, handle: Any, kind: SignalKind) -> None:
        try:
            self._runner.signal(handle, kind)
        except ProcessSignalError as error:
            logger.warning(
                "Failed to send %s to process with value %r: %s",
                kind.name,
                value,
                error,
            )
