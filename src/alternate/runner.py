"""Subprocess runner for rotated commands."""

from __future__ import annotations

import enum
import logging
import queue
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from typing import IO, Protocol

from alternate.errors import ProcessSignalError, ProcessStartError
from alternate.events import Event, ProcessExited

logger = logging.getLogger(__name__)


class SignalKind(enum.Enum):
    """Signals the coordinator may send; the runner maps them to the platform."""

    TERMINATE = "terminate"
    KILL = "kill"


class TextSink(Protocol):
    """Text stream; output goes to its binary ``buffer`` when it has one."""

    def write(self, text: str, /) -> object: ...


@dataclass(slots=True)
class ProcessHandle:
    """Running process started for one rotation value."""

    value: str
    command: list[str]
    process: subprocess.Popen[bytes]
    _pumps: list[threading.Thread] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode


def render_command(command_template: str, placeholder: str, value: str) -> list[str]:
    """Substitute ``value`` for the first ``placeholder`` and split into argv."""

    stripped = command_template.strip()
    if not stripped:
        raise ProcessStartError("Command template is empty.", value=value)
    rendered = stripped.replace(placeholder, shlex.quote(value), 1)
    try:
        argv = shlex.split(rendered)
    except ValueError as error:
        raise ProcessStartError(
            f"Cannot parse command {rendered!r}: {error}",
            value=value,
        ) from error
    if not argv:
        raise ProcessStartError("Command template rendered empty command.", value=value)
    return argv


class ProcessRunner:
    """Start commands without blocking and report their exit on a queue.

    Output of every child is copied line by line, byte for byte, to the configured
    sinks. Sinks without a binary ``buffer`` get the bytes decoded as UTF-8 with
    ``surrogateescape``, so undecodable bytes survive a round trip.
    Exactly one ``ProcessExited`` is put on ``exits`` per successful start, after
    the child has exited and both of its streams are drained.
    """

    def __init__(
        self,
        *,
        exits: queue.SimpleQueue[Event],
        stdout_sink: TextSink,
        stderr_sink: TextSink,
    ) -> None:
        self._exits = exits
        self._stdout_sink = stdout_sink
        self._stderr_sink = stderr_sink
        self._sink_lock = threading.Lock()

    def start(self, command_template: str, placeholder: str, value: str) -> ProcessHandle:
        argv = render_command(command_template, placeholder, value)
        try:
            process = subprocess.Popen(  # noqa: S603
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as error:
            raise ProcessStartError(f"Command not found: {argv[0]}", value=value) from error
        except OSError as error:
            raise ProcessStartError(
                f"Failed to start command {argv[0]}: {error}",
                value=value,
            ) from error

        handle = ProcessHandle(value=value, command=argv, process=process)
        handle._pumps = [
            self._spawn_pump(process.stdout, self._stdout_sink, value, "stdout"),
            self._spawn_pump(process.stderr, self._stderr_sink, value, "stderr"),
        ]
        threading.Thread(
            target=self._wait,
            args=(handle,),
            daemon=True,
            name=f"alternate-wait-{process.pid}",
        ).start()
        logger.debug("Started pid %d for value %r: %s", process.pid, value, argv)
        return handle

    def signal(self, handle: ProcessHandle | None, kind: SignalKind) -> None:
        """Send ``kind`` to the process behind ``handle`` without waiting."""

        if handle is None:
            raise ProcessSignalError("Cannot signal a missing process handle.")
        if handle.process.returncode is not None:
            raise ProcessSignalError(
                f"Process {handle.pid} for value {handle.value!r} has already exited.",
            )
        try:
            if kind is SignalKind.KILL:
                handle.process.kill()
            else:
                handle.process.terminate()
        except OSError as error:
            raise ProcessSignalError(
                f"Failed to signal process {handle.pid} for value {handle.value!r}: {error}",
            ) from error

    def _spawn_pump(
        self,
        stream: IO[bytes] | None,
        sink: TextSink,
        value: str,
        name: str,
    ) -> threading.Thread:
        thread = threading.Thread(
            target=self._pump,
            args=(stream, sink),
            daemon=True,
            name=f"alternate-{name}-{value}",
        )
        thread.start()
        return thread

    def _pump(self, stream: IO[bytes] | None, sink: TextSink) -> None:
        if stream is None:
            return
        buffer = getattr(sink, "buffer", None)
        flush = getattr(sink, "flush", None)
        with stream:
            for line in iter(stream.readline, b""):
                with self._sink_lock:
                    if buffer is not None:
                        if flush is not None:
                            flush()
                        buffer.write(line)
                        buffer.flush()
                    else:
                        sink.write(line.decode("utf-8", errors="surrogateescape"))
                        if flush is not None:
                            flush()

    def _wait(self, handle: ProcessHandle) -> None:
        returncode = handle.process.wait()
        for pump in handle._pumps:
            pump.join()
        self._exits.put(ProcessExited(value=handle.value, returncode=returncode))
