from __future__ import annotations

import io
import queue
import shlex
import sys

import allure
import pytest

from alternate.errors import ProcessSignalError, ProcessStartError
from alternate.events import Event, ProcessExited
from alternate.runner import ProcessRunner, SignalKind, render_command

pytestmark = [
    allure.epic("Process Runner"),
    allure.feature("Start, Stream & Signal"),
]


def test_render_command_substitutes_first_placeholder_only() -> None:
    argv = render_command("server 127.0.0.1:%alt --tag %alt", "%alt", "3000")

    assert argv == ["server", "127.0.0.1:3000", "--tag", "%alt"]


def test_render_command_keeps_value_with_spaces_as_one_argument() -> None:
    argv = render_command("echo %alt done", "%alt", "two words; rm -rf /")

    assert argv == ["echo", "two words; rm -rf /", "done"]


def test_render_command_handles_empty_value() -> None:
    assert render_command("echo %alt", "%alt", "") == ["echo", ""]


def test_render_command_placeholder_positions_for_shell_scripts() -> None:
    positional = render_command("sh -c 'serve \"$1\"' sh %alt", "%alt", "a b")
    inside_quotes = render_command("sh -c 'serve %alt'", "%alt", "a b")

    assert positional == ["sh", "-c", 'serve "$1"', "sh", "a b"]
    assert inside_quotes == ["sh", "-c", "serve a", "b"]


@pytest.mark.parametrize("template", ["", "   ", "echo 'unterminated %alt"])
def test_render_command_rejects_unusable_templates(template: str) -> None:
    with pytest.raises(ProcessStartError):
        render_command(template, "%alt", "v")


def test_start_streams_output_and_reports_exit(
    stdout_sink,
    stderr_sink,
    testbin_command,
) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    runner = ProcessRunner(exits=exits, stdout_sink=stdout_sink, stderr_sink=stderr_sink)

    handle = runner.start(testbin_command(exit_after=0), "%alt", "val0")

    event = exits.get(timeout=10)
    assert event == ProcessExited(value="val0", returncode=0)
    assert handle.value == "val0"
    assert handle.pid > 0
    assert handle.returncode == 0
    assert stdout_sink.lines() == ["testbin[val0] | start", "testbin[val0] | exit"]
    assert stderr_sink.lines() == ["testbin[val0] | start", "testbin[val0] | exit"]
    assert exits.empty()


def test_terminate_signal_stops_process(
    stdout_sink,
    stderr_sink,
    testbin_command,
    wait_until,
) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    runner = ProcessRunner(exits=exits, stdout_sink=stdout_sink, stderr_sink=stderr_sink)
    handle = runner.start(testbin_command(), "%alt", "val1")
    assert wait_until(lambda: "testbin[val1] | start" in stdout_sink.lines())

    runner.signal(handle, SignalKind.TERMINATE)

    event = exits.get(timeout=10)
    assert isinstance(event, ProcessExited)
    assert event.value == "val1"
    assert "testbin[val1] | exit" in stdout_sink.lines()


def test_kill_signal_stops_process_ignoring_terminate(
    stdout_sink,
    stderr_sink,
    testbin_command,
    wait_until,
) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    runner = ProcessRunner(exits=exits, stdout_sink=stdout_sink, stderr_sink=stderr_sink)
    handle = runner.start(testbin_command(exit_after_term=-1), "%alt", "stubborn")
    assert wait_until(lambda: "testbin[stubborn] | start" in stdout_sink.lines())

    runner.signal(handle, SignalKind.KILL)

    event = exits.get(timeout=10)
    assert isinstance(event, ProcessExited)
    assert event.returncode is not None and event.returncode < 0
    assert "testbin[stubborn] | exit" not in stdout_sink.lines()


def test_start_failure_raises_and_reports_no_exit(stdout_sink, stderr_sink, tmp_path) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    runner = ProcessRunner(exits=exits, stdout_sink=stdout_sink, stderr_sink=stderr_sink)
    missing = shlex.quote(str(tmp_path / "does-not-exist"))

    with pytest.raises(ProcessStartError, match="Command not found") as excinfo:
        runner.start(f"{missing} %alt", "%alt", "val0")

    assert excinfo.value.value == "val0"
    with pytest.raises(queue.Empty):
        exits.get(timeout=0.2)


def test_signal_after_exit_is_an_error(stdout_sink, stderr_sink) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    runner = ProcessRunner(exits=exits, stdout_sink=stdout_sink, stderr_sink=stderr_sink)
    handle = runner.start(f"{shlex.quote(sys.executable)} -c pass %alt", "%alt", "x")
    exits.get(timeout=10)

    with pytest.raises(ProcessSignalError, match="already exited"):
        runner.signal(handle, SignalKind.TERMINATE)


def test_signal_without_handle_is_an_error(stdout_sink, stderr_sink) -> None:
    runner = ProcessRunner(
        exits=queue.SimpleQueue(),
        stdout_sink=stdout_sink,
        stderr_sink=stderr_sink,
    )

    with pytest.raises(ProcessSignalError):
        runner.signal(None, SignalKind.KILL)


_RAW_OUTPUT_CODE = (
    "import sys; "
    "sys.stdout.buffer.write(b'progress 1\\rprogress 2\\r\\nend\\xff\\n'); "
    "sys.stdout.flush()"
)


class _BinarySink:
    def __init__(self) -> None:
        self.buffer = io.BytesIO()
        self.text: list[str] = []

    def write(self, text: str) -> int:
        self.text.append(text)
        return len(text)

    def flush(self) -> None:
        return None


def test_output_bytes_reach_binary_sink_unmodified(stderr_sink) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    sink = _BinarySink()
    runner = ProcessRunner(exits=exits, stdout_sink=sink, stderr_sink=stderr_sink)
    template = f"{shlex.quote(sys.executable)} -c {shlex.quote(_RAW_OUTPUT_CODE)} %alt"

    runner.start(template, "%alt", "raw")
    exits.get(timeout=10)

    assert sink.buffer.getvalue() == b"progress 1\rprogress 2\r\nend\xff\n"
    assert sink.text == []


def test_text_sink_keeps_carriage_returns_and_undecodable_bytes(stderr_sink) -> None:
    exits: queue.SimpleQueue[Event] = queue.SimpleQueue()
    sink = io.StringIO()
    runner = ProcessRunner(exits=exits, stdout_sink=sink, stderr_sink=stderr_sink)
    template = f"{shlex.quote(sys.executable)} -c {shlex.quote(_RAW_OUTPUT_CODE)} %alt"

    runner.start(template, "%alt", "raw")
    exits.get(timeout=10)

    received = sink.getvalue()
    assert received == "progress 1\rprogress 2\r\nend\udcff\n"
    assert received.encode("utf-8", errors="surrogateescape") == (
        b"progress 1\rprogress 2\r\nend\xff\n"
    )
