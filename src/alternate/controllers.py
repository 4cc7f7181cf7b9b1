"""Controller wiring configuration, logging, runner and coordinator for the CLI."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from typing import TextIO

from alternate.config import RotationConfig, Settings, parse_arguments, resolve_signal
from alternate.coordinator import CoordinatorOutcome, RotationCoordinator
from alternate.events import Event
from alternate.log import configure_logging
from alternate.runner import ProcessRunner
from alternate.signals import install_signal_handlers

logger = logging.getLogger(__name__)

EXIT_CODES = {
    CoordinatorOutcome.COMPLETED: 0,
    CoordinatorOutcome.KILLED: 0,
    CoordinatorOutcome.START_FAILED: 1,
}


@dataclass(slots=True)
class RunCommand:
    """CLI input for one supervisor run."""

    arguments: tuple[str, ...]
    placeholder: str | None
    log_stream: TextIO
    stdout: TextIO
    stderr: TextIO
    install_signals: bool = True


@dataclass(slots=True)
class RunResult:
    """Supervisor run outcome for CLI reporting."""

    config: RotationConfig
    outcome: CoordinatorOutcome

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.outcome]


class AlternateCliController:
    """CLI controller for the rotation supervisor."""

    def prepare(self, command: RunCommand) -> tuple[Settings, RotationConfig]:
        """Load settings and parse arguments; raise ``ConfigError`` if invalid."""

        settings = Settings.from_env()
        if command.placeholder is not None:
            settings.placeholder = command.placeholder
        settings.validate()
        config = parse_arguments(command.arguments, placeholder=settings.placeholder)
        return settings, config

    def run(self, command: RunCommand) -> RunResult:
        """Supervise the command until all processes exit or a kill is requested."""

        settings, config = self.prepare(command)
        configure_logging(
            command.log_stream,
            level=settings.log_level_number,
            prefix=settings.log_prefix,
        )
        events: queue.SimpleQueue[Event] = queue.SimpleQueue()
        runner = ProcessRunner(exits=events, stdout_sink=command.stdout, stderr_sink=command.stderr)
        coordinator = RotationCoordinator(config, runner, events)

        if command.install_signals:
            rotate_signal = resolve_signal(settings.rotate_signal)
            with install_signal_handlers(coordinator, rotate_signal=rotate_signal):
                outcome = coordinator.run()
        else:
            outcome = coordinator.run()
        logger.debug("Supervisor finished with outcome %s", outcome.value)
        return RunResult(config=config, outcome=outcome)
