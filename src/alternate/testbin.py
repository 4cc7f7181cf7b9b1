"""Local stand-in server for supervisor integration tests."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
import time

_POLL_SECONDS = 0.02


def main(argv: list[str] | None = None) -> int:
    """Print start/exit markers and exit on a timer or after TERM/INT."""

    parser = argparse.ArgumentParser()
    parser.add_argument("value")
    parser.add_argument(
        "--exit-after",
        type=float,
        default=-1.0,
        help="Seconds after start before exiting on its own; negative never.",
    )
    parser.add_argument(
        "--exit-after-term",
        type=float,
        default=0.0,
        help="Seconds between TERM/INT and exiting; negative ignores the signal.",
    )
    args = parser.parse_args(argv)

    terminated = threading.Event()

    def _on_term(_signum: int, _frame: object | None) -> None:
        if args.exit_after_term >= 0:
            terminated.set()

    signal.signal(signal.SIGTERM, _on_term)
    signal.signal(signal.SIGINT, _on_term)

    label = f"testbin[{args.value}] | "
    _emit(label, "start")

    deadline = None if args.exit_after < 0 else time.monotonic() + args.exit_after
    while True:
        if terminated.wait(timeout=_POLL_SECONDS):
            time.sleep(args.exit_after_term)
            break
        if deadline is not None and time.monotonic() >= deadline:
            break

    _emit(label, "exit")
    return 0


def _emit(label: str, message: str) -> None:
    print(f"{label}{message}", flush=True)
    print(f"{label}{message}", file=sys.stderr, flush=True)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
