"""One-shot overlap timer feeding the coordinator queue."""

from __future__ import annotations

import queue
import threading

from alternate.events import Event, OverlapElapsed


class OverlapTimer:
    """Schedule ``OverlapElapsed`` notifications after the overlap delay.

    Timers are never cancelled while the loop runs; the coordinator re-checks
    the registry when a notification arrives. ``cancel_all`` only tidies up
    pending threads once the loop has returned.
    """

    def __init__(self, events: queue.SimpleQueue[Event]) -> None:
        self._events = events
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()

    def schedule(self, delay_seconds: float, rotation_id: int) -> None:
        timer = threading.Timer(
            delay_seconds,
            self._events.put,
            args=(OverlapElapsed(rotation_id=rotation_id),),
        )
        timer.daemon = True
        timer.name = f"alternate-overlap-{rotation_id}"
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
