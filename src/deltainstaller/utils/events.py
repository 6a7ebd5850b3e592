"""Per-run event log: phases and log lines attached to the response."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from deltainstaller.models.response import Event, EventType
from deltainstaller.utils.output import console


class EventLog:
    """Accumulates events for one installer run.

    Each Workspace owns its own log; there is no process-wide instance.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []

    def _add(self, type: EventType, text: str = "") -> None:
        self._events.append(
            Event(
                type=type,
                text=text,
                pid=os.getpid(),
                tid=threading.get_native_id(),
                timestamp_ns=time.time_ns(),
            )
        )

    def log(self, text: str) -> None:
        """Record an informational message."""
        self._add(EventType.LOG_OUT, text)

    def error(self, text: str) -> None:
        """Record an error message and echo it on stderr."""
        self._add(EventType.LOG_ERR, text)
        console.print_error(text)

    def begin_phase(self, name: str) -> None:
        self._add(EventType.BEGIN_PHASE, name)

    def end_phase(self) -> None:
        self._add(EventType.END_PHASE)

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """Bracket a block with begin/end phase events."""
        self.begin_phase(name)
        try:
            yield
        finally:
            self.end_phase()

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    def consume(self) -> list[Event]:
        """Return all recorded events and clear the log."""
        events, self._events = self._events, []
        return events
