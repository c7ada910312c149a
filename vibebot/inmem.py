"""Recency-only, list-backed character memory."""

from __future__ import annotations

import threading

from vibebot.events import Event, text_of

__all__ = ["InMemMemory"]


class InMemMemory:
    """Keeps the most recent events in a list and ignores retrieval queries.

    Useful for tests and for runs with no embedding provider. Safe for
    concurrent use: one thread may record while another reads.
    """

    def __init__(self, cap: int = 0) -> None:
        """``cap`` bounds the number of kept events; ``cap`` <= 0 disables the bound."""
        self._cap = cap
        self._lock = threading.Lock()
        self._events: list[Event] = []

    def record(self, event: Event) -> None:
        """Append an event, dropping the oldest ones past the cap."""
        with self._lock:
            self._events.append(event)
            if self._cap > 0 and len(self._events) > self._cap:
                del self._events[: len(self._events) - self._cap]

    def retrieve(self, query: str, k: int) -> list[Event]:
        """Return the most recent ``k`` events, oldest first; ``k`` <= 0 means all."""
        with self._lock:
            count = len(self._events)
            if k <= 0 or k > count:
                k = count
            return list(self._events[count - k :])

    def summary(self) -> str:
        """Render every recorded event as one line each."""
        with self._lock:
            events = list(self._events)
        return "".join(
            f"- {event.actor}/{event.kind!s}: {text_of(event)}\n" for event in events
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)