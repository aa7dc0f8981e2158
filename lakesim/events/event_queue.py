"""Outbound event queue.

The core never calls into the presentation layer. Systems append events as
they happen; the host drains the queue once per tick and gets them in
emission order. Nothing is dispatched re-entrantly while a phase iterates.
"""

from __future__ import annotations

from collections import Counter
from typing import List, TypeVar

T = TypeVar("T")


class EventQueue:
    """FIFO buffer of domain events.

    Example:
        queue = EventQueue()
        queue.emit(Strike(agent_id=7, felt=True, tick=120))
        for event in queue.drain():
            presenter.handle(event)
    """

    def __init__(self) -> None:
        self._pending: List[object] = []
        self._emitted_total = 0

    def emit(self, event: object) -> None:
        self._pending.append(event)
        self._emitted_total += 1

    def drain(self) -> List[object]:
        """Return all pending events in emission order and clear the queue."""
        events, self._pending = self._pending, []
        return events

    def of_type(self, event_type: type[T]) -> List[T]:
        return [e for e in self._pending if isinstance(e, event_type)]

    @property
    def emitted_total(self) -> int:
        return self._emitted_total

    def counts_by_type(self) -> dict[str, int]:
        return dict(Counter(type(e).__name__ for e in self._pending))

    def __len__(self) -> int:
        return len(self._pending)
