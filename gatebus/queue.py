"""Pending queue store: payloads that failed their gate, held per event in FIFO order.

None of the operations here suspend, so on a single event loop every call is
atomic with respect to interleaved ``emit`` coroutines.  An event whose queue
is empty has no entry at all.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable


class PendingQueueStore:
    """Event name -> FIFO of pending payloads."""

    def __init__(self) -> None:
        self._queues: dict[str, deque] = {}

    def append(self, event: str, payload: Any) -> int:
        """Append *payload* to the tail of *event*'s queue.  Returns the new size."""
        queue = self._queues.setdefault(event, deque())
        queue.append(payload)
        return len(queue)

    def drain(self, event: str) -> list:
        """Remove and return everything queued for *event*, oldest first."""
        queue = self._queues.pop(event, None)
        return list(queue) if queue else []

    def extend(self, event: str, payloads: Iterable[Any]) -> int:
        """Append *payloads* to the tail in order.  Returns the new size."""
        queue = self._queues.setdefault(event, deque())
        queue.extend(payloads)
        if not queue:
            del self._queues[event]
        return len(queue)

    def clear(self, event: str) -> int:
        """Discard *event*'s queue.  Returns how many payloads were dropped."""
        queue = self._queues.pop(event, None)
        return len(queue) if queue else 0

    def has_pending(self, event: str) -> bool:
        return bool(self._queues.get(event))

    def size(self, event: str) -> int:
        return len(self._queues.get(event, ()))

    def snapshot(self, event: str) -> tuple:
        return tuple(self._queues.get(event, ()))

    def events(self) -> list[str]:
        return [event for event, queue in self._queues.items() if queue]
