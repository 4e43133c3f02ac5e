"""In-process listener registry consumed by the gated bus.

Listeners are plain callables (sync or async).  Each event keeps an ordered,
identity de-duplicated set of listeners; every fan-out snapshots that set
first so that listeners added or removed during delivery don't affect the
delivery in progress.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from gatebus.types import Listener

logger = logging.getLogger(__name__)


class ListenerRegistry:
    """Event name -> ordered set of listeners.

    Usage::

        registry = ListenerRegistry()
        registry.subscribe("order.placed", on_order)
        registry.publish("order.placed", {"order_id": "..."})
    """

    def __init__(self) -> None:
        # dict keys double as an insertion-ordered set
        self._listeners: dict[str, dict[Listener, None]] = {}
        self._background: set[asyncio.Future] = set()

    def subscribe(self, event: str, listener: Listener) -> None:
        """Register *listener* for *event*.  Registering the same callable twice is a no-op."""
        self._listeners.setdefault(event, {})[listener] = None

    def unsubscribe(self, event: str, listener: Listener) -> None:
        """Remove *listener* from *event*.  Silently ignores missing."""
        listeners = self._listeners.get(event)
        if listeners is None:
            return
        listeners.pop(listener, None)
        if not listeners:
            del self._listeners[event]

    def unsubscribe_all(self, event: str) -> None:
        self._listeners.pop(event, None)

    def has_subscribers(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def _snapshot(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, ()))

    def publish(self, event: str, payload: Any = None) -> None:
        """Fire-and-forget fan-out to every current listener of *event*.

        Awaitables returned by async listeners are scheduled on the running
        loop and not awaited.  Exceptions raised by individual listeners are
        logged and swallowed so that one failing listener cannot block the rest.
        """
        for listener in self._snapshot(event):
            try:
                result = listener(payload)
            except Exception:
                logger.exception("Listener raised for event=%r", event)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)

    async def publish_serial(self, event: str, payload: Any = None) -> None:
        """Invoke listeners one at a time, awaiting each before the next."""
        for listener in self._snapshot(event):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener raised for event=%r", event)

    async def publish_parallel(self, event: str, payload: Any = None) -> None:
        """Invoke all listeners, then await their results together."""
        pending = []
        for listener in self._snapshot(event):
            try:
                result = listener(payload)
            except Exception:
                logger.exception("Listener raised for event=%r", event)
                continue
            if inspect.isawaitable(result):
                pending.append(result)
        if not pending:
            return
        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    "Listener raised for event=%r", event, exc_info=result,
                )

    async def drain_background(self) -> None:
        """Wait for every listener scheduled by :meth:`publish` to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _schedule(self, event: str, awaitable: Any) -> None:
        future = asyncio.ensure_future(awaitable)
        self._background.add(future)

        def _done(fut: asyncio.Future) -> None:
            self._background.discard(fut)
            if not fut.cancelled() and fut.exception() is not None:
                logger.error(
                    "Listener raised for event=%r", event, exc_info=fut.exception(),
                )

        future.add_done_callback(_done)
