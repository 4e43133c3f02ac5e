"""Gated bus: publish/subscribe where each event's middleware chain decides
whether a payload is delivered now or parked in a pending queue.

Flow per ``emit``:
  1. Validate the payload against its declared type (if the event has one)
  2. Unmiddled event -> publish immediately
  3. Run the event's predicates concurrently
  4. All true -> publish; any false -> append to the event's pending queue

Queued payloads stay put until the caller runs ``re_eval`` (replay them
through the same algorithm against the current predicate state) or
``clear_queue`` (discard them).  Listener removal is refused while an event
still has pending payloads.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
from typing import Any, Mapping, Optional, Sequence

from gatebus.config import GateBusConfig, config as default_config
from gatebus.exceptions import EventInQueue, MiddlewareEvaluationFailure
from gatebus.middleware import MiddlewareTable, PredicateError
from gatebus.queue import PendingQueueStore
from gatebus.registry import ListenerRegistry
from gatebus.types import (
    DeliveryMode,
    GateOutcome,
    Listener,
    PayloadState,
    Predicate,
    PredicateErrorPolicy,
)

logger = logging.getLogger(__name__)

# Replays running in the current task, so a listener re-entering re_eval is detected
_replay_tokens: contextvars.ContextVar = contextvars.ContextVar("_gatebus_replays", default=frozenset())


class GatedBus:
    """Publish/subscribe bus with per-event middleware gating and retry queues.

    Usage::

        bus = GatedBus({"user.login": [lambda user: user != "blocked"]})
        bus.on("user.login", greet)
        await bus.emit("user.login", "blocked")   # queued
        await bus.re_eval("user.login")           # retried against current predicates
    """

    def __init__(
        self,
        middlewares: Mapping[str, Sequence[Predicate]] | MiddlewareTable,
        *,
        payload_types: Optional[Mapping[str, Any]] = None,
        registry: Optional[ListenerRegistry] = None,
        config: Optional[GateBusConfig] = None,
        callbacks: list = None,
    ):
        if isinstance(middlewares, MiddlewareTable):
            if payload_types:
                raise TypeError("payload_types must be given to MiddlewareTable, not GatedBus")
            self.middlewares = middlewares
        else:
            self.middlewares = MiddlewareTable(middlewares, payload_types)
        self.registry = registry or ListenerRegistry()
        self.config = config or default_config
        self.callbacks = callbacks or []
        self._queues = PendingQueueStore()
        self._reeval_locks: dict[str, asyncio.Lock] = {}
        self._active_replays: dict[str, object] = {}

    # ── Subscription ───────────────────────────────────────────────────

    def on(self, event: str, listener: Listener) -> None:
        """Register *listener* for *event*.  No gating involved."""
        self.registry.subscribe(event, listener)

    def off(self, event: str, listener: Listener, clear_queue: bool = False) -> None:
        """Remove *listener* from *event*.

        Args:
            clear_queue: Discard the event's pending payloads first.

        Raises:
            EventInQueue: the event still has pending payloads after the
                optional clear.  The listener is left registered.
        """
        self._guard_removal(event, clear_queue)
        self.registry.unsubscribe(event, listener)

    def off_all(self, event: str, clear_queue: bool = False) -> None:
        """Remove every listener of *event*.  Same queue guard as :meth:`off`."""
        self._guard_removal(event, clear_queue)
        self.registry.unsubscribe_all(event)

    def _guard_removal(self, event: str, clear_queue: bool) -> None:
        if clear_queue:
            self.clear_queue(event)
        # Checked regardless of clear_queue: removal never strands pending payloads.
        if self._queues.has_pending(event):
            pending = self._queues.size(event)
            logger.warning(
                "Refused listener removal for event=%r: %d payload(s) pending", event, pending,
            )
            raise EventInQueue(
                f"Cannot remove listeners of '{event}' while {pending} payload(s) are queued",
                event=event,
                pending=pending,
            )

    # ── Publishing ─────────────────────────────────────────────────────

    async def emit(self, event: str, payload: Any = None) -> None:
        """Gate *payload* through *event*'s middleware chain.

        Delivers immediately when every predicate passes (or the event has no
        chain); otherwise appends the payload to the event's pending queue.

        Raises:
            PayloadValidationError: payload does not match the event's declared type.
            MiddlewareEvaluationFailure: a predicate raised and the error policy
                is ``raise``.  Nothing is delivered or queued.
        """
        outcome = await self._gate(event, payload, replay=False)
        await self._settle(event, payload, outcome, replay=False)

    async def _gate(self, event: str, payload: Any, replay: bool) -> GateOutcome:
        """Decide where *payload* goes without delivering or queueing it."""
        self.middlewares.validate(event, payload)

        if not self.middlewares.is_gated(event):
            return GateOutcome(event=event, state=PayloadState.DELIVERED, gated=False)

        try:
            results = await self.middlewares.evaluate(event, payload)
        except PredicateError as exc:
            await self._fire_callbacks("payload_rejected", self._data(
                event, payload,
                state=PayloadState.SUBMITTED.value,
                predicate=exc.predicate,
                error=f"{type(exc.error).__name__}: {exc.error}",
                replay=replay,
            ))
            if self.config.predicate_error_policy == PredicateErrorPolicy.QUEUE:
                logger.warning(
                    "Middleware %s raised for event=%r, queueing payload: %s",
                    exc.predicate, event, exc.error,
                )
                return GateOutcome(event=event, state=PayloadState.QUEUED)
            raise MiddlewareEvaluationFailure(
                f"Middleware {exc.predicate} raised for event '{event}': {exc.error}",
                event=event,
                predicate=exc.predicate,
            ) from exc.error

        state = PayloadState.DELIVERED if all(results) else PayloadState.QUEUED
        return GateOutcome(event=event, state=state, results=results)

    async def _settle(
        self, event: str, payload: Any, outcome: GateOutcome, replay: bool,
    ) -> None:
        """Deliver or enqueue *payload* according to *outcome*."""
        if outcome.passed:
            await self._deliver(event, payload)
            logger.debug("Delivered payload for event=%r", event)
            await self._fire_callbacks("payload_delivered", self._data(
                event, payload,
                state=outcome.state.value, gated=outcome.gated, replay=replay,
            ))
            return

        pending = self._queues.append(event, payload)
        logger.debug("Queued payload for event=%r (pending=%d)", event, pending)
        await self._fire_callbacks("payload_queued", self._data(
            event, payload,
            state=outcome.state.value, pending=pending, results=outcome.results, replay=replay,
        ))

    async def _deliver(self, event: str, payload: Any) -> None:
        mode = self.config.delivery_mode
        if mode == DeliveryMode.SERIAL:
            await self.registry.publish_serial(event, payload)
        elif mode == DeliveryMode.PARALLEL:
            await self.registry.publish_parallel(event, payload)
        else:
            self.registry.publish(event, payload)

    # ── Pending queue ──────────────────────────────────────────────────

    async def re_eval(self, event: str) -> None:
        """Replay every pending payload of *event* in FIFO order.

        The queue is drained before the replay, so payloads that fail again
        are re-queued behind anything emitted meanwhile.  Concurrent calls for
        the same event are serialized unless ``serialize_reeval`` is off.

        If the replay is interrupted (a predicate raises or the task is
        cancelled), every payload not yet delivered or re-queued is appended
        back to the queue, in order, before the error propagates.

        A listener that calls ``re_eval`` for the event whose replay is
        delivering to it returns immediately: that replay already owns the
        drained payloads.
        """
        if self._active_replays.get(event) in _replay_tokens.get():
            logger.debug("Nested re_eval for event=%r inside its own replay, skipping", event)
            return
        if not self.config.serialize_reeval:
            await self._re_eval(event)
            return
        lock = self._reeval_locks.setdefault(event, asyncio.Lock())
        async with lock:
            await self._re_eval(event)

    async def _re_eval(self, event: str) -> None:
        snapshot = self._queues.drain(event)
        if not snapshot:
            return

        token = object()
        self._active_replays[event] = token
        context_token = _replay_tokens.set(_replay_tokens.get() | {token})

        logger.info("Re-evaluating %d pending payload(s) for event=%r", len(snapshot), event)
        settled = 0
        delivered = 0
        try:
            await self._fire_callbacks("reeval_started", {"event": event, "pending": len(snapshot)})
            for payload in snapshot:
                outcome = await self._gate(event, payload, replay=True)
                # From here the payload is owned by delivery or the queue.
                settled += 1
                await self._settle(event, payload, outcome, replay=True)
                if outcome.passed:
                    delivered += 1
        except BaseException:
            self._queues.extend(event, snapshot[settled:])
            logger.warning(
                "Re-evaluation of event=%r aborted; %d payload(s) re-queued",
                event, len(snapshot) - settled,
            )
            raise
        finally:
            _replay_tokens.reset(context_token)
            if self._active_replays.get(event) is token:
                del self._active_replays[event]

        requeued = len(snapshot) - delivered
        logger.info(
            "Re-evaluated event=%r: delivered=%d requeued=%d", event, delivered, requeued,
        )
        await self._fire_callbacks("reeval_completed", {
            "event": event,
            "replayed": len(snapshot),
            "delivered": delivered,
            "requeued": requeued,
        })

    def clear_queue(self, event: str) -> int:
        """Discard every pending payload of *event* without delivering.  Returns the count."""
        dropped = self._queues.clear(event)
        if dropped:
            logger.info(
                "Discarded %d pending payload(s) for event=%r (%s)",
                dropped, event, PayloadState.DISCARDED.value,
            )
        return dropped

    def pending(self, event: str) -> tuple:
        """Read-only view of *event*'s pending payloads, oldest first."""
        return self._queues.snapshot(event)

    # ── Callbacks ──────────────────────────────────────────────────────

    def _data(self, event: str, payload: Any, **fields: Any) -> dict:
        data = {"event": event, **fields}
        if self.config.log_payloads:
            data["payload"] = repr(payload)[: self.config.payload_repr_limit]
        return data

    async def _fire_callbacks(self, event: str, data: dict) -> None:
        """Invoke all registered callbacks for a lifecycle event."""
        for cb in self.callbacks:
            try:
                result = cb(event, data)
                if inspect.isawaitable(result):
                    await result
            except Exception as cb_exc:
                logger.warning(f"[GatedBus] Callback error on '{event}': {cb_exc}")
