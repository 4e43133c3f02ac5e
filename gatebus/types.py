"""Shared enums and data shapes. Everything imports from here."""

from enum import Enum
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────

class DeliveryMode(str, Enum):
    SYNC = "sync"          # fire-and-forget fan-out, caller never suspends
    SERIAL = "serial"      # await each listener in registration order
    PARALLEL = "parallel"  # start all listeners, await them together

class PredicateErrorPolicy(str, Enum):
    RAISE = "raise"  # propagate as MiddlewareEvaluationFailure
    QUEUE = "queue"  # treat as a failed gate and enqueue

class PayloadState(str, Enum):
    SUBMITTED = "submitted"  # evaluated but neither delivered nor queued (predicate raised)
    DELIVERED = "delivered"
    QUEUED = "queued"
    DISCARDED = "discarded"


# ── Type aliases ───────────────────────────────────────────────────────

Predicate = Callable[[Any], Union[bool, Awaitable[bool]]]
Listener = Callable[[Any], Any]


# ── Data Shapes ────────────────────────────────────────────────────────

class GateOutcome(BaseModel):
    """Result of running one payload through its event's middleware chain."""
    event: str
    state: PayloadState
    results: list[bool] = Field(default_factory=list)  # one per predicate, chain order
    gated: bool = True  # False for unmiddled events

    @property
    def passed(self) -> bool:
        return self.state == PayloadState.DELIVERED
