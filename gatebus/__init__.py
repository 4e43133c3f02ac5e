"""GateBus: in-process publish/subscribe with middleware-gated delivery.

Usage:
    from gatebus import GatedBus

    bus = GatedBus({"user.login": [lambda user: user != "blocked"]})
    bus.on("user.login", greet)
    await bus.emit("user.login", "alice")     # delivered
    await bus.emit("user.login", "blocked")   # queued until re_eval passes it
"""

from gatebus.bus import GatedBus
from gatebus.config import GateBusConfig
from gatebus.middleware import MiddlewareTable
from gatebus.queue import PendingQueueStore
from gatebus.registry import ListenerRegistry
from gatebus.types import (
    DeliveryMode, PredicateErrorPolicy, PayloadState, GateOutcome,
)
from gatebus.exceptions import (
    GateBusError, EventInQueue, MiddlewareEvaluationFailure,
    PayloadValidationError, MiddlewareConfigError,
)
from gatebus.callbacks import BaseCallback, BusCallback, LoggingCallback
from gatebus.version import __version__

__all__ = [
    "GatedBus", "GateBusConfig", "MiddlewareTable", "PendingQueueStore",
    "ListenerRegistry",
    "DeliveryMode", "PredicateErrorPolicy", "PayloadState", "GateOutcome",
    "GateBusError", "EventInQueue", "MiddlewareEvaluationFailure",
    "PayloadValidationError", "MiddlewareConfigError",
    "BaseCallback", "BusCallback", "LoggingCallback",
    "__version__",
]
