"""Typed exception hierarchy. Every error GateBus can raise."""


class GateBusError(Exception):
    """Base exception for all GateBus errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class EventInQueue(GateBusError):
    """Listener removal refused because the event still has pending payloads."""
    def __init__(self, message: str, event: str = "", pending: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.event = event
        self.pending = pending


class MiddlewareEvaluationFailure(GateBusError):
    """A middleware predicate raised while gating a payload.

    The original exception is available as ``__cause__``.
    """
    def __init__(self, message: str, event: str = "", predicate: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.event = event
        self.predicate = predicate


class PayloadValidationError(GateBusError):
    """Payload does not match the type declared for its event."""
    def __init__(self, message: str, event: str = "", errors: list = None, **kwargs):
        super().__init__(message, **kwargs)
        self.event = event
        self.errors = errors or []


class MiddlewareConfigError(GateBusError):
    """Middleware table is malformed (non-callable predicate, bad event key)."""
    pass
