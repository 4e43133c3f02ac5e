"""Base callback protocol for gated bus lifecycle hooks.

The bus accepts callbacks as plain callables ``cb(event: str, data: dict)``,
sync or async, and invokes them in order at each lifecycle point:

    payload_delivered   payload passed its chain (or was unmiddled) and was published
    payload_queued      a predicate returned false; payload appended to the pending queue
    payload_rejected    a predicate raised while gating
    reeval_started      re_eval drained a non-empty queue and is about to replay it
    reeval_completed    replay finished

Subclass :class:`BaseCallback` and override only the hooks you need:

    class Counter(BaseCallback):
        async def on_queued(self, event, data, **kw):
            self.queued += 1

    bus = GatedBus(middlewares, callbacks=[Counter()])
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class BusCallback(Protocol):
    """Anything the bus can notify: ``await cb(event, data)`` or ``cb(event, data)``."""

    def __call__(self, event: str, data: dict) -> Any:
        ...


class BaseCallback:
    """Concrete base routing lifecycle events to no-op named hooks."""

    async def __call__(self, event: str, data: dict) -> None:
        if event == "payload_delivered":
            await self.on_delivered(data.get("event", ""), data)
        elif event == "payload_queued":
            await self.on_queued(data.get("event", ""), data)
        elif event == "payload_rejected":
            await self.on_rejected(data.get("event", ""), data)
        elif event == "reeval_started":
            await self.on_reeval_start(data.get("event", ""), data)
        elif event == "reeval_completed":
            await self.on_reeval_complete(data.get("event", ""), data)

    async def on_delivered(self, event: str, data: dict, **kwargs: Any) -> None:
        pass

    async def on_queued(self, event: str, data: dict, **kwargs: Any) -> None:
        pass

    async def on_rejected(self, event: str, data: dict, **kwargs: Any) -> None:
        pass

    async def on_reeval_start(self, event: str, data: dict, **kwargs: Any) -> None:
        pass

    async def on_reeval_complete(self, event: str, data: dict, **kwargs: Any) -> None:
        pass
