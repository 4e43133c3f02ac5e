"""Middleware table: the static, per-event predicate chains that gate delivery.

A predicate takes the payload and returns ``bool`` or an awaitable of
``bool``.  Both kinds are wrapped by :func:`as_async_predicate` so the table
evaluates every chain through a single async call path.

Events may also declare a payload type.  Declared types are checked with a
strict pydantic ``TypeAdapter`` before the chain runs; the validated value is
discarded and the caller's original object continues through the bus.
"""

from __future__ import annotations

import asyncio
import inspect
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional, Sequence

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from gatebus.exceptions import MiddlewareConfigError, PayloadValidationError
from gatebus.types import Predicate

AsyncPredicate = Callable[[Any], Awaitable[bool]]


def predicate_name(predicate: Predicate) -> str:
    return getattr(predicate, "__qualname__", None) or repr(predicate)


def as_async_predicate(predicate: Predicate) -> AsyncPredicate:
    """Wrap *predicate* so calling it always yields an awaitable of bool."""

    async def _call(payload: Any) -> bool:
        result = predicate(payload)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    _call.__qualname__ = predicate_name(predicate)
    _call.__wrapped__ = predicate
    return _call


class PredicateError(Exception):
    """Internal carrier pairing a predicate failure with the predicate that raised."""

    def __init__(self, predicate: str, error: Exception):
        super().__init__(f"{predicate}: {error}")
        self.predicate = predicate
        self.error = error


class MiddlewareTable:
    """Immutable mapping of event name -> ordered predicate chain."""

    def __init__(
        self,
        chains: Mapping[str, Sequence[Predicate]],
        payload_types: Optional[Mapping[str, Any]] = None,
    ):
        built: dict[str, tuple[AsyncPredicate, ...]] = {}
        for event, predicates in chains.items():
            if not isinstance(event, str):
                raise MiddlewareConfigError(
                    f"Event names must be strings, got {type(event).__name__}",
                    details={"event": repr(event)},
                )
            wrapped = []
            for index, predicate in enumerate(predicates):
                if not callable(predicate):
                    raise MiddlewareConfigError(
                        f"Middleware #{index} for event '{event}' is not callable",
                        details={"event": event, "index": index},
                    )
                wrapped.append(as_async_predicate(predicate))
            built[event] = tuple(wrapped)
        self._chains = MappingProxyType(built)

        adapters = {}
        for event, payload_type in (payload_types or {}).items():
            try:
                adapters[event] = TypeAdapter(payload_type)
            except (PydanticUserError, TypeError) as exc:
                raise MiddlewareConfigError(
                    f"Payload type for event '{event}' is not usable: {exc}",
                    details={"event": event, "payload_type": repr(payload_type)},
                ) from exc
        self._adapters = MappingProxyType(adapters)

    def __contains__(self, event: object) -> bool:
        return event in self._chains

    def __len__(self) -> int:
        return len(self._chains)

    def __iter__(self) -> Iterator[str]:
        return iter(self._chains)

    def events(self) -> list[str]:
        return list(self._chains)

    def is_gated(self, event: str) -> bool:
        """True when *event* has an entry in the table, even an empty chain."""
        return event in self._chains

    def chain(self, event: str) -> tuple[AsyncPredicate, ...]:
        return self._chains.get(event, ())

    def validate(self, event: str, payload: Any) -> None:
        """Check *payload* against the type declared for *event*, if any.

        Raises:
            PayloadValidationError: payload does not strictly match.
        """
        adapter = self._adapters.get(event)
        if adapter is None:
            return
        try:
            adapter.validate_python(payload, strict=True)
        except ValidationError as exc:
            raise PayloadValidationError(
                f"Payload for event '{event}' failed validation",
                event=event,
                errors=exc.errors(include_url=False),
            ) from exc

    async def evaluate(self, event: str, payload: Any) -> list[bool]:
        """Run every predicate of *event* against *payload* concurrently.

        Returns one bool per predicate in chain order.  The first predicate
        failure (in chain order) is raised as :class:`PredicateError`.
        """
        chain = self.chain(event)
        if not chain:
            return []
        results = await asyncio.gather(
            *(predicate(payload) for predicate in chain),
            return_exceptions=True,
        )
        for predicate, result in zip(chain, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                raise PredicateError(predicate.__qualname__, result) from result
        return list(results)
