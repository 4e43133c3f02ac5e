"""Structured JSON logging callback for gated bus lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from gatebus.callbacks.base import BaseCallback

logger = logging.getLogger("gatebus.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _scalar(value: Any) -> Any:
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, list):
        return [_scalar(v) for v in value]
    return str(value)[:200]


class LoggingCallback(BaseCallback):
    """Emits one JSON log line per lifecycle event.

    Each line is a self-contained JSON object with:
      - event: lifecycle event name (payload_queued, reeval_completed, ...)
      - ts: ISO-8601 UTC timestamp
      - bus_event: the bus event name the payload was emitted on
      - the remaining fields of the callback data

    Log level: INFO for normal events, WARNING for rejected payloads.
    Logger name: gatebus.audit (configure in your logging setup)
    """

    def _line(self, kind: str, event: str, data: dict) -> str:
        fields = {k: _scalar(v) for k, v in data.items() if k != "event"}
        return json.dumps({"event": kind, "ts": _now(), "bus_event": event, **fields})

    async def on_delivered(self, event: str, data: dict, **kwargs: Any) -> None:
        logger.info(self._line("payload_delivered", event, data))

    async def on_queued(self, event: str, data: dict, **kwargs: Any) -> None:
        logger.info(self._line("payload_queued", event, data))

    async def on_rejected(self, event: str, data: dict, **kwargs: Any) -> None:
        logger.warning(self._line("payload_rejected", event, data))

    async def on_reeval_start(self, event: str, data: dict, **kwargs: Any) -> None:
        logger.info(self._line("reeval_started", event, data))

    async def on_reeval_complete(self, event: str, data: dict, **kwargs: Any) -> None:
        logger.info(self._line("reeval_completed", event, data))
