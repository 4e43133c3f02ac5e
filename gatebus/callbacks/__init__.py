"""Callback/hook system for gated bus lifecycle events."""

from gatebus.callbacks.base import BaseCallback, BusCallback
from gatebus.callbacks.logging import LoggingCallback

__all__ = ["BusCallback", "BaseCallback", "LoggingCallback"]
