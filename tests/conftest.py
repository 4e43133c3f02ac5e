"""Test fixtures: bus configuration, sample middleware tables, a ready-made bus.

All tests should use these fixtures for consistency.
"""

from __future__ import annotations

import pytest

from gatebus.bus import GatedBus
from gatebus.config import GateBusConfig
from gatebus.types import DeliveryMode, PredicateErrorPolicy


@pytest.fixture
def config() -> GateBusConfig:
    """Test configuration with safe defaults, independent of the environment."""
    return GateBusConfig(
        delivery_mode=DeliveryMode.SYNC,
        predicate_error_policy=PredicateErrorPolicy.RAISE,
        serialize_reeval=True,
        log_payloads=False,
    )


@pytest.fixture
def sample_middlewares() -> dict:
    """Two gated events: a two-predicate sync chain and an async length check."""

    async def non_empty(payload: str) -> bool:
        return len(payload) > 0

    return {
        "user.login": [
            lambda data: data != "blocked",
            lambda data: data != 0,
        ],
        "message.received": [non_empty],
    }


@pytest.fixture
def bus(sample_middlewares: dict, config: GateBusConfig) -> GatedBus:
    return GatedBus(sample_middlewares, config=config)
