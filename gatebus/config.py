"""Bus configuration. All env vars defined here with defaults."""

from pydantic_settings import BaseSettings

from gatebus.types import DeliveryMode, PredicateErrorPolicy


class GateBusConfig(BaseSettings):
    # ── Delivery ──
    delivery_mode: DeliveryMode = DeliveryMode.SYNC

    # ── Gating ──
    predicate_error_policy: PredicateErrorPolicy = PredicateErrorPolicy.RAISE
    serialize_reeval: bool = True               # per-event lock around re_eval

    # ── Logging ──
    log_payloads: bool = False                  # include truncated payload repr in log lines
    payload_repr_limit: int = 200

    model_config = {"env_prefix": "GATEBUS_", "env_file": ".env", "extra": "ignore"}


config = GateBusConfig()
