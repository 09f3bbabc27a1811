"""Defaults for the send-test and deposit commands."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_MAX_PRICE = Decimal("0.1")
DEFAULT_SENDER_NAME = "relaykit"
DEFAULT_DEPOSIT_AMOUNT = Decimal(1)


@dataclass(frozen=True, slots=True)
class DispatchConfig:
    max_price: Decimal = DEFAULT_MAX_PRICE
    sender_name: str = DEFAULT_SENDER_NAME
    timeout_seconds: float | None = None


def get_dispatch_config() -> DispatchConfig:
    """Build send-test defaults, overridable through ``RELAYKIT_*`` variables."""

    raw_price = optional_env_var("RELAYKIT_MAX_PRICE", str(DEFAULT_MAX_PRICE))
    try:
        max_price = Decimal(raw_price)
    except InvalidOperation as exc:
        msg = f"RELAYKIT_MAX_PRICE must be a decimal amount, got {raw_price!r}"
        raise ConfigurationError(msg) from exc
    if not max_price.is_finite() or max_price < 0:
        msg = f"RELAYKIT_MAX_PRICE must be a non-negative amount, got {raw_price!r}"
        raise ConfigurationError(msg)

    raw_timeout = optional_env_var("RELAYKIT_SEND_TIMEOUT", "")
    timeout: float | None = None
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            msg = f"RELAYKIT_SEND_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
            raise ConfigurationError(msg) from exc
        if not timeout > 0:
            msg = f"RELAYKIT_SEND_TIMEOUT must be positive, got {raw_timeout!r}"
            raise ConfigurationError(msg)

    return DispatchConfig(
        max_price=max_price,
        sender_name=optional_env_var("RELAYKIT_SENDER_NAME", DEFAULT_SENDER_NAME),
        timeout_seconds=timeout,
    )
