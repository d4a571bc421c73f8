"""Runtime settings for the Ordering domain, read from the environment.

Defaults mirror the values the storefront has always charged: a flat 30.00
delivery fee waived from 1000.00, a 2% customer service fee and a 10% vendor
processing fee.
"""

import os
from dataclasses import dataclass, field
from datetime import UTC, datetime

from protean.exceptions import ValidationError


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValidationError({name: [f"{raw!r} is not a valid {cast.__name__}"]}) from exc


def _env_float(name: str, default: float) -> float:
    return _env_number(name, default, float)


def _env_int(name: str, default: int) -> int:
    return _env_number(name, default, int)


@dataclass(frozen=True)
class OrderingSettings:
    delivery_fee: float = 30.0
    free_shipping_threshold: float = 1000.0
    service_fee_percent: float = 0.02
    vendor_processing_fee_percent: float = 0.10

    order_number_prefix: str = "ORD"
    # None means "current UTC year at allocation time"
    order_number_tag: str | None = None
    delivery_lead_days: int = 3

    lock_timeout: float = 5.0
    max_attempts: int = 3
    retry_backoff: float = 0.05

    supported_payment_methods: frozenset = field(default_factory=lambda: frozenset({"cod", "card", "razorpay"}))
    # Methods whose payment is confirmed upstream before the order is placed
    confirmed_payment_methods: frozenset = field(default_factory=lambda: frozenset({"card", "razorpay"}))

    def __post_init__(self):
        errors = {}
        for name in ("delivery_fee", "free_shipping_threshold", "retry_backoff", "delivery_lead_days"):
            if getattr(self, name) < 0:
                errors[name] = [f"{name} cannot be negative"]
        for name in ("service_fee_percent", "vendor_processing_fee_percent"):
            if not 0 <= getattr(self, name) <= 1:
                errors[name] = [f"{name} is a fraction between 0 and 1, got {getattr(self, name)}"]
        if self.lock_timeout <= 0:
            errors["lock_timeout"] = ["lock_timeout must be positive"]
        if self.max_attempts < 1:
            errors["max_attempts"] = ["max_attempts must be at least 1"]
        if not self.confirmed_payment_methods <= self.supported_payment_methods:
            errors["confirmed_payment_methods"] = ["Confirmed payment methods must also be supported"]
        if errors:
            raise ValidationError(errors)

    def current_order_number_tag(self) -> str:
        return self.order_number_tag or str(datetime.now(UTC).year)

    @classmethod
    def from_env(cls) -> "OrderingSettings":
        """Build settings from ORDERING_* environment variables.

        Raises ``ValidationError`` for out-of-range values, so a bad deployment
        fails on the first request instead of at checkout.
        """
        return cls(
            delivery_fee=_env_float("ORDERING_DELIVERY_FEE", cls.delivery_fee),
            free_shipping_threshold=_env_float("ORDERING_FREE_SHIPPING_THRESHOLD", cls.free_shipping_threshold),
            service_fee_percent=_env_float("ORDERING_SERVICE_FEE_PERCENT", cls.service_fee_percent),
            vendor_processing_fee_percent=_env_float(
                "ORDERING_VENDOR_PROCESSING_FEE_PERCENT", cls.vendor_processing_fee_percent
            ),
            order_number_prefix=os.getenv("ORDERING_ORDER_NUMBER_PREFIX") or cls.order_number_prefix,
            order_number_tag=os.getenv("ORDERING_ORDER_NUMBER_TAG") or None,
            delivery_lead_days=_env_int("ORDERING_DELIVERY_LEAD_DAYS", cls.delivery_lead_days),
            lock_timeout=_env_float("ORDERING_LOCK_TIMEOUT", cls.lock_timeout),
            max_attempts=_env_int("ORDERING_MAX_ATTEMPTS", cls.max_attempts),
            retry_backoff=_env_float("ORDERING_RETRY_BACKOFF", cls.retry_backoff),
        )


_current_settings: OrderingSettings | None = None


def get_settings() -> OrderingSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = OrderingSettings.from_env()
    return _current_settings


def set_settings(settings: OrderingSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
