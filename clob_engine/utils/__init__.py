"""Utility modules for the CLOB engine."""

from .validators import (
    validate_order_args,
    validate_price,
    validate_size,
    validate_token_id,
    validate_tick_size,
    validate_price_tick,
)
from .retry import RetryStrategy, CircuitBreaker
from .cache import TTLCache, MarketMetadataCache

__all__ = [
    "validate_order_args",
    "validate_price",
    "validate_size",
    "validate_token_id",
    "validate_tick_size",
    "validate_price_tick",
    "RetryStrategy",
    "CircuitBreaker",
    "TTLCache",
    "MarketMetadataCache",
]
