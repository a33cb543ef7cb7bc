"""
Custom exceptions for the CLOB engine.

Every failure the engine can produce is a typed subclass of ClobError so callers
can tell validation problems (nothing was signed or sent) apart from signing
and transport failures.
"""

from typing import Optional, Any


class ClobError(Exception):
    """Base exception for all CLOB engine errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Validation (raised before any signature or network call)
class ValidationError(ClobError):
    """Input validation failed."""
    pass


class InvalidOrderArgsError(ValidationError):
    """Price, size, side or token id outside the allowed bounds."""
    pass


class InvalidTickSizeError(ValidationError):
    """Tick size not supported, or price not on the tick grid."""

    def __init__(self, message: str, price: Optional[Any] = None,
                 tick_size: Optional[Any] = None):
        super().__init__(message, {"price": price, "tick_size": tick_size})
        self.price = price
        self.tick_size = tick_size


class InvalidAmountError(ValidationError):
    """Base-unit rounding would move the effective price past the tolerance."""

    def __init__(self, message: str, maker_amount: Optional[int] = None,
                 taker_amount: Optional[int] = None):
        super().__init__(message, {"maker_amount": maker_amount, "taker_amount": taker_amount})
        self.maker_amount = maker_amount
        self.taker_amount = taker_amount


class MissingFunderError(ValidationError):
    """Proxy signature type selected without a funder address."""
    pass


class OrderExpiredError(ValidationError):
    """Order expiration timestamp is invalid."""

    def __init__(self, message: str, expiration: Optional[int] = None):
        super().__init__(message, {"expiration": expiration})
        self.expiration = expiration


# Authentication
class AuthenticationError(ClobError):
    """Authentication failed."""
    pass


class MissingCredentialsError(AuthenticationError):
    """L2 operation attempted before API credentials were established."""
    pass


class ApiKeyExistsError(AuthenticationError):
    """API key already exists for this address and nonce."""
    pass


class SigningError(ClobError):
    """Underlying key operation failed."""
    pass


# Transport
class NetworkError(ClobError):
    """Transport-level failure."""
    pass


class APIError(NetworkError):
    """API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response: Optional[Any] = None):
        super().__init__(message, {"status_code": status_code, "response": response})
        self.status_code = status_code
        self.response = response


class TimeoutError(NetworkError):
    """Request timed out."""
    pass


class RateLimitError(NetworkError):
    """Rate limit exceeded."""

    def __init__(self, message: str, endpoint: str, retry_after: Optional[float] = None):
        super().__init__(message, {"endpoint": endpoint, "retry_after": retry_after})
        self.endpoint = endpoint
        self.retry_after = retry_after


class CircuitBreakerError(ClobError):
    """Circuit breaker is open, requests blocked."""
    pass


# Trading
class TradingError(ClobError):
    """Base exception for trading operations."""
    pass


class OrderRejectedError(TradingError):
    """Order was rejected by the exchange."""

    def __init__(self, message: str, order_id: Optional[str] = None,
                 reason: Optional[str] = None):
        super().__init__(message, {"order_id": order_id, "reason": reason})
        self.order_id = order_id
        self.reason = reason


class InsufficientLiquidityError(TradingError):
    """Order book cannot cover the requested market order amount."""

    def __init__(self, message: str, amount: Optional[Any] = None):
        super().__init__(message, {"amount": amount})
        self.amount = amount
