"""
CLOB Engine

Order signing and API authentication for a central-limit-order-book
exchange settled on Polygon. Builds EIP-712 orders from Decimal prices and
sizes, signs them with an EOA key, and authenticates REST calls with
wallet-signed (L1) and HMAC (L2) headers.

Adapted from Polymarket's official clients (MIT License):
- https://github.com/Polymarket/py-clob-client
- https://github.com/Polymarket/clob-client
"""

from .client import TradingClient
from .config import ClobSettings, get_settings
from .models import (
    Side,
    OrderType,
    SignatureType,
    OrderArgs,
    MarketOrderArgs,
    CreateOrderOptions,
    ExtraOrderArgs,
    OrderData,
    SignedOrder,
    ApiCreds,
    OrderBook,
    OrderResponse,
    OpenOrder,
    CancelResponse,
)
from .exceptions import (
    ClobError,
    ValidationError,
    InvalidOrderArgsError,
    InvalidTickSizeError,
    InvalidAmountError,
    MissingFunderError,
    OrderExpiredError,
    AuthenticationError,
    MissingCredentialsError,
    ApiKeyExistsError,
    SigningError,
    NetworkError,
    APIError,
    TimeoutError,
    RateLimitError,
    CircuitBreakerError,
    TradingError,
    OrderRejectedError,
    InsufficientLiquidityError,
)
from .auth import Authenticator, Signer, PrivateKeySigner, build_hmac_signature
from .trading import OrderBuilder, compute_order_amounts, compute_market_order_amounts
from .logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    "TradingClient",
    "ClobSettings",
    "get_settings",
    # Models
    "Side",
    "OrderType",
    "SignatureType",
    "OrderArgs",
    "MarketOrderArgs",
    "CreateOrderOptions",
    "ExtraOrderArgs",
    "OrderData",
    "SignedOrder",
    "ApiCreds",
    "OrderBook",
    "OrderResponse",
    "OpenOrder",
    "CancelResponse",
    # Exceptions
    "ClobError",
    "ValidationError",
    "InvalidOrderArgsError",
    "InvalidTickSizeError",
    "InvalidAmountError",
    "MissingFunderError",
    "OrderExpiredError",
    "AuthenticationError",
    "MissingCredentialsError",
    "ApiKeyExistsError",
    "SigningError",
    "NetworkError",
    "APIError",
    "TimeoutError",
    "RateLimitError",
    "CircuitBreakerError",
    "TradingError",
    "OrderRejectedError",
    "InsufficientLiquidityError",
    # Signing
    "Authenticator",
    "Signer",
    "PrivateKeySigner",
    "build_hmac_signature",
    "OrderBuilder",
    "compute_order_amounts",
    "compute_market_order_amounts",
    "setup_logging",
]
