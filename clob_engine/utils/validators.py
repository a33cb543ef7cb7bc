"""
Input validation utilities.

Validates order arguments, tick sizes and addresses before anything is
signed. Every check here runs before a signature or network call exists.
"""

import re
import time
from typing import Any
from decimal import Decimal, ROUND_HALF_UP

from eth_utils import to_checksum_address

from ..config import ROUNDING_CONFIG, TICK_SIZES
from ..exceptions import (
    ValidationError,
    InvalidOrderArgsError,
    InvalidTickSizeError,
    OrderExpiredError,
)
from .numeric import to_decimal, round_up, round_down, decimal_places


MIN_PRICE = Decimal("0")  # exclusive
MAX_PRICE = Decimal("1")  # exclusive
PRICE_EPSILON = Decimal("1e-9")
GTD_MIN_OFFSET_SECONDS = 60

_ADDRESS_RE = re.compile(r"^[0-9a-fA-F]{40}$")
_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def validate_token_id(token_id: str) -> str:
    """
    Validate token ID format.

    Args:
        token_id: ERC1155 token ID

    Returns:
        Token ID

    Raises:
        InvalidOrderArgsError: If token ID is invalid
    """
    if not isinstance(token_id, str):
        raise InvalidOrderArgsError(f"Token ID must be string, got {type(token_id)}")

    if not token_id:
        raise InvalidOrderArgsError("Token ID cannot be empty")

    # Token IDs are uint256 values as decimal strings
    if not token_id.isdigit():
        raise InvalidOrderArgsError(f"Token ID must be numeric string, got {token_id}")

    if int(token_id) >= 2 ** 256:
        raise InvalidOrderArgsError(f"Token ID does not fit in uint256: {token_id}")

    return token_id


def validate_price(price: Any) -> Decimal:
    """
    Validate price bounds for a binary outcome (0 < price < 1).

    Raises:
        InvalidOrderArgsError: If price is not numeric or out of bounds
    """
    price_dec = to_decimal(price)
    if price_dec is None:
        raise InvalidOrderArgsError(f"Invalid price format: {price}")

    if not (MIN_PRICE < price_dec < MAX_PRICE):
        raise InvalidOrderArgsError(
            f"Price must be strictly between {MIN_PRICE} and {MAX_PRICE}, got {price_dec}"
        )
    return price_dec


def validate_size(size: Any, field_name: str = "size") -> Decimal:
    """
    Validate that a size/amount is a positive number.

    Raises:
        InvalidOrderArgsError: If size is not numeric or not positive
    """
    size_dec = to_decimal(size)
    if size_dec is None:
        raise InvalidOrderArgsError(f"Invalid {field_name} format: {size}")

    if size_dec <= 0:
        raise InvalidOrderArgsError(f"{field_name.capitalize()} must be > 0, got {size_dec}")
    return size_dec


def validate_side(side: Any) -> str:
    """Validate side value (BUY or SELL)."""
    value = getattr(side, "value", side)
    if value not in ("BUY", "SELL"):
        raise InvalidOrderArgsError(f"Side must be BUY or SELL, got {side}")
    return value


def validate_order_args(
    token_id: str,
    price: Any,
    size: Any,
    side: Any
) -> tuple[str, Decimal, Decimal, str]:
    """
    Validate complete limit order parameters.

    Args:
        token_id: Token ID
        price: Order price (any numeric type)
        size: Order size in shares (any numeric type)
        side: BUY or SELL

    Returns:
        Tuple of validated (token_id, price, size, side)

    Raises:
        InvalidOrderArgsError: If any parameter is invalid
    """
    validated_token = validate_token_id(token_id)
    validated_price = validate_price(price)
    validated_size = validate_size(size)
    validated_side = validate_side(side)

    return validated_token, validated_price, validated_size, validated_side


def validate_tick_size(tick_size: Any) -> Decimal:
    """
    Validate that tick size is one of the venue's grids.

    Returns:
        Tick size as Decimal

    Raises:
        InvalidTickSizeError: If tick size is unsupported
    """
    tick = to_decimal(tick_size)
    if tick is None or tick not in ROUNDING_CONFIG:
        raise InvalidTickSizeError(
            f"Unsupported tick size {tick_size}; expected one of "
            f"{', '.join(str(t) for t in TICK_SIZES)}",
            tick_size=tick_size
        )
    return tick


def validate_price_tick(price: Decimal, tick_size: Any) -> Decimal:
    """
    Check that price sits on the tick grid.

    Args:
        price: Order price (already bounds-checked)
        tick_size: Market tick size

    Returns:
        Price snapped exactly onto the grid

    Raises:
        InvalidTickSizeError: If price is off-grid or outside [tick, 1 - tick]
    """
    tick = validate_tick_size(tick_size)

    remainder = price % tick
    if remainder > PRICE_EPSILON and (tick - remainder) > PRICE_EPSILON:
        raise InvalidTickSizeError(
            f"Price {price} is not a multiple of tick size {tick}",
            price=price,
            tick_size=tick
        )

    snapped = ((price / tick).to_integral_value(rounding=ROUND_HALF_UP) * tick).quantize(tick)

    if snapped < tick or snapped > (MAX_PRICE - tick):
        raise InvalidTickSizeError(
            f"Price {price} invalid for tick size {tick}. "
            f"Must be between {tick} and {MAX_PRICE - tick}",
            price=price,
            tick_size=tick
        )

    return snapped


def round_price_to_tick(price: Decimal, tick_size: Any, side: Any) -> Decimal:
    """
    Move a computed price onto the tick grid.

    BUY rounds up and SELL rounds down, so the rounded price never makes a
    marketable order less aggressive. Result is clamped to [tick, 1 - tick].
    """
    tick = validate_tick_size(tick_size)
    places = decimal_places(tick)

    if validate_side(side) == "BUY":
        rounded = round_up(price, places)
    else:
        rounded = round_down(price, places)

    return min(max(rounded, tick), MAX_PRICE - tick)


def validate_address(address: str) -> str:
    """
    Validate Ethereum address.

    Args:
        address: Ethereum address

    Returns:
        Checksummed address

    Raises:
        ValidationError: If address is invalid
    """
    if not isinstance(address, str):
        raise ValidationError(f"Address must be string, got {type(address)}")

    addr = address[2:] if address.startswith("0x") else address

    # 20 bytes = 40 hex chars
    if not _ADDRESS_RE.match(addr):
        raise ValidationError(f"Invalid Ethereum address: {address}")

    return to_checksum_address(f"0x{addr}")


def validate_private_key(private_key: str) -> str:
    """
    Validate private key format.

    Returns:
        Normalized 0x-prefixed lowercase key

    Raises:
        ValidationError: If private key is invalid (message never echoes the key)
    """
    if not isinstance(private_key, str):
        raise ValidationError(f"Private key must be string, got {type(private_key)}")

    key = private_key[2:] if private_key.startswith("0x") else private_key

    # 32 bytes = 64 hex chars
    if not _PRIVATE_KEY_RE.match(key):
        raise ValidationError("Invalid private key format")

    return f"0x{key.lower()}"


def validate_gtd_expiration(
    expiration: int,
    min_offset_seconds: int = GTD_MIN_OFFSET_SECONDS
) -> int:
    """
    Validate GTD (Good-Til-Date) order expiration timestamp.

    The venue requires GTD orders to expire at least a minute in the future.

    Raises:
        OrderExpiredError: If expiration is too soon or in the past
        ValidationError: If expiration format is invalid
    """
    if not isinstance(expiration, int) or isinstance(expiration, bool):
        raise ValidationError(f"Expiration must be int, got {type(expiration)}")

    current_time = int(time.time())
    min_expiration = current_time + min_offset_seconds

    if expiration < current_time:
        raise OrderExpiredError(
            f"Expiration {expiration} is in the past (current: {current_time})",
            expiration=expiration
        )

    if expiration < min_expiration:
        raise OrderExpiredError(
            f"GTD expiration must be at least {min_offset_seconds}s in future. "
            f"Got {expiration}, need >= {min_expiration}",
            expiration=expiration
        )

    return expiration
