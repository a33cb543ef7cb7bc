"""
Numeric type utilities for Decimal precision.

Helper functions for safe conversion between types while maintaining
financial-grade precision. Nothing here ever multiplies a binary float.
"""

from typing import Any, Optional
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN, ROUND_UP, InvalidOperation
import logging

logger = logging.getLogger(__name__)


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Safely convert any value to Decimal.

    Args:
        value: Value to convert (str, int, float, Decimal, None)
        default: Default value if conversion fails (default: None)

    Returns:
        Decimal or default if conversion fails

    Examples:
        >>> to_decimal("0.65")
        Decimal('0.65')
        >>> to_decimal(100.50)
        Decimal('100.5')
        >>> to_decimal(None, Decimal("0"))
        Decimal('0')
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, bool):
            logger.warning(f"Refusing to convert bool to Decimal: {value}")
            return default
        elif isinstance(value, str):
            # Direct string conversion (most precise)
            result = Decimal(value.strip())
        elif isinstance(value, (int, float)):
            # Convert via string to avoid float precision loss
            result = Decimal(str(value))
        else:
            logger.warning(f"Cannot convert {type(value)} to Decimal: {value}")
            return default
    except (ValueError, InvalidOperation) as e:
        logger.warning(f"Failed to convert {value} to Decimal: {e}")
        return default

    if not result.is_finite():
        logger.warning(f"Non-finite value rejected: {value}")
        return default
    return result


def to_base_units(amount: Decimal, decimals: int = 6) -> int:
    """
    Convert token amount to integer base units, rounding half-up.

    Args:
        amount: Amount in token units (Decimal)
        decimals: Number of decimals (default: 6 for USDC/CTF)

    Returns:
        Amount in base units (int)

    Examples:
        >>> to_base_units(Decimal("100.50"))
        100500000
        >>> to_base_units(Decimal("0.0000005"))
        1
    """
    scaled = amount.scaleb(decimals)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_base_units(units: int, decimals: int = 6) -> Decimal:
    """
    Convert base units back to token amount.

    Examples:
        >>> from_base_units(100500000)
        Decimal('100.500000')
    """
    return Decimal(units).scaleb(-decimals)


def decimal_places(value: Decimal) -> int:
    """
    Number of digits after the decimal point.

    Examples:
        >>> decimal_places(Decimal("0.125"))
        3
        >>> decimal_places(Decimal("10"))
        0
    """
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def _quantizer(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_down(value: Decimal, places: int) -> Decimal:
    """Truncate toward zero to `places` decimals."""
    return value.quantize(_quantizer(places), rounding=ROUND_DOWN)


def round_up(value: Decimal, places: int) -> Decimal:
    """Round away from zero to `places` decimals."""
    return value.quantize(_quantizer(places), rounding=ROUND_UP)

