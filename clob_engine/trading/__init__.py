"""Order construction and signing."""

from .amounts import compute_order_amounts, compute_market_order_amounts, implied_price
from .order_builder import OrderBuilder

__all__ = [
    "compute_order_amounts",
    "compute_market_order_amounts",
    "implied_price",
    "OrderBuilder",
]
