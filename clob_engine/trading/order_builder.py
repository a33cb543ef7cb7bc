"""
Order builder with EIP-712 signing.

Validates order arguments, converts them to base-unit amounts, resolves
maker/signer for the wallet's signature type and signs the order digest.
Nothing is signed until every check has passed.
"""

import hashlib
import secrets
from decimal import Decimal
from typing import Any, Iterable, Optional, Union
import logging

from .amounts import compute_order_amounts, compute_market_order_amounts
from ..auth.eip712 import order_digest
from ..auth.signer import Signer
from ..config import get_contract_config
from ..exceptions import (
    InvalidOrderArgsError,
    InsufficientLiquidityError,
    SigningError,
    ValidationError,
)
from ..models import (
    CreateOrderOptions,
    ExtraOrderArgs,
    MarketOrderArgs,
    OrderArgs,
    OrderData,
    OrderSummary,
    Side,
    SignatureType,
    SignedOrder,
)
from ..utils.numeric import to_decimal
from ..utils.validators import (
    round_price_to_tick,
    validate_address,
    validate_gtd_expiration,
    validate_order_args,
    validate_price,
    validate_price_tick,
    validate_side,
    validate_size,
    validate_tick_size,
    validate_token_id,
)

logger = logging.getLogger(__name__)

# Salt travels as a JSON number; keep it exactly representable as a double
MAX_SALT = 2 ** 53


class OrderBuilder:
    """
    Builds and signs orders for one wallet.

    Immutable after construction and safe to share across threads: signing
    is a pure function of its inputs plus a fresh salt.

    Handles:
    - Argument and tick grid validation
    - Base-unit amount conversion
    - Maker/signer resolution per signature type
    - EIP-712 signing against the right exchange domain
    """

    def __init__(
        self,
        signer: Signer,
        chain_id: int = 137,
        signature_type: Union[SignatureType, int] = SignatureType.EOA,
        funder: Optional[str] = None,
        amount_tolerance_ticks: Any = Decimal("1")
    ):
        """
        Initialize order builder.

        Args:
            signer: Signer for the EOA key
            chain_id: Chain ID (137 Polygon, 80002 Amoy)
            signature_type: Wallet kind (EOA, POLY_PROXY, POLY_GNOSIS_SAFE)
            funder: Proxy/Safe address holding funds (required for proxy types)
            amount_tolerance_ticks: Allowed implied-price drift, in ticks

        Raises:
            MissingFunderError: If a proxy type has no funder
            ValidationError: If chain, funder or tolerance is invalid
        """
        try:
            get_contract_config(chain_id)
        except KeyError as e:
            raise ValidationError(str(e.args[0])) from None

        tolerance = to_decimal(amount_tolerance_ticks)
        if tolerance is None or tolerance <= 0:
            raise ValidationError(f"Invalid amount tolerance: {amount_tolerance_ticks}")

        self.signer = signer
        self.chain_id = chain_id
        self.signature_type = SignatureType(signature_type)
        self.funder = validate_address(funder) if funder else None
        self.amount_tolerance_ticks = tolerance

        # Fails fast for proxy types without a funder
        self.addresses = self.signature_type.resolve_addresses(signer.address, self.funder)

    @property
    def maker(self) -> str:
        return self.addresses.maker

    def create_order(
        self,
        order_args: OrderArgs,
        options: CreateOrderOptions,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> SignedOrder:
        """
        Build and sign a limit order.

        Args:
            order_args: Token, price, size, side, expiration
            options: Tick size and neg-risk flag of the market
            extras: Fee rate, nonce, taker (defaults if None)
            idempotency_key: Derive the salt from this key (same key, same order)

        Returns:
            Signed order

        Raises:
            InvalidOrderArgsError: If price/size/side/token are out of bounds
            InvalidTickSizeError: If price is off the tick grid
            InvalidAmountError: If base-unit rounding drifts past tolerance
            OrderExpiredError: If a GTD expiration is too soon
            SigningError: If signing fails
        """
        token_id, price, size, side = validate_order_args(
            order_args.token_id,
            order_args.price,
            order_args.size,
            order_args.side
        )
        tick = validate_tick_size(options.tick_size)
        price = validate_price_tick(price, tick)

        expiration = order_args.expiration
        if expiration:
            validate_gtd_expiration(expiration)

        maker_amount, taker_amount = compute_order_amounts(
            Side(side), price, size, tick, tick * self.amount_tolerance_ticks
        )

        return self._build_signed_order(
            token_id=token_id,
            side=Side(side),
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            expiration=expiration,
            extras=extras,
            neg_risk=options.neg_risk,
            idempotency_key=idempotency_key
        )

    def create_market_order(
        self,
        order_args: MarketOrderArgs,
        options: CreateOrderOptions,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> SignedOrder:
        """
        Build and sign a market (FOK/FAK) order.

        order_args.price is the worst acceptable price; it is moved onto the
        tick grid in the aggressive direction. Market orders never expire.

        Raises:
            InvalidOrderArgsError: If amount/price/side/token are invalid or price missing
            InvalidTickSizeError: If tick size is unsupported
            InvalidAmountError: If base-unit rounding drifts past tolerance
            SigningError: If signing fails
        """
        token_id = validate_token_id(order_args.token_id)
        side = Side(validate_side(order_args.side))
        amount = validate_size(order_args.amount, "amount")
        if order_args.price is None:
            raise InvalidOrderArgsError(
                "Market order needs a price; compute one with calculate_market_price()"
            )

        tick = validate_tick_size(options.tick_size)
        price = round_price_to_tick(validate_price(order_args.price), tick, side)

        maker_amount, taker_amount = compute_market_order_amounts(
            side, amount, price, tick, tick * self.amount_tolerance_ticks
        )

        return self._build_signed_order(
            token_id=token_id,
            side=side,
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            expiration=0,
            extras=extras,
            neg_risk=options.neg_risk,
            idempotency_key=idempotency_key
        )

    @staticmethod
    def calculate_market_price(
        levels: Iterable[OrderSummary],
        amount: Any,
        side: Union[Side, str]
    ) -> Decimal:
        """
        Price needed to fill a market order against one side of the book.

        BUY walks the asks from the lowest price, counting collateral
        (price * size). SELL walks the bids from the highest price, counting
        shares. The price of the level that completes the fill is returned.

        This is the marginal (worst) price, not the size-weighted average of
        the levels consumed. Signed as the order's limit, it lets a FOK order
        sweep every level up to and including that one.

        Args:
            levels: Asks for BUY, bids for SELL (any order)
            amount: Collateral (BUY) or shares (SELL)
            side: BUY or SELL

        Returns:
            Marginal fill price

        Raises:
            InsufficientLiquidityError: If the book cannot cover the amount
        """
        side = Side(validate_side(side))
        target = validate_size(amount, "amount")

        if side is Side.BUY:
            ordered = sorted(levels, key=lambda level: level.price)
        else:
            ordered = sorted(levels, key=lambda level: level.price, reverse=True)

        matched = Decimal("0")
        for level in ordered:
            matched += level.price * level.size if side is Side.BUY else level.size
            if matched >= target:
                return level.price

        raise InsufficientLiquidityError(
            f"Not enough liquidity to fill {side.value} {target} (book covers {matched})",
            amount=target
        )

    @staticmethod
    def generate_salt(idempotency_key: Optional[str] = None) -> int:
        """
        Order salt, random or derived from an idempotency key.

        Examples:
            >>> OrderBuilder.generate_salt("order-42") == OrderBuilder.generate_salt("order-42")
            True
        """
        if idempotency_key is None:
            return secrets.randbelow(MAX_SALT)

        digest = hashlib.sha256(idempotency_key.encode("utf-8")).digest()
        return int.from_bytes(digest, byteorder="big") % MAX_SALT

    def order_hash(self, order: OrderData, neg_risk: bool = False) -> str:
        """0x-hex EIP-712 digest of an order."""
        return "0x" + order_digest(order, self.chain_id, neg_risk).hex()

    def _build_signed_order(
        self,
        token_id: str,
        side: Side,
        maker_amount: int,
        taker_amount: int,
        expiration: int,
        extras: Optional[ExtraOrderArgs],
        neg_risk: bool,
        idempotency_key: Optional[str]
    ) -> SignedOrder:
        extras = extras or ExtraOrderArgs()
        taker = validate_address(extras.taker)

        order = OrderData(
            salt=self.generate_salt(idempotency_key),
            maker=self.addresses.maker,
            signer=self.addresses.signer,
            taker=taker,
            token_id=int(token_id),
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            expiration=expiration,
            nonce=extras.nonce,
            fee_rate_bps=extras.fee_rate_bps,
            side=side,
            signature_type=self.signature_type
        )

        digest = order_digest(order, self.chain_id, neg_risk)
        try:
            signature = self.signer.sign(digest)
        except SigningError:
            raise
        except Exception as e:
            error_type = type(e).__name__
            logger.error(f"Order signing failed: {error_type}")
            raise SigningError(f"Order signing failed: {error_type}") from None

        logger.info(
            f"Signed order: {side.value} maker={maker_amount} taker={taker_amount} "
            f"(token={token_id}, type={self.signature_type.name}, neg_risk={neg_risk})"
        )
        return SignedOrder(order=order, signature=signature)
