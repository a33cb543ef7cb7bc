"""
Trading client.

Wires settings, signer, order builder, authenticator and transport into
one object per wallet. Signing is local and pure; only option lookups,
credential calls and submissions touch the network.
"""

from typing import Optional, Union
import asyncio
import logging
import threading
from decimal import Decimal

from .api.clob import CLOBAPI
from .auth.authenticator import Authenticator
from .auth.signer import PrivateKeySigner, Signer
from .config import ClobSettings, get_settings
from .exceptions import InvalidOrderArgsError, OrderRejectedError, ValidationError
from .metrics import Metrics
from .models import (
    ApiCreds,
    CancelResponse,
    CreateOrderOptions,
    ExtraOrderArgs,
    MarketOrderArgs,
    OpenOrder,
    OrderArgs,
    OrderBook,
    OrderResponse,
    OrderType,
    Side,
    SignatureType,
    SignedOrder,
)
from .trading.order_builder import OrderBuilder
from .utils.cache import MarketMetadataCache
from .utils.retry import CircuitBreaker
from .utils.structured_logging import get_logger

logger = logging.getLogger(__name__)
events = get_logger(__name__)


class TradingClient:
    """
    Client for one wallet on the CLOB.

    Usage:
        client = TradingClient.from_settings()
        client.create_or_derive_api_key()
        signed = client.create_order(OrderArgs(token_id=..., price="0.50",
                                               size="10", side=Side.BUY))
        response = client.post_order(signed)
    """

    def __init__(
        self,
        signer: Signer,
        settings: Optional[ClobSettings] = None,
        signature_type: Optional[Union[SignatureType, int]] = None,
        funder: Optional[str] = None,
        creds: Optional[ApiCreds] = None,
        metrics: Optional[Metrics] = None,
        api: Optional[CLOBAPI] = None
    ):
        """
        Initialize trading client.

        Args:
            signer: Wallet signer (EOA key)
            settings: Settings (loads from env if not provided)
            signature_type: Wallet kind (defaults to settings.signature_type)
            funder: Proxy/Safe address (defaults to settings.funder)
            creds: Existing API credentials
            metrics: Metrics collector (built from settings if None)
            api: Transport override

        Raises:
            MissingFunderError: If a proxy signature type has no funder
        """
        self.settings = settings or get_settings()
        self.signer = signer

        if signature_type is None:
            signature_type = self.settings.signature_type
        if funder is None:
            funder = self.settings.funder

        self.metrics = metrics or Metrics(
            enabled=self.settings.enable_metrics,
            port=self.settings.metrics_port
        )
        self.authenticator = Authenticator(chain_id=self.settings.chain_id)
        self.builder = OrderBuilder(
            signer=signer,
            chain_id=self.settings.chain_id,
            signature_type=signature_type,
            funder=funder,
            amount_tolerance_ticks=self.settings.amount_tolerance_ticks
        )
        self.metadata_cache = MarketMetadataCache(ttl=self.settings.metadata_ttl)

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=self.settings.circuit_breaker_threshold,
            timeout=self.settings.circuit_breaker_timeout,
            name="clob"
        )
        self.clob = api or CLOBAPI(
            settings=self.settings,
            authenticator=self.authenticator,
            circuit_breaker=self.circuit_breaker,
            metrics=self.metrics
        )

        self._creds = creds
        self._creds_lock = threading.Lock()

        logger.info(
            f"Trading client ready: {signer.address} "
            f"({self.builder.signature_type.name}, chain {self.settings.chain_id})"
        )

    @classmethod
    def from_settings(cls, settings: Optional[ClobSettings] = None) -> "TradingClient":
        """
        Build a client whose signer is the settings' private key.

        Raises:
            ValidationError: If no private key is configured
        """
        settings = settings or get_settings()
        if settings.private_key is None:
            raise ValidationError("CLOB_PRIVATE_KEY is not set")

        signer = PrivateKeySigner(settings.private_key.get_secret_value())
        return cls(signer=signer, settings=settings)

    @property
    def address(self) -> str:
        return self.signer.address

    @property
    def creds(self) -> Optional[ApiCreds]:
        return self._creds

    def set_api_creds(self, creds: Optional[ApiCreds]) -> None:
        """Replace the credential set (never mutated in place)."""
        with self._creds_lock:
            self._creds = creds

    # ========== Credentials (L1) ==========

    def create_api_key(self, nonce: int = 0) -> ApiCreds:
        return self.clob.create_api_key(self.signer, nonce)

    def derive_api_key(self, nonce: int = 0) -> ApiCreds:
        return self.clob.derive_api_key(self.signer, nonce)

    def create_or_derive_api_key(self, nonce: int = 0) -> ApiCreds:
        """
        Create or derive API credentials and keep them on the client.

        Returns:
            Credentials for (address, nonce)
        """
        creds = self.clob.create_or_derive_api_key(self.signer, nonce)
        self.set_api_creds(creds)
        return creds

    def get_api_keys(self) -> list[str]:
        return self.clob.get_api_keys(self.address, self._creds)

    def delete_api_key(self) -> bool:
        """Delete the current API key and forget it locally."""
        deleted = self.clob.delete_api_key(self.address, self._creds)
        if deleted:
            self.set_api_creds(None)
        return deleted

    # ========== Market metadata ==========

    def get_tick_size(self, token_id: str) -> Decimal:
        """Tick size, cached for settings.metadata_ttl seconds."""
        return self.metadata_cache.tick_size(token_id, lambda: self.clob.get_tick_size(token_id))

    def get_neg_risk(self, token_id: str) -> bool:
        """Neg-risk flag, cached for settings.metadata_ttl seconds."""
        return self.metadata_cache.neg_risk(token_id, lambda: self.clob.get_neg_risk(token_id))

    def get_order_book(self, token_id: str) -> OrderBook:
        return self.clob.get_order_book(token_id)

    def get_ok(self) -> bool:
        return self.clob.get_ok()

    def resolve_options(
        self,
        token_id: str,
        options: Optional[CreateOrderOptions] = None
    ) -> CreateOrderOptions:
        """Use the given options, or look tick size and neg-risk up for the token."""
        if options is not None:
            return options
        return CreateOrderOptions(
            tick_size=self.get_tick_size(token_id),
            neg_risk=self.get_neg_risk(token_id)
        )

    # ========== Order construction ==========

    def create_order(
        self,
        order_args: OrderArgs,
        options: Optional[CreateOrderOptions] = None,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> SignedOrder:
        """
        Build and sign a limit order.

        Args:
            order_args: Token, price, size, side, expiration
            options: Market options (looked up if None)
            extras: Fee rate, nonce, taker
            idempotency_key: Deterministic salt source

        Returns:
            Signed order
        """
        options = self.resolve_options(order_args.token_id, options)
        signed = self.builder.create_order(order_args, options, extras, idempotency_key)

        self.metrics.track_order_signed(signed.order.side.value, self.builder.signature_type.name)
        events.debug(
            "order_signed",
            token_id=order_args.token_id,
            side=signed.order.side.value,
            maker_amount=signed.order.maker_amount,
            taker_amount=signed.order.taker_amount
        )
        return signed

    def create_market_order(
        self,
        order_args: MarketOrderArgs,
        options: Optional[CreateOrderOptions] = None,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> SignedOrder:
        """
        Build and sign a market order.

        Without an explicit price the book is walked for the price that
        fills the whole amount.

        Raises:
            InsufficientLiquidityError: If the book cannot fill the amount
        """
        options = self.resolve_options(order_args.token_id, options)

        if order_args.price is None:
            book = self.get_order_book(order_args.token_id)
            levels = book.asks if order_args.side == Side.BUY else book.bids
            price = self.builder.calculate_market_price(levels, order_args.amount, order_args.side)
            order_args = order_args.model_copy(update={"price": price})

        signed = self.builder.create_market_order(order_args, options, extras, idempotency_key)
        self.metrics.track_order_signed(signed.order.side.value, self.builder.signature_type.name)
        return signed

    # ========== Submission (L2) ==========

    def post_order(
        self,
        signed: SignedOrder,
        order_type: OrderType = OrderType.GTC
    ) -> OrderResponse:
        """
        Submit a signed order. Never retried automatically.

        Raises:
            MissingCredentialsError: If no API credentials are set
            OrderRejectedError: If the exchange rejects the order
        """
        try:
            response = self.clob.post_order(signed, self.address, self._creds, order_type)
        except OrderRejectedError as e:
            self.metrics.track_order_submission("rejected")
            events.warning("order_rejected", reason=e.reason, order_type=OrderType(order_type).value)
            raise

        self.metrics.track_order_submission(response.status or "accepted")
        events.info(
            "order_posted",
            order_id=response.order_id,
            status=response.status,
            order_type=OrderType(order_type).value
        )
        return response

    def post_orders(self, orders: list[tuple[SignedOrder, OrderType]]) -> list[OrderResponse]:
        """Submit a batch of signed orders. Never retried automatically."""
        responses = self.clob.post_orders(orders, self.address, self._creds)
        for response in responses:
            self.metrics.track_order_submission(
                (response.status or "accepted") if response.success else "rejected"
            )
        return responses

    def cancel_order(self, order_id: str) -> CancelResponse:
        return self.clob.cancel_order(order_id, self.address, self._creds)

    def cancel_orders(self, order_ids: list[str]) -> CancelResponse:
        return self.clob.cancel_orders(order_ids, self.address, self._creds)

    def cancel_all(self) -> CancelResponse:
        return self.clob.cancel_all(self.address, self._creds)

    def get_orders(
        self,
        market: Optional[str] = None,
        asset_id: Optional[str] = None,
        order_id: Optional[str] = None
    ) -> list[OpenOrder]:
        return self.clob.get_orders(
            self.address, self._creds, market=market, asset_id=asset_id, order_id=order_id
        )

    # ========== Async ==========

    async def place_order(
        self,
        order_args: OrderArgs,
        order_type: OrderType = OrderType.GTC,
        options: Optional[CreateOrderOptions] = None,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> OrderResponse:
        """
        Sign and submit a limit order without blocking the event loop.

        Runs in a worker thread. Cancelling the awaiting task does not
        retract a request already sent, and the submission is not retried.

        Raises:
            InvalidOrderArgsError: If GTD is requested without an expiration
        """
        if OrderType(order_type) is OrderType.GTD and not order_args.expiration:
            raise InvalidOrderArgsError("GTD orders need an expiration timestamp")

        signed = await asyncio.to_thread(
            self.create_order, order_args, options, extras, idempotency_key
        )
        return await asyncio.to_thread(self.post_order, signed, order_type)

    async def place_market_order(
        self,
        order_args: MarketOrderArgs,
        options: Optional[CreateOrderOptions] = None,
        extras: Optional[ExtraOrderArgs] = None,
        idempotency_key: Optional[str] = None
    ) -> OrderResponse:
        """Sign and submit a market order (FOK/FAK from order_args) in a worker thread."""
        if order_args.order_type not in (OrderType.FOK, OrderType.FAK):
            raise InvalidOrderArgsError(
                f"Market orders must be FOK or FAK, got {order_args.order_type.value}"
            )

        signed = await asyncio.to_thread(
            self.create_market_order, order_args, options, extras, idempotency_key
        )
        return await asyncio.to_thread(self.post_order, signed, order_args.order_type)

    # ========== Utility Methods ==========

    def close(self) -> None:
        """Close client and cleanup resources."""
        self.clob.close()
        logger.info("Trading client closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
