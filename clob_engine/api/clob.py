"""
CLOB API client.

L1 endpoints (API key creation/derivation) are signed with the wallet;
everything account-scoped is signed with L2 HMAC headers. Order
submission and cancels are never retried automatically.
"""

from decimal import Decimal
from typing import Any, Optional
import logging

from .base import BaseAPIClient, HeaderFactory
from ..auth.authenticator import Authenticator
from ..auth.signer import Signer
from ..config import ClobSettings, ENDPOINTS
from ..exceptions import (
    APIError,
    ApiKeyExistsError,
    AuthenticationError,
    MissingCredentialsError,
    OrderRejectedError,
    TradingError,
)
from ..metrics import Metrics
from ..models import (
    ApiCreds,
    CancelResponse,
    OpenOrder,
    OrderBook,
    OrderResponse,
    OrderType,
    SignedOrder,
)
from ..utils.retry import CircuitBreaker
from ..utils.validators import validate_tick_size

logger = logging.getLogger(__name__)

END_CURSOR = "LTE="


class CLOBAPI(BaseAPIClient):
    """
    CLOB REST client.

    Stateless with respect to credentials: callers pass the signer (L1) or
    address + ApiCreds (L2) on every call.
    """

    def __init__(
        self,
        settings: ClobSettings,
        authenticator: Authenticator,
        circuit_breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[Metrics] = None
    ):
        """
        Initialize CLOB API client.

        Args:
            settings: Client settings
            authenticator: Builds L1/L2 headers
            circuit_breaker: Optional circuit breaker
            metrics: Optional metrics collector
        """
        super().__init__(
            base_url=settings.host,
            settings=settings,
            circuit_breaker=circuit_breaker,
            metrics=metrics
        )
        self.authenticator = authenticator

    def _l1_headers(self, signer: Signer, nonce: int) -> HeaderFactory:
        def factory(method: str, path: str, body: Optional[bytes]) -> dict[str, str]:
            return self.authenticator.create_l1_headers(signer, nonce=nonce)
        return factory

    def _l2_headers(self, address: str, creds: Optional[ApiCreds]) -> HeaderFactory:
        if creds is None:
            raise MissingCredentialsError(
                "API credentials required; call create_or_derive_api_key() first"
            )

        def factory(method: str, path: str, body: Optional[bytes]) -> dict[str, str]:
            return self.authenticator.create_l2_headers(address, creds, method, path, body)
        return factory

    @staticmethod
    def _parse_creds(response: Any) -> ApiCreds:
        if not isinstance(response, dict):
            raise AuthenticationError(f"Unexpected API key response: {type(response).__name__}")

        missing = [k for k in ("apiKey", "secret", "passphrase") if not response.get(k)]
        if missing:
            raise AuthenticationError(
                f"API key response missing fields: {', '.join(missing)}"
            )
        return ApiCreds.model_validate(response)

    # ========== Health ==========

    def get_ok(self) -> bool:
        """
        Health check endpoint. No authentication.

        Returns:
            True if the server answers "OK"
        """
        response = self.get(ENDPOINTS["ok"], retry=False)
        if isinstance(response, str):
            return response.upper() == "OK"
        return bool(response)

    # ========== L1: API credentials ==========

    def create_api_key(self, signer: Signer, nonce: int = 0) -> ApiCreds:
        """
        Create new API credentials for the signer's address.

        Args:
            signer: Wallet signer
            nonce: Credential nonce

        Returns:
            New credentials

        Raises:
            ApiKeyExistsError: If a key already exists for (address, nonce)
            AuthenticationError: If the response lacks credential fields
        """
        try:
            response = self.post(
                ENDPOINTS["create_api_key"],
                header_factory=self._l1_headers(signer, nonce),
                retry=False
            )
        except APIError as e:
            if e.status_code in (400, 409):
                raise ApiKeyExistsError(
                    f"API key already exists for {signer.address} (nonce={nonce})",
                    {"status_code": e.status_code, "response": e.response}
                ) from e
            raise

        creds = self._parse_creds(response)
        logger.info(f"Created API key for {signer.address} (nonce={nonce})")
        return creds

    def derive_api_key(self, signer: Signer, nonce: int = 0) -> ApiCreds:
        """
        Derive existing API credentials for (address, nonce).

        Idempotent: the venue returns the same credentials each time.

        Raises:
            AuthenticationError: If the response lacks credential fields
        """
        response = self.get(
            ENDPOINTS["derive_api_key"],
            header_factory=self._l1_headers(signer, nonce)
        )
        creds = self._parse_creds(response)
        logger.info(f"Derived API key for {signer.address} (nonce={nonce})")
        return creds

    def create_or_derive_api_key(self, signer: Signer, nonce: int = 0) -> ApiCreds:
        """
        Create API credentials, or derive them if they already exist.

        Returns:
            Credentials for (address, nonce)
        """
        try:
            return self.create_api_key(signer, nonce)
        except ApiKeyExistsError:
            logger.info(f"API key exists for {signer.address}, deriving")
            return self.derive_api_key(signer, nonce)

    # ========== L2: API key management ==========

    def get_api_keys(self, address: str, creds: Optional[ApiCreds]) -> list[str]:
        """List API keys for the address."""
        response = self.get(
            ENDPOINTS["get_api_keys"],
            header_factory=self._l2_headers(address, creds)
        )
        if isinstance(response, dict):
            return list(response.get("apiKeys", []))
        return list(response)

    def delete_api_key(self, address: str, creds: Optional[ApiCreds]) -> bool:
        """Delete the API key in creds."""
        response = self.delete(
            ENDPOINTS["delete_api_key"],
            header_factory=self._l2_headers(address, creds),
            retry=False
        )
        logger.info(f"Deleted API key for {address}")
        return response == "OK" or bool(response)

    # ========== L2: Orders ==========

    @staticmethod
    def _order_body(signed: SignedOrder, creds: ApiCreds, order_type: OrderType) -> dict[str, Any]:
        return {
            "order": signed.to_payload(),
            "owner": creds.api_key,
            "orderType": OrderType(order_type).value,
        }

    @staticmethod
    def _parse_order_response(response: Any) -> OrderResponse:
        if not isinstance(response, dict):
            raise TradingError(
                f"Invalid order response format: expected dict, got {type(response).__name__}"
            )

        order_response = OrderResponse.model_validate(response)
        if not order_response.success:
            raise OrderRejectedError(
                f"Order rejected: {order_response.error_msg or 'unknown reason'}",
                order_id=order_response.order_id,
                reason=order_response.error_msg
            )
        if order_response.error_msg:
            # Accepted with a warning (e.g. delayed)
            logger.warning(f"Order {order_response.order_id}: {order_response.error_msg}")
        return order_response

    @staticmethod
    def _rejection_from(e: APIError) -> OrderRejectedError:
        reason = None
        if isinstance(e.response, dict):
            reason = e.response.get("error") or e.response.get("errorMsg")
        return OrderRejectedError(
            f"Order rejected: {reason or e.message}",
            reason=reason
        )

    def post_order(
        self,
        signed: SignedOrder,
        address: str,
        creds: Optional[ApiCreds],
        order_type: OrderType = OrderType.GTC
    ) -> OrderResponse:
        """
        Submit one signed order. Never retried.

        Args:
            signed: Signed order
            address: Wallet address the credentials belong to
            creds: API credentials
            order_type: GTC, GTD, FOK or FAK

        Returns:
            Parsed order response

        Raises:
            MissingCredentialsError: If creds is None
            OrderRejectedError: If the exchange rejects the order
        """
        header_factory = self._l2_headers(address, creds)
        try:
            response = self.post(
                ENDPOINTS["post_order"],
                payload=self._order_body(signed, creds, order_type),
                header_factory=header_factory,
                retry=False
            )
        except APIError as e:
            if e.status_code == 400:
                raise self._rejection_from(e) from e
            raise

        order_response = self._parse_order_response(response)
        logger.info(f"Order placed: {order_response.order_id} ({order_response.status})")
        return order_response

    def post_orders(
        self,
        orders: list[tuple[SignedOrder, OrderType]],
        address: str,
        creds: Optional[ApiCreds]
    ) -> list[OrderResponse]:
        """
        Submit a batch of signed orders in one request. Never retried.

        Per-order rejections are returned in the list, not raised.
        """
        header_factory = self._l2_headers(address, creds)
        payload = [self._order_body(signed, creds, order_type) for signed, order_type in orders]
        try:
            response = self.post(
                ENDPOINTS["post_orders"],
                payload=payload,
                header_factory=header_factory,
                retry=False
            )
        except APIError as e:
            if e.status_code == 400:
                raise self._rejection_from(e) from e
            raise

        if not isinstance(response, list):
            raise TradingError(
                f"Invalid batch response format: expected list, got {type(response).__name__}"
            )

        results = [OrderResponse.model_validate(item) for item in response]
        accepted = sum(1 for r in results if r.success)
        logger.info(f"Batch placed: {accepted}/{len(results)} accepted")
        return results

    def cancel_order(self, order_id: str, address: str, creds: Optional[ApiCreds]) -> CancelResponse:
        """Cancel one order by ID."""
        response = self.delete(
            ENDPOINTS["cancel_order"],
            payload={"orderID": order_id},
            header_factory=self._l2_headers(address, creds),
            retry=False
        )
        return CancelResponse.model_validate(response)

    def cancel_orders(
        self,
        order_ids: list[str],
        address: str,
        creds: Optional[ApiCreds]
    ) -> CancelResponse:
        """Cancel several orders by ID."""
        response = self.delete(
            ENDPOINTS["cancel_orders"],
            payload=list(order_ids),
            header_factory=self._l2_headers(address, creds),
            retry=False
        )
        return CancelResponse.model_validate(response)

    def cancel_all(self, address: str, creds: Optional[ApiCreds]) -> CancelResponse:
        """Cancel every open order of the account."""
        response = self.delete(
            ENDPOINTS["cancel_all"],
            header_factory=self._l2_headers(address, creds),
            retry=False
        )
        result = CancelResponse.model_validate(response)
        logger.info(f"Cancelled {len(result.canceled)} orders")
        return result

    def get_orders(
        self,
        address: str,
        creds: Optional[ApiCreds],
        market: Optional[str] = None,
        asset_id: Optional[str] = None,
        order_id: Optional[str] = None
    ) -> list[OpenOrder]:
        """
        Open orders, following pagination cursors to the end.

        Args:
            address: Wallet address
            creds: API credentials
            market: Optional condition ID filter
            asset_id: Optional token ID filter
            order_id: Optional single order filter
        """
        header_factory = self._l2_headers(address, creds)
        params: dict[str, Any] = {}
        if market:
            params["market"] = market
        if asset_id:
            params["asset_id"] = asset_id
        if order_id:
            params["id"] = order_id

        orders: list[OpenOrder] = []
        next_cursor = "MA=="
        while next_cursor != END_CURSOR:
            response = self.get(
                ENDPOINTS["get_orders"],
                params={**params, "next_cursor": next_cursor},
                header_factory=header_factory
            )
            if isinstance(response, list):
                orders.extend(OpenOrder.model_validate(item) for item in response)
                break

            orders.extend(OpenOrder.model_validate(item) for item in response.get("data", []))
            next_cursor = response.get("next_cursor") or END_CURSOR

        logger.debug(f"Fetched {len(orders)} open orders")
        return orders

    # ========== Public market data ==========

    def get_order_book(self, token_id: str) -> OrderBook:
        """Order book for one token. No authentication."""
        response = self.get(ENDPOINTS["get_order_book"], params={"token_id": token_id})
        return OrderBook.model_validate(response)

    def get_tick_size(self, token_id: str) -> Decimal:
        """
        Minimum tick size for a token.

        Raises:
            InvalidTickSizeError: If the venue reports an unsupported tick size
        """
        response = self.get(ENDPOINTS["get_tick_size"], params={"token_id": token_id})
        tick_size = validate_tick_size(response.get("minimum_tick_size"))
        logger.debug(f"Tick size for {token_id}: {tick_size}")
        return tick_size

    def get_neg_risk(self, token_id: str) -> bool:
        """Whether the token trades on the neg-risk exchange."""
        response = self.get(ENDPOINTS["get_neg_risk"], params={"token_id": token_id})
        neg_risk = bool(response.get("neg_risk", False))
        logger.debug(f"Neg risk for {token_id}: {neg_risk}")
        return neg_risk
