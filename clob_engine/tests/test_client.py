"""Tests for the trading client facade."""

import time
from decimal import Decimal
from unittest.mock import Mock

import pytest

from ..api.clob import CLOBAPI
from ..client import TradingClient
from ..config import ClobSettings
from ..exceptions import (
    InvalidOrderArgsError,
    MissingCredentialsError,
    MissingFunderError,
    OrderRejectedError,
    ValidationError,
)
from ..metrics import Metrics
from ..models import (
    ApiCreds,
    CreateOrderOptions,
    MarketOrderArgs,
    OrderBook,
    OrderResponse,
    OrderSummary,
    OrderType,
    Side,
)
from .helpers import TEST_ADDRESS, TEST_PRIVATE_KEY, FUNDER_ADDRESS, TOKEN_ID
from .test_order_builder import limit_args


@pytest.fixture
def api():
    return Mock(spec=CLOBAPI)


@pytest.fixture
def metrics():
    return Metrics(enabled=True)


@pytest.fixture
def client(signer, settings, api, metrics):
    return TradingClient(signer, settings=settings, api=api, metrics=metrics)


def sample(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels) or 0


class TestConstruction:

    def test_from_settings(self):
        settings = ClobSettings(_env_file=None, private_key=TEST_PRIVATE_KEY,
                                signature_type=0, funder=None, enable_metrics=False)
        client = TradingClient.from_settings(settings)
        assert client.address == TEST_ADDRESS
        client.close()

    def test_from_settings_without_key(self, settings):
        with pytest.raises(ValidationError):
            TradingClient.from_settings(settings)

    def test_proxy_without_funder(self, signer, settings, api):
        with pytest.raises(MissingFunderError):
            TradingClient(signer, settings=settings, signature_type=1, api=api)

    def test_proxy_with_funder(self, signer, settings, api):
        client = TradingClient(signer, settings=settings, signature_type=2,
                               funder=FUNDER_ADDRESS, api=api)
        assert client.builder.maker == FUNDER_ADDRESS
        assert client.address == TEST_ADDRESS

    def test_context_manager_closes(self, signer, settings, api):
        with TradingClient(signer, settings=settings, api=api):
            pass
        api.close.assert_called_once()


class TestCredentials:

    def test_create_or_derive_stores_creds(self, client, api, creds):
        api.create_or_derive_api_key.return_value = creds

        assert client.creds is None
        assert client.create_or_derive_api_key(nonce=1) == creds
        assert client.creds == creds
        api.create_or_derive_api_key.assert_called_once_with(client.signer, 1)

    def test_creds_replaced_wholesale(self, client, creds):
        client.set_api_creds(creds)
        rotated = ApiCreds(api_key="k2", api_secret=creds.api_secret, api_passphrase="p2")
        client.set_api_creds(rotated)
        assert client.creds is rotated

    def test_delete_forgets_creds(self, client, api, creds):
        client.set_api_creds(creds)
        api.delete_api_key.return_value = True
        assert client.delete_api_key() is True
        assert client.creds is None


class TestOrderCreation:

    def test_options_looked_up_and_cached(self, client, api):
        api.get_tick_size.return_value = Decimal("0.01")
        api.get_neg_risk.return_value = False

        client.create_order(limit_args())
        client.create_order(limit_args(price="0.51"))

        api.get_tick_size.assert_called_once_with(TOKEN_ID)
        api.get_neg_risk.assert_called_once_with(TOKEN_ID)

    def test_explicit_options_skip_lookup(self, client, api, options):
        client.create_order(limit_args(), options)
        api.get_tick_size.assert_not_called()

    def test_signed_orders_counted(self, client, metrics, options):
        client.create_order(limit_args(), options)
        assert sample(metrics, "clob_orders_signed_total", side="BUY", signature_type="EOA") == 1

    def test_market_order_prices_from_book(self, client, api, options):
        api.get_order_book.return_value = OrderBook(
            asks=[OrderSummary(price=Decimal("0.50"), size=Decimal("100")),
                  OrderSummary(price=Decimal("0.60"), size=Decimal("100"))],
        )
        args = MarketOrderArgs(token_id=TOKEN_ID, amount="60", side=Side.BUY)

        signed = client.create_market_order(args, options)

        # 0.50 covers 50 collateral, the 0.60 level completes 60
        assert signed.order.maker_amount == 60_000_000
        assert signed.order.taker_amount == 100_000_000

    def test_market_order_with_price_skips_book(self, client, api, options):
        args = MarketOrderArgs(token_id=TOKEN_ID, amount="10", side=Side.SELL, price="0.4")
        client.create_market_order(args, options)
        api.get_order_book.assert_not_called()


class TestSubmission:

    def test_post_order(self, client, api, creds, options, metrics):
        client.set_api_creds(creds)
        api.post_order.return_value = OrderResponse(success=True, order_id="0x1", status="live")
        signed = client.create_order(limit_args(), options)

        response = client.post_order(signed, OrderType.FOK)

        assert response.order_id == "0x1"
        api.post_order.assert_called_once_with(signed, TEST_ADDRESS, creds, OrderType.FOK)
        assert sample(metrics, "clob_order_submissions_total", status="live") == 1

    def test_rejection_counted(self, client, api, creds, options, metrics):
        client.set_api_creds(creds)
        api.post_order.side_effect = OrderRejectedError("rejected", reason="balance")
        signed = client.create_order(limit_args(), options)

        with pytest.raises(OrderRejectedError):
            client.post_order(signed)
        assert sample(metrics, "clob_order_submissions_total", status="rejected") == 1

    def test_l2_calls_pass_current_creds(self, client, api, creds):
        client.set_api_creds(creds)
        client.cancel_all()
        client.get_orders(market="0xm")
        api.cancel_all.assert_called_once_with(TEST_ADDRESS, creds)
        api.get_orders.assert_called_once_with(
            TEST_ADDRESS, creds, market="0xm", asset_id=None, order_id=None
        )


class TestAsync:

    @pytest.mark.asyncio
    async def test_place_order(self, client, api, creds, options):
        client.set_api_creds(creds)
        api.post_order.return_value = OrderResponse(success=True, order_id="0x9", status="matched")

        response = await client.place_order(limit_args(), OrderType.GTC, options)

        assert response.order_id == "0x9"
        signed = api.post_order.call_args.args[0]
        assert signed.order.maker_amount == 5_000_000

    @pytest.mark.asyncio
    async def test_place_order_propagates_missing_creds(self, signer, settings, options):
        real_api = CLOBAPI(settings, Mock())
        real_api.session.request = Mock()
        client = TradingClient(signer, settings=settings, api=real_api)

        with pytest.raises(MissingCredentialsError):
            await client.place_order(limit_args(), options=options)
        real_api.session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_gtd_requires_expiration(self, client, options):
        with pytest.raises(InvalidOrderArgsError):
            await client.place_order(limit_args(), OrderType.GTD, options)

    @pytest.mark.asyncio
    async def test_gtd_with_expiration(self, client, api, creds, options):
        client.set_api_creds(creds)
        api.post_order.return_value = OrderResponse(success=True, order_id="0x5")
        args = limit_args(expiration=int(time.time()) + 3600)

        await client.place_order(args, OrderType.GTD, options)

        assert api.post_order.call_args.args[3] == OrderType.GTD

    @pytest.mark.asyncio
    async def test_place_market_order_requires_fok_or_fak(self, client, options):
        args = MarketOrderArgs(token_id=TOKEN_ID, amount="10", side=Side.BUY, price="0.5",
                               order_type=OrderType.GTC)
        with pytest.raises(InvalidOrderArgsError):
            await client.place_market_order(args, options)

    @pytest.mark.asyncio
    async def test_place_market_order(self, client, api, creds, options):
        client.set_api_creds(creds)
        api.post_order.return_value = OrderResponse(success=True, order_id="0x7")
        args = MarketOrderArgs(token_id=TOKEN_ID, amount="10", side=Side.BUY, price="0.5",
                               order_type=OrderType.FAK)

        await client.place_market_order(args, CreateOrderOptions(tick_size="0.01"))

        assert api.post_order.call_args.args[3] == OrderType.FAK
