"""Tests for the CLOB REST client with a mocked HTTP session."""

from unittest.mock import Mock, patch

import orjson
import pytest
import requests

from ..api.clob import CLOBAPI
from ..auth.authenticator import (
    Authenticator,
    POLY_ADDRESS,
    POLY_API_KEY,
    POLY_NONCE,
    POLY_SIGNATURE,
    POLY_TIMESTAMP,
)
from ..exceptions import (
    APIError,
    AuthenticationError,
    CircuitBreakerError,
    InvalidTickSizeError,
    MissingCredentialsError,
    OrderRejectedError,
    RateLimitError,
    TimeoutError,
)
from ..models import OrderType, SignedOrder
from ..trading.order_builder import OrderBuilder
from ..utils.retry import CircuitBreaker, OPEN
from .helpers import TEST_ADDRESS, TEST_API_SECRET, TOKEN_ID
from .test_order_builder import limit_args

CREDS_PAYLOAD = {
    "apiKey": "derived-key",
    "secret": TEST_API_SECRET,
    "passphrase": "derived-passphrase",
}


def make_response(status_code=200, payload=None, headers=None):
    response = Mock()
    response.status_code = status_code
    response.content = orjson.dumps(payload) if payload is not None else b""
    response.text = response.content.decode()
    response.headers = headers or {}
    return response


@pytest.fixture
def api(settings):
    client = CLOBAPI(settings, Authenticator(chain_id=137))
    client.session.request = Mock()
    return client


@pytest.fixture
def signed_order(signer, options) -> SignedOrder:
    return OrderBuilder(signer).create_order(limit_args(), options)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("clob_engine.utils.retry.time.sleep") as sleep:
        yield sleep


class TestApiKeys:

    def test_create_api_key(self, api, signer):
        api.session.request.return_value = make_response(payload=CREDS_PAYLOAD)

        creds = api.create_api_key(signer, nonce=2)

        assert creds.api_key == "derived-key"
        call = api.session.request.call_args
        assert call.kwargs["method"] == "POST"
        assert call.kwargs["url"] == "https://clob.test/auth/api-key"
        assert call.kwargs["headers"][POLY_ADDRESS] == TEST_ADDRESS
        assert call.kwargs["headers"][POLY_NONCE] == "2"

    def test_create_or_derive_falls_back(self, api, signer):
        api.session.request.side_effect = [
            make_response(400, {"error": "API key already exists"}),
            make_response(payload=CREDS_PAYLOAD),
        ]

        creds = api.create_or_derive_api_key(signer)

        assert creds.api_key == "derived-key"
        methods = [c.kwargs["method"] for c in api.session.request.call_args_list]
        assert methods == ["POST", "GET"]
        assert api.session.request.call_args.kwargs["url"].endswith("/auth/derive-api-key")

    def test_derive_is_idempotent(self, api, signer):
        api.session.request.side_effect = [
            make_response(payload=CREDS_PAYLOAD),
            make_response(payload=CREDS_PAYLOAD),
        ]
        assert api.derive_api_key(signer) == api.derive_api_key(signer)

    def test_incomplete_credentials(self, api, signer):
        api.session.request.return_value = make_response(payload={"apiKey": "k"})
        with pytest.raises(AuthenticationError, match="secret"):
            api.derive_api_key(signer)

    def test_unauthorized(self, api, signer):
        api.session.request.return_value = make_response(401, {"error": "Unauthorized"})
        with pytest.raises(AuthenticationError):
            api.derive_api_key(signer)
        assert api.session.request.call_count == 1


class TestOrders:

    def test_post_order_signs_the_sent_body(self, api, signed_order, creds):
        api.session.request.return_value = make_response(
            payload={"success": True, "orderID": "0xabc", "status": "live"}
        )

        response = api.post_order(signed_order, TEST_ADDRESS, creds, OrderType.GTD)

        assert response.order_id == "0xabc"
        call = api.session.request.call_args.kwargs
        body = call["data"]
        sent = orjson.loads(body)
        assert sent["owner"] == creds.api_key
        assert sent["orderType"] == "GTD"
        assert sent["order"]["signature"] == signed_order.signature
        assert sent["order"]["side"] == "BUY"

        headers = call["headers"]
        assert headers[POLY_API_KEY] == creds.api_key
        assert Authenticator().verify_l2_signature(
            TEST_API_SECRET, headers[POLY_SIGNATURE], headers[POLY_TIMESTAMP],
            "POST", "/order", body
        )

    def test_post_order_never_retried(self, api, signed_order, creds):
        api.session.request.return_value = make_response(503, {"error": "unavailable"})

        with pytest.raises(APIError) as exc_info:
            api.post_order(signed_order, TEST_ADDRESS, creds)

        assert exc_info.value.status_code == 503
        assert api.session.request.call_count == 1

    def test_post_order_timeout_not_retried(self, api, signed_order, creds):
        api.session.request.side_effect = requests.exceptions.Timeout("read timed out")
        with pytest.raises(TimeoutError):
            api.post_order(signed_order, TEST_ADDRESS, creds)
        assert api.session.request.call_count == 1

    def test_rejection_reason(self, api, signed_order, creds):
        api.session.request.return_value = make_response(
            400, {"error": "not enough balance / allowance"}
        )
        with pytest.raises(OrderRejectedError) as exc_info:
            api.post_order(signed_order, TEST_ADDRESS, creds)
        assert exc_info.value.reason == "not enough balance / allowance"

    def test_unsuccessful_response(self, api, signed_order, creds):
        api.session.request.return_value = make_response(
            payload={"success": False, "errorMsg": "order crosses book"}
        )
        with pytest.raises(OrderRejectedError, match="crosses"):
            api.post_order(signed_order, TEST_ADDRESS, creds)

    def test_missing_credentials_before_network(self, api, signed_order):
        with pytest.raises(MissingCredentialsError):
            api.post_order(signed_order, TEST_ADDRESS, None)
        api.session.request.assert_not_called()

    def test_post_orders_batch(self, api, signed_order, creds):
        api.session.request.return_value = make_response(payload=[
            {"success": True, "orderID": "0x1", "status": "live"},
            {"success": False, "errorMsg": "duplicate"},
        ])

        results = api.post_orders(
            [(signed_order, OrderType.GTC), (signed_order, OrderType.FOK)], TEST_ADDRESS, creds
        )

        assert [r.success for r in results] == [True, False]
        sent = orjson.loads(api.session.request.call_args.kwargs["data"])
        assert [item["orderType"] for item in sent] == ["GTC", "FOK"]

    def test_cancel_order(self, api, creds):
        api.session.request.return_value = make_response(
            payload={"canceled": ["0xabc"], "not_canceled": {}}
        )

        result = api.cancel_order("0xabc", TEST_ADDRESS, creds)

        assert result.canceled == ["0xabc"]
        call = api.session.request.call_args.kwargs
        assert call["method"] == "DELETE"
        assert orjson.loads(call["data"]) == {"orderID": "0xabc"}

    def test_apostrophe_in_body_signed_as_sent(self, api, creds):
        api.session.request.return_value = make_response(
            payload={"canceled": [], "not_canceled": {"it's": "unknown order"}}
        )

        api.cancel_order("it's", TEST_ADDRESS, creds)

        call = api.session.request.call_args.kwargs
        assert call["data"] == b'{"orderID":"it\'s"}'
        assert Authenticator().verify_l2_signature(
            TEST_API_SECRET, call["headers"][POLY_SIGNATURE], call["headers"][POLY_TIMESTAMP],
            "DELETE", "/order", call["data"]
        )

    def test_get_orders_follows_cursor(self, api, creds):
        order = {
            "id": "0x1", "status": "LIVE", "market": "0xm", "asset_id": TOKEN_ID,
            "side": "BUY", "price": "0.5", "original_size": "10", "size_matched": "0",
        }
        api.session.request.side_effect = [
            make_response(payload={"data": [order], "next_cursor": "MTAw"}),
            make_response(payload={"data": [{**order, "id": "0x2"}], "next_cursor": "LTE="}),
        ]

        orders = api.get_orders(TEST_ADDRESS, creds, asset_id=TOKEN_ID)

        assert [o.id for o in orders] == ["0x1", "0x2"]
        cursors = [c.kwargs["params"]["next_cursor"] for c in api.session.request.call_args_list]
        assert cursors == ["MA==", "MTAw"]


class TestTransport:

    def test_get_retries_transient_errors(self, api, no_sleep):
        api.session.request.side_effect = [
            make_response(502, {"error": "bad gateway"}),
            make_response(payload={"minimum_tick_size": "0.01"}),
        ]
        assert str(api.get_tick_size(TOKEN_ID)) == "0.01"
        assert api.session.request.call_count == 2
        assert no_sleep.call_count == 1

    def test_get_does_not_retry_client_errors(self, api):
        api.session.request.return_value = make_response(404, {"error": "not found"})
        with pytest.raises(APIError):
            api.get_order_book(TOKEN_ID)
        assert api.session.request.call_count == 1

    def test_retries_exhausted(self, api, settings):
        api.session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(APIError):
            api.get_neg_risk(TOKEN_ID)
        assert api.session.request.call_count == settings.max_retries + 1

    def test_rate_limit_honours_retry_after(self, api, no_sleep):
        api.session.request.side_effect = [
            make_response(429, {"error": "slow down"}, headers={"Retry-After": "3"}),
            make_response(payload={"neg_risk": True}),
        ]
        assert api.get_neg_risk(TOKEN_ID) is True
        no_sleep.assert_called_once_with(3.0)

    def test_rate_limit_error(self, api, settings):
        api.session.request.return_value = make_response(429, {}, headers={})
        with pytest.raises(RateLimitError):
            api.get_neg_risk(TOKEN_ID)

    def test_unsupported_tick_size(self, api):
        api.session.request.return_value = make_response(payload={"minimum_tick_size": "0.05"})
        with pytest.raises(InvalidTickSizeError):
            api.get_tick_size(TOKEN_ID)

    def test_invalid_json(self, api):
        response = make_response()
        response.content = b"<html>"
        response.text = "<html>"
        api.session.request.return_value = response
        with pytest.raises(APIError, match="Invalid JSON"):
            api.get_order_book(TOKEN_ID)

    def test_order_book(self, api):
        api.session.request.return_value = make_response(payload={
            "asset_id": TOKEN_ID,
            "bids": [{"price": "0.48", "size": "100"}],
            "asks": [{"price": "0.52", "size": "50"}],
        })
        book = api.get_order_book(TOKEN_ID)
        assert str(book.asks[0].price) == "0.52"
        assert api.session.request.call_args.kwargs["params"] == {"token_id": TOKEN_ID}

    def test_circuit_breaker_opens(self, settings):
        breaker = CircuitBreaker(failure_threshold=2, timeout=60, name="test")
        api = CLOBAPI(settings, Authenticator(), circuit_breaker=breaker)
        api.session.request = Mock(side_effect=requests.exceptions.ConnectionError("down"))

        with pytest.raises(APIError):
            api.get_ok()
        with pytest.raises(APIError):
            api.get_ok()

        assert breaker.state == OPEN
        with pytest.raises(CircuitBreakerError):
            api.get_ok()
        assert api.session.request.call_count == 2

    def test_health(self, api):
        api.session.request.return_value = make_response(payload="OK")
        assert api.get_ok() is True
