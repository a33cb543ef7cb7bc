"""Shared fixtures."""

from decimal import Decimal

import pytest

from ..auth.signer import PrivateKeySigner
from ..config import ClobSettings
from ..models import ApiCreds, CreateOrderOptions
from .helpers import TEST_PRIVATE_KEY, TEST_API_KEY, TEST_API_SECRET, TEST_API_PASSPHRASE


@pytest.fixture
def signer():
    return PrivateKeySigner(TEST_PRIVATE_KEY)


@pytest.fixture
def creds():
    return ApiCreds(
        api_key=TEST_API_KEY,
        api_secret=TEST_API_SECRET,
        api_passphrase=TEST_API_PASSPHRASE
    )


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return ClobSettings(
        _env_file=None,
        host="https://clob.test",
        chain_id=137,
        private_key=None,
        signature_type=0,
        funder=None,
        max_retries=2,
        enable_metrics=False,
        metadata_ttl=300.0
    )


@pytest.fixture
def options():
    return CreateOrderOptions(tick_size=Decimal("0.01"), neg_risk=False)
