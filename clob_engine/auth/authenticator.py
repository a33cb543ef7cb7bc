"""
Authentication headers for the CLOB.

L1: EIP-712 wallet signature over the ClobAuth challenge. Used to create or
derive API credentials.
L2: HMAC-SHA256 over timestamp + method + path + body, keyed with the API
secret. Used for every authenticated REST call.
"""

import time
import hmac
import hashlib
import base64
import binascii
from typing import Optional, Union
import logging

from .eip712 import auth_digest
from .signer import Signer
from ..exceptions import AuthenticationError, MissingCredentialsError, SigningError
from ..models import ApiCreds

logger = logging.getLogger(__name__)

POLY_ADDRESS = "POLY_ADDRESS"
POLY_SIGNATURE = "POLY_SIGNATURE"
POLY_TIMESTAMP = "POLY_TIMESTAMP"
POLY_NONCE = "POLY_NONCE"
POLY_API_KEY = "POLY_API_KEY"
POLY_PASSPHRASE = "POLY_PASSPHRASE"


def build_hmac_signature(
    secret: str,
    timestamp: Union[int, str],
    method: str,
    path: str,
    body: Optional[Union[str, bytes]] = None
) -> str:
    """
    Compute the L2 request signature.

    The body is signed byte for byte as given; pass the serialised JSON that
    goes on the wire.

    Args:
        secret: URL-safe base64 API secret
        timestamp: Unix timestamp (seconds)
        method: HTTP method
        path: Request path without host or query string
        body: Exact request body that will be sent

    Returns:
        URL-safe base64 HMAC-SHA256 signature

    Raises:
        AuthenticationError: If the secret is not valid base64
    """
    try:
        key = base64.urlsafe_b64decode(secret)
    except (binascii.Error, ValueError):
        raise AuthenticationError("API secret is not valid base64") from None

    message = str(timestamp) + method.upper() + path
    if body:
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        message += body

    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8")


class Authenticator:
    """
    Handles L1 and L2 authentication for the CLOB.

    L1: Wallet signature for credential creation/derivation
    L2: API key HMAC signature for API requests
    """

    def __init__(self, chain_id: int = 137):
        """
        Initialize authenticator.

        Args:
            chain_id: Chain ID (default: 137, Polygon)
        """
        self.chain_id = chain_id

    def create_l1_headers(
        self,
        signer: Signer,
        timestamp: Optional[int] = None,
        nonce: int = 0
    ) -> dict[str, str]:
        """
        Create L1 authentication headers.

        Args:
            signer: Wallet signer
            timestamp: Unix timestamp (uses current time if None)
            nonce: Credential nonce (default: 0)

        Returns:
            L1 headers dict

        Raises:
            SigningError: If the signer fails
            AuthenticationError: If the challenge cannot be encoded
        """
        if timestamp is None:
            timestamp = int(time.time())

        address = signer.address
        try:
            digest = auth_digest(address, timestamp, nonce, self.chain_id)
        except (ValueError, TypeError) as e:
            error_type = type(e).__name__
            logger.error(f"Failed to encode L1 challenge: {error_type}")
            raise AuthenticationError(f"L1 challenge encoding failed: {error_type}") from None

        try:
            signature = signer.sign(digest)
        except SigningError:
            raise
        except Exception as e:
            # Injected signers may raise anything; keep only the type
            error_type = type(e).__name__
            logger.error(f"Failed to create L1 headers: {error_type}")
            raise SigningError(f"L1 signature failed: {error_type}") from None

        logger.debug(f"Created L1 headers for {address} (nonce={nonce})")
        return {
            POLY_ADDRESS: address,
            POLY_SIGNATURE: signature,
            POLY_TIMESTAMP: str(timestamp),
            POLY_NONCE: str(nonce),
        }

    def create_l2_headers(
        self,
        address: str,
        creds: Optional[ApiCreds],
        method: str,
        path: str,
        body: Optional[Union[str, bytes]] = "",
        timestamp: Optional[int] = None
    ) -> dict[str, str]:
        """
        Create L2 authentication headers.

        The timestamp is taken fresh on every call; headers must not be
        reused across requests.

        Args:
            address: Wallet address the credentials belong to
            creds: API credentials
            method: HTTP method (GET, POST, DELETE)
            path: Request path
            body: Request body exactly as it will be sent
            timestamp: Unix timestamp (uses current time if None)

        Returns:
            L2 headers dict

        Raises:
            MissingCredentialsError: If creds is None
            AuthenticationError: If the secret is malformed
        """
        if creds is None:
            raise MissingCredentialsError(
                "API credentials required; call create_or_derive_api_key() first"
            )

        if timestamp is None:
            timestamp = int(time.time())

        signature = build_hmac_signature(creds.api_secret, timestamp, method, path, body)

        logger.debug(f"Created L2 headers for {method.upper()} {path}")
        return {
            POLY_ADDRESS: address,
            POLY_SIGNATURE: signature,
            POLY_TIMESTAMP: str(timestamp),
            POLY_API_KEY: creds.api_key,
            POLY_PASSPHRASE: creds.api_passphrase,
        }

    def verify_l2_signature(
        self,
        api_secret: str,
        signature: str,
        timestamp: Union[int, str],
        method: str,
        path: str,
        body: Optional[Union[str, bytes]] = ""
    ) -> bool:
        """
        Verify an L2 HMAC signature in constant time.

        Returns:
            True if signature is valid
        """
        expected = build_hmac_signature(api_secret, timestamp, method, path, body)
        return hmac.compare_digest(signature, expected)
