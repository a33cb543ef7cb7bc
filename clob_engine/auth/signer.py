"""
Wallet signing capability.

The engine only ever asks a signer for its address and for a signature over
a 32-byte digest. Key material stays inside the signer, so a hardware or
remote signer can be injected in place of PrivateKeySigner.
"""

from typing import Protocol, runtime_checkable
import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..exceptions import SigningError, ValidationError
from ..utils.validators import validate_private_key

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """Anything that can sign a 32-byte digest for one address."""

    @property
    def address(self) -> str:
        ...

    def sign(self, digest: bytes) -> str:
        """Return a 0x-prefixed 65-byte (r || s || v) signature."""
        ...


class PrivateKeySigner:
    """
    Signer backed by a local secp256k1 key (eth_account).

    SECURITY: the key is never logged, repr'd or placed in error messages.
    """

    def __init__(self, private_key: str):
        """
        Args:
            private_key: Hex private key, with or without 0x

        Raises:
            ValidationError: If the key is malformed
        """
        key = validate_private_key(private_key)
        try:
            self._account: LocalAccount = Account.from_key(key)
        except Exception as e:
            # Out of curve range; never echo the key
            raise ValidationError(f"Invalid private key: {type(e).__name__}") from None

    @property
    def address(self) -> str:
        return self._account.address

    def sign(self, digest: bytes) -> str:
        """
        Sign a raw 32-byte digest (no EIP-191 prefix).

        Raises:
            SigningError: If the key operation fails
        """
        if len(digest) != 32:
            raise SigningError(f"Digest must be 32 bytes, got {len(digest)}")

        try:
            signed = self._account.unsafe_sign_hash(digest)
        except Exception as e:
            error_type = type(e).__name__
            logger.error(f"Signing failed: {error_type}")
            raise SigningError(f"Signing failed: {error_type}") from None

        return "0x" + bytes(signed.signature).hex()

    def __repr__(self) -> str:
        return f"PrivateKeySigner(address={self.address})"
