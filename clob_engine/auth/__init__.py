"""Authentication and signing for the CLOB."""

from .authenticator import Authenticator, build_hmac_signature
from .signer import Signer, PrivateKeySigner

__all__ = ["Authenticator", "build_hmac_signature", "Signer", "PrivateKeySigner"]
