"""
EIP-712 hashing for auth challenges and orders.

digest = keccak256(0x1901 || domainSeparator || hashStruct(message))

The order domain depends on the neg-risk flag (two exchange contracts), so
it is built per order rather than cached on the builder.
"""

from typing import Optional

from eth_utils import keccak
from poly_eip712_structs import EIP712Struct, make_domain

from .eip712_models import ClobAuth, Order
from ..config import (
    AUTH_DOMAIN_NAME,
    AUTH_DOMAIN_VERSION,
    AUTH_MESSAGE,
    EXCHANGE_DOMAIN_NAME,
    EXCHANGE_DOMAIN_VERSION,
    get_exchange_address,
)
from ..models import OrderData


def auth_domain(chain_id: int) -> EIP712Struct:
    """ClobAuthDomain (no verifying contract)."""
    return make_domain(
        name=AUTH_DOMAIN_NAME,
        version=AUTH_DOMAIN_VERSION,
        chainId=chain_id
    )


def exchange_domain(chain_id: int, neg_risk: bool = False) -> EIP712Struct:
    """
    Exchange domain for order signatures.

    Args:
        chain_id: Chain ID
        neg_risk: Use the neg-risk exchange as verifying contract

    Raises:
        KeyError: If the chain is not supported
    """
    return make_domain(
        name=EXCHANGE_DOMAIN_NAME,
        version=EXCHANGE_DOMAIN_VERSION,
        chainId=chain_id,
        verifyingContract=get_exchange_address(chain_id, neg_risk)
    )


def domain_separator(domain: EIP712Struct) -> bytes:
    return domain.hash_struct()


def build_clob_auth(address: str, timestamp: int, nonce: int = 0) -> ClobAuth:
    return ClobAuth(
        address=address,
        timestamp=str(timestamp),
        nonce=nonce,
        message=AUTH_MESSAGE
    )


def build_order_struct(order: OrderData) -> Order:
    """Map an unsigned order onto the on-chain struct."""
    return Order(
        salt=order.salt,
        maker=order.maker,
        signer=order.signer,
        taker=order.taker,
        tokenId=order.token_id,
        makerAmount=order.maker_amount,
        takerAmount=order.taker_amount,
        expiration=order.expiration,
        nonce=order.nonce,
        feeRateBps=order.fee_rate_bps,
        side=order.side.code,
        signatureType=int(order.signature_type)
    )


def auth_struct_hash(address: str, timestamp: int, nonce: int = 0) -> bytes:
    return build_clob_auth(address, timestamp, nonce).hash_struct()


def order_struct_hash(order: OrderData) -> bytes:
    return build_order_struct(order).hash_struct()


def auth_digest(
    address: str,
    timestamp: int,
    nonce: int,
    chain_id: int
) -> bytes:
    """
    32-byte digest the wallet signs for L1 authentication.

    Args:
        address: Signer address
        timestamp: Unix timestamp (seconds)
        nonce: Credential nonce
        chain_id: Chain ID

    Returns:
        Digest bytes
    """
    message = build_clob_auth(address, timestamp, nonce)
    return keccak(message.signable_bytes(auth_domain(chain_id)))


def order_digest(
    order: OrderData,
    chain_id: int,
    neg_risk: bool = False,
    domain: Optional[EIP712Struct] = None
) -> bytes:
    """
    32-byte digest the signer signs for an order.

    Args:
        order: Unsigned order
        chain_id: Chain ID
        neg_risk: Select the neg-risk exchange domain
        domain: Prebuilt domain (overrides chain_id/neg_risk)

    Returns:
        Digest bytes
    """
    domain = domain or exchange_domain(chain_id, neg_risk)
    return keccak(build_order_struct(order).signable_bytes(domain))
