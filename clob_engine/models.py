"""
Type definitions for the CLOB engine.

Uses Pydantic for runtime validation and type safety.
DECIMAL PRECISION: prices, sizes and amounts are Decimal end to end; signed
amounts are integers in 6-decimal base units.
"""

from enum import Enum
from typing import Optional, Any, NamedTuple, Union
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .config import ZERO_ADDRESS
from .exceptions import MissingFunderError
from .utils.numeric import to_decimal


def _decimal_field(v: Any) -> Decimal:
    """Coerce a numeric input to Decimal without passing through binary float."""
    dec = to_decimal(v)
    if dec is None:
        raise ValueError(f"Cannot convert {v!r} to Decimal")
    return dec


class Side(str, Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"

    @property
    def code(self) -> int:
        """Numeric side used in the signed order struct."""
        return 0 if self is Side.BUY else 1


class OrderType(str, Enum):
    """Order type."""
    GTC = "GTC"  # Good-til-cancelled
    GTD = "GTD"  # Good-til-date
    FOK = "FOK"  # Fill-or-kill
    FAK = "FAK"  # Fill-and-kill


class OrderAddresses(NamedTuple):
    """Maker (economic owner) and signer (EOA key) of an order."""
    maker: str
    signer: str


class SignatureType(int, Enum):
    """
    Wallet signature type.

    The set is closed: every venue-supported wallet kind is listed here and
    carries its own maker/signer resolution.
    """
    EOA = 0  # Externally Owned Account, owns and signs
    POLY_PROXY = 1  # Proxy wallet deployed for the EOA
    POLY_GNOSIS_SAFE = 2  # Safe-style contract wallet

    @property
    def requires_funder(self) -> bool:
        return self is not SignatureType.EOA

    def resolve_addresses(self, eoa: str, funder: Optional[str] = None) -> OrderAddresses:
        """
        Resolve maker and signer addresses.

        The EOA always signs. For proxy wallets the funder holds the funds and
        is the maker; the exchange contract checks the pair on chain.

        Args:
            eoa: Address of the signing key
            funder: Proxy/Safe address holding collateral

        Returns:
            OrderAddresses(maker, signer)

        Raises:
            MissingFunderError: If a proxy type has no funder
        """
        if self is SignatureType.EOA:
            return OrderAddresses(maker=eoa, signer=eoa)

        if not funder:
            raise MissingFunderError(
                f"Signature type {self.name} requires a funder address"
            )
        return OrderAddresses(maker=funder, signer=eoa)


# Request Models
class OrderArgs(BaseModel):
    """Limit order arguments."""
    model_config = ConfigDict(frozen=True)

    token_id: str = Field(..., description="ERC1155 outcome token ID (decimal string)")
    price: Decimal = Field(..., description="Price per share, 0 < price < 1")
    size: Decimal = Field(..., description="Number of shares")
    side: Side = Field(..., description="BUY or SELL")
    expiration: int = Field(default=0, ge=0, description="Unix timestamp, 0 = no expiry")

    @field_validator("price", "size", mode="before")
    @classmethod
    def validate_numeric(cls, v: Any) -> Decimal:
        """Convert to Decimal (floats via str)."""
        return _decimal_field(v)


class MarketOrderArgs(BaseModel):
    """
    Market order arguments.

    BUY amount is collateral to spend; SELL amount is shares to sell.
    When price is omitted it is computed from the order book.
    """
    model_config = ConfigDict(frozen=True)

    token_id: str = Field(..., description="ERC1155 outcome token ID")
    amount: Decimal = Field(..., description="Collateral (BUY) or shares (SELL)")
    side: Side = Field(..., description="BUY or SELL")
    price: Optional[Decimal] = Field(None, description="Worst acceptable price")
    order_type: OrderType = Field(default=OrderType.FOK, description="FOK or FAK")

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        return _decimal_field(v)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v: Any) -> Optional[Decimal]:
        return None if v is None else _decimal_field(v)


class CreateOrderOptions(BaseModel):
    """Market-level options that select the rounding grid and exchange domain."""
    model_config = ConfigDict(frozen=True)

    tick_size: Decimal = Field(..., description="One of 0.1, 0.01, 0.001, 0.0001")
    neg_risk: bool = Field(default=False, description="Use the neg-risk exchange")

    @field_validator("tick_size", mode="before")
    @classmethod
    def validate_tick_size(cls, v: Any) -> Decimal:
        return _decimal_field(v)


class ExtraOrderArgs(BaseModel):
    """Optional order fields. Defaults: no fee, nonce 0, public order."""
    model_config = ConfigDict(frozen=True)

    fee_rate_bps: int = Field(default=0, ge=0, description="Fee rate in basis points")
    nonce: int = Field(default=0, ge=0, description="Exchange nonce")
    taker: str = Field(default=ZERO_ADDRESS, description="Zero address = anyone may fill")


class OrderData(BaseModel):
    """Unsigned order, field for field what the exchange hashes."""
    model_config = ConfigDict(frozen=True)

    salt: int
    maker: str
    signer: str
    taker: str
    token_id: int
    maker_amount: int
    taker_amount: int
    expiration: int
    nonce: int
    fee_rate_bps: int
    side: Side
    signature_type: SignatureType


class SignedOrder(BaseModel):
    """Order plus its 65-byte EIP-712 signature."""
    model_config = ConfigDict(frozen=True)

    order: OrderData
    signature: str

    def to_payload(self) -> dict[str, Any]:
        """JSON body fragment expected by POST /order."""
        order = self.order
        return {
            "salt": order.salt,
            "maker": order.maker,
            "signer": order.signer,
            "taker": order.taker,
            "tokenId": str(order.token_id),
            "makerAmount": str(order.maker_amount),
            "takerAmount": str(order.taker_amount),
            "expiration": str(order.expiration),
            "nonce": str(order.nonce),
            "feeRateBps": str(order.fee_rate_bps),
            "side": order.side.value,
            "signatureType": int(order.signature_type),
            "signature": self.signature,
        }


class ApiCreds(BaseModel):
    """
    L2 API credentials.

    SECURITY: secret and passphrase are hidden from repr.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(..., alias="apiKey")
    api_secret: str = Field(..., alias="secret", repr=False)
    api_passphrase: str = Field(..., alias="passphrase", repr=False)


# Response Models
class OrderSummary(BaseModel):
    """One price level of an order book."""
    model_config = ConfigDict(frozen=True)

    price: Decimal
    size: Decimal


class OrderBook(BaseModel):
    """Order book snapshot."""
    market: Optional[str] = None
    asset_id: Optional[str] = None
    hash: Optional[str] = None
    timestamp: Optional[Union[str, int]] = None
    bids: list[OrderSummary] = Field(default_factory=list)
    asks: list[OrderSummary] = Field(default_factory=list)
    tick_size: Optional[Decimal] = None
    neg_risk: Optional[bool] = None


class OrderResponse(BaseModel):
    """Order placement response."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    order_id: Optional[str] = Field(None, alias="orderID")
    status: Optional[str] = None
    error_msg: Optional[str] = Field(None, alias="errorMsg")
    order_hashes: Optional[list[str]] = Field(None, alias="orderHashes")


class OpenOrder(BaseModel):
    """Open order as reported by the venue."""
    id: str
    status: str
    market: str
    asset_id: str
    side: Side
    price: Decimal
    original_size: Decimal
    size_matched: Decimal
    outcome: Optional[str] = None
    maker_address: Optional[str] = None
    owner: Optional[str] = None
    expiration: Optional[Union[str, int]] = None
    order_type: Optional[str] = None
    created_at: Optional[Union[str, int]] = None


class CancelResponse(BaseModel):
    """Result of a cancel call."""
    canceled: list[str] = Field(default_factory=list)
    not_canceled: dict[str, Any] = Field(default_factory=dict)
