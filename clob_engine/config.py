"""
Configuration management for the CLOB engine.

Loads settings from environment variables with validation, and holds the
static venue tables: exchange contracts per chain and the rounding grid per
tick size.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClobSettings(BaseSettings):
    """
    CLOB engine settings.

    Loads from environment variables with CLOB_ prefix.
    """
    model_config = SettingsConfigDict(
        env_prefix="CLOB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API
    host: str = Field(
        default="https://clob.polymarket.com",
        description="CLOB API URL"
    )

    # Chain and wallet
    chain_id: int = Field(default=137, description="Chain ID (137 Polygon, 80002 Amoy)")
    private_key: Optional[SecretStr] = Field(None, description="EOA private key (hex)")
    signature_type: int = Field(default=0, ge=0, le=2,
                                description="0=EOA, 1=PolyProxy, 2=PolyGnosisSafe")
    funder: Optional[str] = Field(None, description="Funder address for proxy wallets")

    # Timeouts and retries
    request_timeout: float = Field(default=30.0, ge=1.0, description="Request timeout (seconds)")
    connect_timeout: float = Field(default=10.0, ge=1.0, description="Connection timeout (seconds)")
    max_retries: int = Field(default=3, ge=0, le=10, description="Max retry attempts")
    retry_backoff_base: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")
    retry_backoff_max: float = Field(default=60.0, ge=1.0, description="Max backoff delay")

    # Circuit breaker
    circuit_breaker_threshold: int = Field(default=5, ge=1, description="Failures before opening")
    circuit_breaker_timeout: float = Field(default=60.0, ge=1.0, description="Reset timeout")

    # Order construction
    amount_tolerance_ticks: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        description="Max drift (in ticks) between requested and base-unit implied price"
    )
    metadata_ttl: float = Field(default=300.0, ge=0.0,
                                description="Tick size / neg-risk cache TTL (seconds)")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_requests: bool = Field(default=False, description="Log all HTTP requests")

    # Metrics
    enable_metrics: bool = Field(default=True, description="Collect Prometheus metrics")
    metrics_port: Optional[int] = Field(default=None, ge=1024, le=65535,
                                        description="Start exporter on this port")

    def __repr__(self) -> str:
        """Safe repr without sensitive data."""
        return (
            f"ClobSettings("
            f"host={self.host}, "
            f"chain_id={self.chain_id}, "
            f"signature_type={self.signature_type}"
            ")"
        )


@dataclass(frozen=True)
class ContractConfig:
    """Exchange and token contracts for one chain."""
    exchange: str
    neg_risk_exchange: str
    collateral: str
    conditional_tokens: str


@dataclass(frozen=True)
class RoundConfig:
    """Decimal places allowed for price, size and amounts on one tick grid."""
    price: int
    size: int
    amount: int


POLYGON = 137
AMOY = 80002

CONTRACTS: dict[int, ContractConfig] = {
    POLYGON: ContractConfig(
        exchange="0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
        neg_risk_exchange="0xC5d563A36AE78145C45a50134d48A1215220f80a",
        collateral="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        conditional_tokens="0x4D97DCd97eC945f40cF65F87097ACe5EA0476045",
    ),
    AMOY: ContractConfig(
        exchange="0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40",
        neg_risk_exchange="0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
        collateral="0x9c4e1703476e875070ee25b56a58b008cfb8fa78",
        conditional_tokens="0x69308FB512518e39F9b16112fA8d994F4e2Bf8bB",
    ),
}

# Collateral (USDC) and outcome tokens both use 6 decimals
COLLATERAL_DECIMALS = 6
TOKEN_DECIMALS = 6

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# EIP-712 domains
AUTH_DOMAIN_NAME = "ClobAuthDomain"
AUTH_DOMAIN_VERSION = "1"
AUTH_MESSAGE = "This message attests that I control the given wallet"
EXCHANGE_DOMAIN_NAME = "Polymarket CTF Exchange"
EXCHANGE_DOMAIN_VERSION = "1"

# Allowed tick sizes and their rounding grid
ROUNDING_CONFIG: dict[Decimal, RoundConfig] = {
    Decimal("0.1"): RoundConfig(price=1, size=2, amount=3),
    Decimal("0.01"): RoundConfig(price=2, size=2, amount=4),
    Decimal("0.001"): RoundConfig(price=3, size=2, amount=5),
    Decimal("0.0001"): RoundConfig(price=4, size=2, amount=6),
}
TICK_SIZES = tuple(ROUNDING_CONFIG.keys())

# REST endpoints
ENDPOINTS = {
    "ok": "/",
    "create_api_key": "/auth/api-key",
    "derive_api_key": "/auth/derive-api-key",
    "get_api_keys": "/auth/api-keys",
    "delete_api_key": "/auth/api-key",
    "post_order": "/order",
    "post_orders": "/orders",
    "cancel_order": "/order",
    "cancel_orders": "/orders",
    "cancel_all": "/cancel-all",
    "get_orders": "/data/orders",
    "get_order_book": "/book",
    "get_tick_size": "/tick-size",
    "get_neg_risk": "/neg-risk",
}


def get_settings() -> ClobSettings:
    """
    Get CLOB settings.

    Returns:
        Validated settings instance
    """
    return ClobSettings()


def get_contract_config(chain_id: int) -> ContractConfig:
    """
    Get contract addresses for a chain.

    Args:
        chain_id: Chain ID

    Returns:
        Contract config

    Raises:
        KeyError: If the chain is not supported
    """
    try:
        return CONTRACTS[chain_id]
    except KeyError:
        raise KeyError(f"Unsupported chain id: {chain_id}") from None


def get_exchange_address(chain_id: int, neg_risk: bool) -> str:
    """Exchange contract used as the EIP-712 verifying contract for orders."""
    config = get_contract_config(chain_id)
    return config.neg_risk_exchange if neg_risk else config.exchange
