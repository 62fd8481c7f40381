"""Data types and dataclasses for nft-tickets-deployments."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .constants import (
    DEFAULT_CONFIRMATIONS,
    DEFAULT_GAS,
    DEFAULT_GAS_PRICE,
    DEFAULT_NETWORK_CHECK_TIMEOUT,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_TIMEOUT_BLOCKS,
    WILDCARD_NETWORK_ID,
)


@dataclass(frozen=True)
class NetworkProfile:
    """Connection and transaction tuning for one named network."""

    name: str
    network_id: Union[int, str]  # int, or "*" for any network

    # Local node with unlocked accounts
    host: Optional[str] = None
    port: Optional[int] = None

    # Wallet-backed provider; values may hold ${VAR} placeholders
    url: Optional[str] = None
    mnemonic: Optional[str] = field(default=None, repr=False)
    address_index: int = 0

    confirmations: int = DEFAULT_CONFIRMATIONS
    timeout_blocks: int = DEFAULT_TIMEOUT_BLOCKS
    skip_dry_run: bool = False
    gas: int = DEFAULT_GAS
    gas_price: int = DEFAULT_GAS_PRICE
    deployment_polling_interval: int = DEFAULT_POLLING_INTERVAL  # ms
    network_check_timeout: int = DEFAULT_NETWORK_CHECK_TIMEOUT  # ms

    @property
    def is_local(self) -> bool:
        return self.host is not None

    @property
    def accepts_any_network(self) -> bool:
        return self.network_id == WILDCARD_NETWORK_ID

    @property
    def endpoint(self) -> str:
        """RPC endpoint, unexpanded."""
        if self.is_local:
            return f"http://{self.host}:{self.port}"
        return self.url or ""


@dataclass
class DeployedContract:
    """Information about a deployed contract."""

    # Required fields
    name: str  # Contract name, e.g., "EventManager"
    address: str  # Checksummed address
    network: str  # Profile name, e.g., "sepolia"
    network_id: int  # Network id reported by the node

    # Filled in for live deployments, None for dry runs
    transaction_hash: Optional[str] = None
    block: Optional[int] = None
    timestamp: Optional[int] = None
    gas_used: Optional[int] = None
    url: Optional[str] = None  # Block explorer URL

    constructor_args: List[Any] = field(default_factory=list)
    migration: Optional[int] = None  # Number of the step that deployed it
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "network_id": self.network_id,
            "transaction_hash": self.transaction_hash,
            "block": self.block,
            "timestamp": self.timestamp,
            "gas_used": self.gas_used,
            "url": self.url,
            "constructor_args": self.constructor_args,
            "migration": self.migration,
        }


@dataclass
class MigrationResult:
    """Outcome of one run_migrations() call."""

    network: str
    network_id: int
    deployed: List[DeployedContract] = field(default_factory=list)
    executed_migrations: List[int] = field(default_factory=list)
    last_completed_migration: Optional[int] = None
    dry_run: bool = False
    estimated_gas: int = 0
