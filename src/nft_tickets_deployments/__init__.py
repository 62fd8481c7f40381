"""
nft-tickets-deployments: deployment tooling for the NFT ticketing smart contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .config import DeployConfig, load_config
from .deployer import Deployer, DryRunDeployer
from .deployments import run_migrations
from .exceptions import (
    ArtifactError,
    ArtifactNotFoundError,
    ConfigError,
    ContractNotFoundError,
    DependencyNotDeployedError,
    DeploymentError,
    DeploymentTimeoutError,
    GasLimitExceededError,
    InvalidNetworkProfileError,
    InvalidRegistryError,
    MigrationError,
    NetworkMismatchError,
    NetworkNotFoundError,
    NetworkUnavailableError,
    RegistryNotFoundError,
    RpcError,
    TransactionFailedError,
)
from .registry import DeploymentRegistry
from .types import DeployedContract, MigrationResult, NetworkProfile

try:
    __version__ = version("nft-tickets-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "run_migrations",
    "load_config",
    "DeployConfig",
    "DeploymentRegistry",
    "Deployer",
    "DryRunDeployer",
    "DeployedContract",
    "MigrationResult",
    "NetworkProfile",
    "DeploymentError",
    "ConfigError",
    "InvalidNetworkProfileError",
    "NetworkNotFoundError",
    "RegistryNotFoundError",
    "InvalidRegistryError",
    "ArtifactError",
    "ArtifactNotFoundError",
    "ContractNotFoundError",
    "DependencyNotDeployedError",
    "MigrationError",
    "NetworkUnavailableError",
    "NetworkMismatchError",
    "GasLimitExceededError",
    "RpcError",
    "TransactionFailedError",
    "DeploymentTimeoutError",
]
