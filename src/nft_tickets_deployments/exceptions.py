"""Custom exception classes for nft-tickets-deployments."""

from typing import List, Optional


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class ConfigError(DeploymentError, ValueError):
    """Raised when the deployment configuration cannot be used."""

    pass


class InvalidNetworkProfileError(ConfigError):
    """Raised when a network profile fails shape validation."""

    def __init__(self, network: str, problems: List[str]):
        self.network = network
        self.problems = problems
        super().__init__(
            f"Invalid network profile '{network}': " + "; ".join(problems)
        )


class NetworkNotFoundError(DeploymentError, ValueError):
    """Raised when requested network profile is not configured."""

    pass


class RegistryNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when the deployment registry file is not found."""

    pass


class InvalidRegistryError(DeploymentError, ValueError):
    """Raised when the deployment registry file cannot be read."""

    pass


class ArtifactError(DeploymentError, ValueError):
    """Raised when a compiled contract artifact is unusable."""

    pass


class ArtifactNotFoundError(ArtifactError, FileNotFoundError):
    """Raised when a compiled contract artifact does not exist."""

    pass


class ContractNotFoundError(DeploymentError, ValueError):
    """Raised when a contract has no recorded deployment on a network."""

    pass


class DependencyNotDeployedError(ContractNotFoundError):
    """Raised when a constructor argument refers to an undeployed contract."""

    pass


class MigrationError(DeploymentError, ValueError):
    """Raised when migration scripts are malformed or out of order."""

    pass


class NetworkUnavailableError(DeploymentError, ConnectionError):
    """Raised when the RPC endpoint cannot be reached."""

    pass


class NetworkMismatchError(DeploymentError, ValueError):
    """Raised when the node reports a different network id than configured."""

    pass


class GasLimitExceededError(DeploymentError, ValueError):
    """Raised when the configured gas exceeds the block gas limit."""

    pass


class RpcError(DeploymentError, ValueError):
    """Raised when the node answers a JSON-RPC call with an error."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class TransactionFailedError(DeploymentError, RuntimeError):
    """Raised when a deployment transaction is mined but reverted."""

    pass


class DeploymentTimeoutError(DeploymentError, TimeoutError):
    """Raised when a deployment transaction is not mined within timeoutBlocks."""

    pass
