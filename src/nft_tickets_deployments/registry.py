"""Persistent record of deployed contract references."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import (
    ContractNotFoundError,
    InvalidRegistryError,
    NetworkNotFoundError,
    RegistryNotFoundError,
)
from .paths import get_registry_path
from .types import DeployedContract


class DeploymentRegistry:
    """Tracks contract addresses and migration progress per network."""

    def __init__(self, registry_path: Optional[Union[Path, str]] = None, create: bool = False):
        """
        Initialize the registry.

        Args:
            registry_path: Path to deployments.json
                           If None, uses ./.nft-tickets-deployments/deployments.json
            create: Start an empty registry when the file does not exist

        Raises:
            RegistryNotFoundError: If registry file not found and create is False
            InvalidRegistryError: If the registry file is corrupt
        """
        if registry_path is None:
            registry_path = get_registry_path()

        self.path = Path(registry_path)
        if not self.path.exists():
            if not create:
                raise RegistryNotFoundError(
                    f"Deployment registry not found at {self.path}. "
                    "Run a migration to create it."
                )
            self._data: Dict[str, Any] = {"metadata": {}, "networks": {}}
            return

        try:
            with open(self.path) as f:
                self._data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidRegistryError(
                f"Deployment registry {self.path} is not valid JSON: {e}"
            ) from e
        if not isinstance(self._data, dict):
            raise InvalidRegistryError(f"Deployment registry {self.path} must contain a JSON object")
        self._data.setdefault("metadata", {})
        self._data.setdefault("networks", {})

    def _network(self, network: str) -> Dict[str, Any]:
        if not self.has_network(network):
            raise NetworkNotFoundError(f"No deployments recorded for network '{network}'")
        return self._data["networks"][network]

    def has_network(self, network: str) -> bool:
        return network in self._data["networks"]

    def networks(self) -> List[str]:
        return sorted(self._data["networks"])

    def contract_names(self, network: str) -> List[str]:
        """
        Get names of contracts deployed on a network.

        Raises:
            NetworkNotFoundError: If nothing was recorded for the network
        """
        return list(self._network(network).get("contracts", {}).keys())

    def has_contract(self, contract_name: str, network: str) -> bool:
        if not self.has_network(network):
            return False
        return contract_name in self._data["networks"][network].get("contracts", {})

    def deployment(self, contract_name: str, network: str) -> DeployedContract:
        """
        Get the recorded deployment of a contract.

        Args:
            contract_name: Name of contract, e.g. "UserAccount"
            network: Network profile name

        Returns:
            DeployedContract object

        Raises:
            NetworkNotFoundError: If nothing was recorded for the network
            ContractNotFoundError: If the contract was not deployed there
        """
        contracts = self._network(network).get("contracts", {})
        if contract_name not in contracts:
            raise ContractNotFoundError(
                f"Contract '{contract_name}' not deployed on network '{network}'"
            )

        data = contracts[contract_name]
        return DeployedContract(
            name=contract_name,
            address=data["address"],
            network=network,
            network_id=data["network_id"],
            transaction_hash=data.get("transaction_hash"),
            block=data.get("block"),
            timestamp=data.get("timestamp"),
            gas_used=data.get("gas_used"),
            url=data.get("url"),
            constructor_args=data.get("constructor_args", []),
            migration=data.get("migration"),
        )

    def all_deployments(self, network: str) -> List[DeployedContract]:
        """Get every contract recorded for a network, in deployment order."""
        result = [self.deployment(name, network) for name in self.contract_names(network)]
        result.sort(key=lambda d: (d.migration or 0, d.block or 0))
        return result

    def last_completed_migration(self, network: str) -> Optional[int]:
        if not self.has_network(network):
            return None
        return self._data["networks"][network].get("last_completed_migration")

    def network_info(self, network: str) -> Dict[str, Any]:
        """
        Get the network and chain ids recorded for a network.

        Raises:
            NetworkNotFoundError: If nothing was recorded for the network
        """
        data = self._network(network)
        return {
            "network_id": data.get("network_id"),
            "chain_id": data.get("chain_id"),
            "last_completed_migration": data.get("last_completed_migration"),
        }

    def metadata(self) -> Dict[str, Any]:
        return self._data["metadata"]

    # Mutations

    def _ensure_network(self, network: str, network_id: int, chain_id: Optional[int]) -> Dict[str, Any]:
        entry = self._data["networks"].setdefault(
            network,
            {"network_id": network_id, "chain_id": chain_id, "contracts": {}},
        )
        entry["network_id"] = network_id
        if chain_id is not None:
            entry["chain_id"] = chain_id
        entry.setdefault("contracts", {})
        return entry

    def record(self, deployed: DeployedContract, chain_id: Optional[int] = None) -> None:
        """Store (or replace) a contract's deployment on its network."""
        entry = self._ensure_network(deployed.network, deployed.network_id, chain_id)
        entry["contracts"][deployed.name] = deployed.to_dict()

    def mark_completed(
        self, network: str, migration: int, network_id: int, chain_id: Optional[int] = None
    ) -> None:
        entry = self._ensure_network(network, network_id, chain_id)
        entry["last_completed_migration"] = migration

    def clear_network(self, network: str) -> None:
        """Forget everything recorded for a network (used by --reset)."""
        self._data["networks"].pop(network, None)

    def save(self, compiler_version: Optional[str] = None) -> Path:
        """
        Write the registry to disk.

        Creates parent directories if they don't exist.
        """
        self._data["metadata"]["updated_at"] = datetime.now(timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
        if compiler_version is not None:
            self._data["metadata"]["compiler_version"] = compiler_version

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        return self.path
