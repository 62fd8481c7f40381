"""Deployer handle passed to migration scripts."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

import rlp
from eth_utils import keccak, to_canonical_address, to_checksum_address

from .artifacts import Artifact, ArtifactStore
from .exceptions import (
    DependencyNotDeployedError,
    DeploymentTimeoutError,
    GasLimitExceededError,
    TransactionFailedError,
)
from .network import Connection
from .registry import DeploymentRegistry
from .rpc import to_int
from .types import DeployedContract

logger = logging.getLogger(__name__)

ContractRef = Union[Artifact, DeployedContract, str]


def predict_contract_address(sender: str, nonce: int) -> str:
    """Address a CREATE from sender at nonce will produce."""
    encoded = rlp.encode([to_canonical_address(sender), nonce])
    return to_checksum_address(keccak(encoded)[12:])


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class Deployer:
    """
    Deploys contracts for one migration run on one network.

    Migration scripts receive an instance and call deploy(); constructor
    arguments that are artifacts or earlier deployments are replaced by
    their address on the current network.
    """

    def __init__(
        self,
        connection: Connection,
        artifacts: ArtifactStore,
        registry: DeploymentRegistry,
        migration: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.connection = connection
        self.artifacts = artifacts
        self.registry = registry
        self.migration = migration
        self.deployed: List[DeployedContract] = []
        self._sleep = sleep

    @property
    def network(self) -> str:
        return self.connection.profile.name

    @property
    def network_id(self) -> int:
        return self.connection.network_id

    @property
    def accounts(self) -> List[str]:
        return self.connection.signer.accounts

    def _artifact(self, contract: Union[Artifact, str]) -> Artifact:
        if isinstance(contract, Artifact):
            return contract
        return self.artifacts.require(contract)

    def address_of(self, contract: ContractRef) -> str:
        """
        Resolve a contract reference to its address on the current network.

        Raises:
            DependencyNotDeployedError: If the contract has not been deployed here
        """
        if isinstance(contract, DeployedContract):
            return contract.address

        name = contract.contract_name if isinstance(contract, Artifact) else contract
        if self.registry.has_contract(name, self.network):
            return self.registry.deployment(name, self.network).address

        artifact = self._artifact(contract)
        address = artifact.address(self.network_id)
        if address:
            return address

        raise DependencyNotDeployedError(
            f"{name} has not been deployed to network '{self.network}'. "
            "It must be deployed by an earlier migration."
        )

    def resolve(self, value: Any) -> Any:
        """Replace contract references (also inside lists) with addresses."""
        if isinstance(value, (Artifact, DeployedContract)):
            return self.address_of(value)
        if isinstance(value, (list, tuple)):
            return [self.resolve(v) for v in value]
        return value

    def deploy(
        self, contract: Union[Artifact, str], *args: Any, overwrite: bool = True
    ) -> DeployedContract:
        """
        Deploy a contract and wait until it is confirmed.

        Args:
            contract: Artifact or contract name
            *args: Constructor arguments; artifacts and deployments resolve to addresses
            overwrite: If False, keep an existing deployment that still has code

        Returns:
            DeployedContract describing the new (or kept) deployment

        Raises:
            DependencyNotDeployedError: If an argument refers to an undeployed contract
            ArtifactError: If the arguments don't fit the constructor
            TransactionFailedError: If the transaction reverted
            DeploymentTimeoutError: If it was not mined within timeoutBlocks
        """
        artifact = self._artifact(contract)

        if not overwrite:
            existing = self._existing(artifact)
            if existing is not None:
                logger.info(
                    "Keeping %s already deployed at %s", artifact.contract_name, existing.address
                )
                self.deployed.append(existing)
                return existing

        resolved = [self.resolve(a) for a in args]
        data = artifact.deployment_data(resolved)

        logger.info("Deploying %s", artifact.contract_name)
        deployed = self._execute(artifact, data, resolved)
        self.deployed.append(deployed)
        return deployed

    def _existing(self, artifact: Artifact) -> Optional[DeployedContract]:
        try:
            address = self.address_of(artifact)
        except DependencyNotDeployedError:
            return None

        code = self.connection.client.get_code(address)
        if not code or code in ("0x", "0x0"):
            return None

        if self.registry.has_contract(artifact.contract_name, self.network):
            return self.registry.deployment(artifact.contract_name, self.network)
        return DeployedContract(
            name=artifact.contract_name,
            address=address,
            network=self.network,
            network_id=self.network_id,
            url=self.connection.address_url(address),
        )

    def _execute(self, artifact: Artifact, data: str, args: List[Any]) -> DeployedContract:
        profile = self.connection.profile
        client = self.connection.client

        tx: Dict[str, Any] = {
            "data": data,
            "gas": profile.gas,
            "gasPrice": profile.gas_price,
            "value": 0,
        }
        start_block = client.block_number()
        tx_hash = self.connection.signer.send(client, tx)
        logger.info("   > transaction hash: %s", tx_hash)

        receipt = self._wait_for_receipt(tx_hash, start_block)
        if to_int(receipt.get("status")) == 0:
            raise TransactionFailedError(
                f"Deployment of {artifact.contract_name} reverted (transaction {tx_hash})"
            )
        if not receipt.get("contractAddress"):
            raise TransactionFailedError(
                f"Receipt for {tx_hash} carries no contract address"
            )

        address = to_checksum_address(receipt["contractAddress"])
        block = to_int(receipt["blockNumber"])
        self._wait_for_confirmations(block)
        timestamp = to_int(client.get_block(block)["timestamp"])

        deployed = DeployedContract(
            name=artifact.contract_name,
            address=address,
            network=self.network,
            network_id=self.network_id,
            transaction_hash=tx_hash,
            block=block,
            timestamp=timestamp,
            gas_used=to_int(receipt.get("gasUsed")),
            url=self.connection.address_url(address),
            constructor_args=_jsonable(args),
            migration=self.migration,
        )
        logger.info("   > contract address: %s (block %s)", address, block)

        self.registry.record(deployed, self.connection.chain_id)
        self.artifacts.record_deployment(artifact, self.network_id, address, tx_hash)
        return deployed

    def _wait_for_receipt(self, tx_hash: str, start_block: int) -> Dict[str, Any]:
        profile = self.connection.profile
        client = self.connection.client
        interval = profile.deployment_polling_interval / 1000

        while True:
            receipt = client.get_transaction_receipt(tx_hash)
            if receipt is not None and receipt.get("blockNumber") is not None:
                return receipt

            if client.block_number() - start_block >= profile.timeout_blocks:
                raise DeploymentTimeoutError(
                    f"Transaction {tx_hash} was not mined within "
                    f"{profile.timeout_blocks} blocks"
                )
            self._sleep(interval)

    def _wait_for_confirmations(self, block: int) -> None:
        profile = self.connection.profile
        if profile.confirmations <= 0:
            return

        logger.info("   > waiting for %d confirmation(s)", profile.confirmations)
        target = block + profile.confirmations
        interval = profile.deployment_polling_interval / 1000
        while self.connection.client.block_number() < target:
            self._sleep(interval)


class DryRunDeployer(Deployer):
    """
    Simulates a migration run without sending transactions.

    Each deploy() estimates gas and predicts the CREATE address from the
    sender's nonce, so later steps can reference earlier ones.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.predicted: Dict[str, str] = {}
        self.estimated_gas = 0
        self._nonce: Optional[int] = None

    def address_of(self, contract: ContractRef) -> str:
        if isinstance(contract, Artifact) and contract.contract_name in self.predicted:
            return self.predicted[contract.contract_name]
        if isinstance(contract, str) and contract in self.predicted:
            return self.predicted[contract]
        return super().address_of(contract)

    def _execute(self, artifact: Artifact, data: str, args: List[Any]) -> DeployedContract:
        profile = self.connection.profile
        client = self.connection.client
        sender = self.connection.signer.address

        if self._nonce is None:
            self._nonce = client.get_transaction_count(sender, "pending")

        gas = client.estimate_gas({"from": sender, "data": data})
        if gas > profile.gas:
            raise GasLimitExceededError(
                f"{artifact.contract_name} needs an estimated {gas} gas, "
                f"network '{profile.name}' allows {profile.gas}"
            )

        address = predict_contract_address(sender, self._nonce)
        self._nonce += 1
        self.predicted[artifact.contract_name] = address
        self.estimated_gas += gas
        logger.info("   > estimated gas: %d, expected address: %s", gas, address)

        return DeployedContract(
            name=artifact.contract_name,
            address=address,
            network=self.network,
            network_id=self.network_id,
            gas_used=gas,
            constructor_args=_jsonable(args),
            migration=self.migration,
            dry_run=True,
        )
