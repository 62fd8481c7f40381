"""Transaction signers for nft-tickets-deployments."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from eth_account import Account
from eth_utils import ValidationError, to_checksum_address, to_hex

from .constants import HD_PATH_TEMPLATE
from .exceptions import ConfigError
from .rpc import JsonRpcClient
from .types import NetworkProfile

Account.enable_unaudited_hdwallet_features()


def _quantities_to_hex(tx: Dict[str, Any]) -> Dict[str, Any]:
    return {k: hex(v) if isinstance(v, int) else v for k, v in tx.items()}


class Signer(ABC):
    """Sends transactions on behalf of one deployer account."""

    address: str

    @property
    def accounts(self) -> List[str]:
        return [self.address]

    @abstractmethod
    def send(self, client: JsonRpcClient, tx: Dict[str, Any]) -> str:
        """
        Submit a transaction.

        Args:
            client: RPC client for the target network
            tx: Transaction fields with integer quantities (data, gas, gasPrice, value)

        Returns:
            Transaction hash
        """


class NodeSigner(Signer):
    """Uses an account unlocked on the node itself (local development chains)."""

    def __init__(self, client: JsonRpcClient):
        self._accounts = [to_checksum_address(a) for a in client.accounts()]
        if not self._accounts:
            raise ConfigError(f"Node at {client.url} exposes no unlocked accounts")
        self.address = self._accounts[0]

    @property
    def accounts(self) -> List[str]:
        return list(self._accounts)

    def send(self, client: JsonRpcClient, tx: Dict[str, Any]) -> str:
        return client.send_transaction(_quantities_to_hex({"from": self.address, **tx}))


class MnemonicSigner(Signer):
    """Signs locally with a key derived from a BIP-39 mnemonic."""

    def __init__(self, mnemonic: str, chain_id: int, address_index: int = 0):
        try:
            self._account = Account.from_mnemonic(
                mnemonic, account_path=HD_PATH_TEMPLATE.format(index=address_index)
            )
        except (ValueError, ValidationError) as e:
            # Never echo the phrase itself
            raise ConfigError("Invalid deployer mnemonic") from e
        self.address = self._account.address
        self.chain_id = chain_id

    def send(self, client: JsonRpcClient, tx: Dict[str, Any]) -> str:
        nonce = client.get_transaction_count(self.address, "pending")
        signed = self._account.sign_transaction(
            {**tx, "nonce": nonce, "chainId": self.chain_id}
        )
        return client.send_raw_transaction(to_hex(signed.raw_transaction))


def signer_for(profile: NetworkProfile, client: JsonRpcClient, mnemonic: str, chain_id: int) -> Signer:
    """
    Pick the signer a profile calls for.

    Args:
        profile: Selected network profile
        client: Connected RPC client
        mnemonic: Expanded mnemonic (ignored for local profiles)
        chain_id: Chain id used for EIP-155 replay protection
    """
    if profile.is_local:
        return NodeSigner(client)
    return MnemonicSigner(mnemonic, chain_id, profile.address_index)
