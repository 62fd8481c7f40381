"""JSON-RPC client for nft-tickets-deployments."""

import itertools
import logging
from typing import Any, Dict, List, Optional, Union

import requests

from .constants import RPC_REQUEST_TIMEOUT
from .exceptions import NetworkUnavailableError, RpcError

logger = logging.getLogger(__name__)


def to_int(value: Union[int, str, None]) -> Optional[int]:
    """
    Parse a JSON-RPC quantity.

    Nodes disagree on encoding (some return block gasLimit as a decimal
    int, most as a hex string), so both are accepted.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


class JsonRpcClient:
    """Minimal Ethereum JSON-RPC client over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = RPC_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform a JSON-RPC call.

        Args:
            method: RPC method name, e.g. "eth_blockNumber"
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            NetworkUnavailableError: On transport failure or non-200 status
            RpcError: If the node returns an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("RPC call %s", method)

        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            # The request URL may embed a provider key, so only the error type is shown
            raise NetworkUnavailableError(
                f"Network error during RPC call {method}: {type(e).__name__}"
            ) from e

        if response.status_code != 200:
            raise NetworkUnavailableError(
                f"RPC request {method} failed with status {response.status_code}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise RpcError(f"RPC response to {method} is not JSON") from e

        if "error" in result:
            error = result["error"]
            if isinstance(error, dict):
                raise RpcError(
                    f"RPC error from {method}: {error.get('message', error)}",
                    code=error.get("code"),
                )
            raise RpcError(f"RPC error from {method}: {error}")

        return result.get("result")

    # Chain state

    def net_version(self) -> int:
        return int(self.call("net_version"))

    def chain_id(self) -> int:
        return to_int(self.call("eth_chainId"))

    def block_number(self) -> int:
        return to_int(self.call("eth_blockNumber"))

    def get_block(self, block: Union[int, str] = "latest") -> Dict[str, Any]:
        tag = hex(block) if isinstance(block, int) else block
        result = self.call("eth_getBlockByNumber", [tag, False])
        if result is None:
            raise RpcError(f"Block {block} not found")
        return result

    def block_gas_limit(self) -> int:
        return to_int(self.get_block("latest")["gasLimit"])

    def accounts(self) -> List[str]:
        return self.call("eth_accounts") or []

    def gas_price(self) -> int:
        return to_int(self.call("eth_gasPrice"))

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return to_int(self.call("eth_getTransactionCount", [address, block]))

    def get_code(self, address: str, block: str = "latest") -> str:
        return self.call("eth_getCode", [address, block])

    # Transactions

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return to_int(self.call("eth_estimateGas", [tx]))

    def send_transaction(self, tx: Dict[str, Any]) -> str:
        return self.call("eth_sendTransaction", [tx])

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def close(self) -> None:
        self._session.close()
