"""Shared pytest fixtures for nft-tickets-deployments tests."""

import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import responses
import rlp
from eth_account import Account
from eth_utils import keccak, to_canonical_address, to_checksum_address

from nft_tickets_deployments.config import DeployConfig, parse_config

LOCAL_URL = "http://127.0.0.1:8545"
REMOTE_URL = "https://sepolia.example.com/v3/test-project"

# Well-known development mnemonic; account 0 is 0xf39F...2266
TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_MNEMONIC_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

NODE_ACCOUNT = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"

TEST_ENV = {
    "INFURA_PROJECT_ID": "test-project",
    "DEPLOYER_MNEMONIC": TEST_MNEMONIC,
}

BYTECODE = "0x6080604052348015600f57600080fd5b50"
COMPILER_VERSION = "0.8.19+commit.7dd6d404.Emscripten.clang"

ADDRESS_CONSTRUCTOR = {
    "type": "constructor",
    "stateMutability": "nonpayable",
    "inputs": [{"internalType": "address", "name": "_userAccount", "type": "address"}],
}


def no_sleep(_seconds: float) -> None:
    pass


class FakeNode:
    """In-memory JSON-RPC node that mines every transaction immediately."""

    def __init__(self, network_id: int = 5777, chain_id: int = 1337):
        self.network_id = network_id
        self.chain_id = chain_id
        self.gas_limit = 30_000_000
        self.block = 100
        self.accounts = [NODE_ACCOUNT]
        self.estimate = 500_000
        self.mine = True
        self.revert = False
        self.calls: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.code: Dict[str, str] = {}
        self.nonces: Dict[str, int] = defaultdict(int)

    def handle(self, request):
        body = json.loads(request.body)
        method = body["method"]
        self.calls.append(method)
        handler = getattr(self, "rpc_" + method, None)
        if handler is None:
            payload = {
                "jsonrpc": "2.0",
                "id": body["id"],
                "error": {"code": -32601, "message": f"method {method} not found"},
            }
        else:
            payload = {"jsonrpc": "2.0", "id": body["id"], "result": handler(*body["params"])}
        return (200, {}, json.dumps(payload))

    def calls_to(self, method: str) -> int:
        return self.calls.count(method)

    # RPC methods

    def rpc_net_version(self):
        return str(self.network_id)

    def rpc_eth_chainId(self):
        return hex(self.chain_id)

    def rpc_eth_blockNumber(self):
        # Every poll sees a new block
        self.block += 1
        return hex(self.block)

    def rpc_eth_getBlockByNumber(self, tag, _full):
        number = self.block if tag == "latest" else int(tag, 16)
        return {
            "number": hex(number),
            "gasLimit": hex(self.gas_limit),
            "timestamp": hex(1_700_000_000 + number),
        }

    def rpc_eth_accounts(self):
        return list(self.accounts)

    def rpc_eth_gasPrice(self):
        return hex(20_000_000_000)

    def rpc_eth_getTransactionCount(self, address, _tag):
        return hex(self.nonces[address.lower()])

    def rpc_eth_estimateGas(self, _tx):
        return hex(self.estimate)

    def rpc_eth_getCode(self, address, _tag):
        return self.code.get(address.lower(), "0x")

    def rpc_eth_sendTransaction(self, tx):
        self.sent.append({"from": tx["from"], "data": tx["data"], "gas": tx["gas"]})
        return self._include(tx["from"])

    def rpc_eth_sendRawTransaction(self, raw):
        sender = Account.recover_transaction(raw)
        self.sent.append({"from": sender, "raw": raw})
        return self._include(sender)

    def rpc_eth_getTransactionReceipt(self, tx_hash):
        return self.receipts.get(tx_hash)

    def _include(self, sender: str) -> str:
        nonce = self.nonces[sender.lower()]
        self.nonces[sender.lower()] += 1
        address = to_checksum_address(
            keccak(rlp.encode([to_canonical_address(sender), nonce]))[12:]
        )
        tx_hash = "0x" + keccak(text=f"{sender}:{nonce}").hex()
        if not self.mine:
            return tx_hash

        self.block += 1
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "contractAddress": address.lower(),
            "status": "0x0" if self.revert else "0x1",
            "gasUsed": hex(321_000),
        }
        if not self.revert:
            self.code[address.lower()] = BYTECODE
        return tx_hash


def write_artifact(
    build_dir: Path,
    name: str,
    constructor: Optional[Dict[str, Any]] = None,
    networks: Optional[Dict[str, Any]] = None,
    bytecode: str = BYTECODE,
) -> Path:
    abi: List[Dict[str, Any]] = [
        {"type": "event", "name": "Created", "inputs": [], "anonymous": False}
    ]
    if constructor is not None:
        abi.insert(0, constructor)
    path = build_dir / f"{name}.json"
    path.write_text(
        json.dumps(
            {
                "contractName": name,
                "abi": abi,
                "bytecode": bytecode,
                "deployedBytecode": bytecode,
                "compiler": {"name": "solc", "version": COMPILER_VERSION},
                "networks": networks or {},
            },
            indent=2,
        )
    )
    return path


@pytest.fixture
def migrations_dir() -> Path:
    """The project's own migration scripts."""
    return Path(__file__).parent.parent / "migrations"


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """Build directory holding the three ticketing contract artifacts."""
    directory = tmp_path / "build" / "contracts"
    directory.mkdir(parents=True)
    write_artifact(directory, "UserAccount")
    write_artifact(directory, "EventManager", ADDRESS_CONSTRUCTOR)
    write_artifact(directory, "TicketNFT", ADDRESS_CONSTRUCTOR)
    return directory


@pytest.fixture
def raw_config(build_dir: Path, migrations_dir: Path) -> Dict[str, Any]:
    """Config mapping pointing at the fake node, with polling delays removed."""
    return {
        "networks": {
            "development": {
                "host": "127.0.0.1",
                "port": 8545,
                "network_id": "*",
                "deploymentPollingInterval": 0,
                "networkCheckTimeout": 0,
            },
            "sepolia": {
                "provider": {
                    "url": "https://sepolia.example.com/v3/${INFURA_PROJECT_ID}",
                    "mnemonic": "${DEPLOYER_MNEMONIC}",
                },
                "network_id": 11155111,
                "confirmations": 2,
                "timeoutBlocks": 300,
                "skipDryRun": True,
                "gas": "30000000",
                "gasPrice": 10000000000,
                "deploymentPollingInterval": 0,
                "networkCheckTimeout": 0,
            },
        },
        "compilers": {"solc": {"version": "0.8.19"}},
        "migrations_directory": str(migrations_dir),
        "contracts_build_directory": str(build_dir),
    }


@pytest.fixture
def make_config(raw_config: Dict[str, Any], tmp_path: Path) -> Callable[..., DeployConfig]:
    """Build a DeployConfig, optionally overriding keys of individual networks."""

    def _make(**overrides: Dict[str, Any]) -> DeployConfig:
        for network, extra in overrides.items():
            raw_config["networks"][network].update(extra)
        return parse_config(raw_config, base_dir=tmp_path)

    return _make


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / ".nft-tickets-deployments" / "deployments.json"


@pytest.fixture
def fake_node():
    """A FakeNode answering on both the local and the remote endpoint."""
    node = FakeNode()
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        for url in (LOCAL_URL, REMOTE_URL):
            rsps.add_callback(
                responses.POST, url, callback=node.handle, content_type="application/json"
            )
        yield node


@pytest.fixture
def sepolia_node(fake_node: FakeNode) -> FakeNode:
    fake_node.network_id = 11155111
    fake_node.chain_id = 11155111
    return fake_node
