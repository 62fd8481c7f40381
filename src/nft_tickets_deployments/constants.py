"""Configuration constants for nft-tickets-deployments."""

# Compiler pragma the ticketing contracts are built with
SOLC_VERSION = "0.8.19"

# Network id placeholder accepted by local development nodes
WILDCARD_NETWORK_ID = "*"

# Environment variables holding deployment secrets
INFURA_PROJECT_ID_ENV = "INFURA_PROJECT_ID"
MNEMONIC_ENV = "DEPLOYER_MNEMONIC"

# BIP-44 derivation path for Ethereum accounts
HD_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"

# Profile defaults (times in milliseconds)
DEFAULT_GAS = 6721975
DEFAULT_GAS_PRICE = 20_000_000_000  # 20 gwei
DEFAULT_CONFIRMATIONS = 0
DEFAULT_TIMEOUT_BLOCKS = 50
DEFAULT_POLLING_INTERVAL = 4000
DEFAULT_NETWORK_CHECK_TIMEOUT = 5000

# Seconds to wait for a single HTTP round trip
RPC_REQUEST_TIMEOUT = 30

DEFAULT_CONFIG = {
    "networks": {
        "development": {
            "host": "127.0.0.1",
            "port": 8545,
            "network_id": "*",
        },
        "sepolia": {
            "provider": {
                "url": "https://sepolia.infura.io/v3/${" + INFURA_PROJECT_ID_ENV + "}",
                "mnemonic": "${" + MNEMONIC_ENV + "}",
            },
            "network_id": 11155111,
            "confirmations": 2,
            "timeoutBlocks": 300,
            "skipDryRun": True,
            "gas": "30000000",
            "gasPrice": 10000000000,  # 10 gwei
            "deploymentPollingInterval": 30000,
            "networkCheckTimeout": 100000,
        },
    },
    "compilers": {"solc": {"version": SOLC_VERSION}},
}

# Block explorers for chains the ticketing contracts are deployed to
KNOWN_CHAINS = {
    1: {
        "chain_name": "Ethereum Mainnet",
        "block_explorer_url": "https://etherscan.io",
    },
    5: {
        "chain_name": "Goerli",
        "block_explorer_url": "https://goerli.etherscan.io",
    },
    11155111: {
        "chain_name": "Sepolia",
        "block_explorer_url": "https://sepolia.etherscan.io",
    },
}
