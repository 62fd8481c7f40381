"""Provider and network selection for nft-tickets-deployments."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple

from .config import expand_env
from .constants import KNOWN_CHAINS
from .exceptions import GasLimitExceededError, NetworkMismatchError, NetworkUnavailableError
from .rpc import JsonRpcClient
from .types import NetworkProfile
from .wallet import Signer, signer_for

logger = logging.getLogger(__name__)

# Seconds between connectivity probes
_NETWORK_CHECK_RETRY = 1.0


@dataclass
class Connection:
    """A checked connection to the network a profile selects."""

    profile: NetworkProfile
    client: JsonRpcClient
    signer: Signer
    network_id: int
    chain_id: int
    block_gas_limit: int

    @property
    def block_explorer_url(self) -> Optional[str]:
        chain = KNOWN_CHAINS.get(self.chain_id)
        return chain["block_explorer_url"] if chain else None

    def address_url(self, address: str) -> Optional[str]:
        if self.block_explorer_url:
            return f"{self.block_explorer_url}/address/{address}"
        return None

    def close(self) -> None:
        self.client.close()


def wait_for_network(
    client: JsonRpcClient,
    profile: NetworkProfile,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """
    Probe the node until it answers or networkCheckTimeout elapses.

    Returns:
        Network id reported by the node

    Raises:
        NetworkUnavailableError: If the node never answered in time
    """
    deadline = clock() + profile.network_check_timeout / 1000
    while True:
        try:
            return client.net_version()
        except NetworkUnavailableError as e:
            remaining = deadline - clock()
            if remaining <= 0:
                raise NetworkUnavailableError(
                    f"Could not connect to network '{profile.name}' at {profile.endpoint} "
                    f"within {profile.network_check_timeout} ms"
                ) from e
            logger.debug("Network '%s' not reachable yet: %s", profile.name, e)
            sleep(min(_NETWORK_CHECK_RETRY, remaining))


def _check_network(
    client: JsonRpcClient,
    profile: NetworkProfile,
    sleep: Callable[[float], None],
    environ: Optional[Mapping[str, str]],
) -> Tuple[int, int, int, Signer]:
    network_id = wait_for_network(client, profile, sleep)
    if not profile.accepts_any_network and network_id != profile.network_id:
        raise NetworkMismatchError(
            f"Network '{profile.name}' expects network id {profile.network_id}, "
            f"node reports {network_id}"
        )

    chain_id = client.chain_id()
    block_gas_limit = client.block_gas_limit()
    if profile.gas > block_gas_limit:
        raise GasLimitExceededError(
            f"Configured gas {profile.gas} exceeds block gas limit {block_gas_limit} "
            f"on network '{profile.name}'"
        )

    mnemonic = ""
    if not profile.is_local:
        mnemonic = expand_env(profile.mnemonic or "", environ)
    signer = signer_for(profile, client, mnemonic, chain_id)
    return network_id, chain_id, block_gas_limit, signer


def connect(
    profile: NetworkProfile,
    sleep: Callable[[float], None] = time.sleep,
    environ: Optional[Mapping[str, str]] = None,
) -> Connection:
    """
    Open and verify a connection for a network profile.

    Args:
        profile: Selected network profile
        sleep: Sleep function used between connectivity probes
        environ: Environment for ${VAR} expansion (defaults to os.environ)

    Returns:
        Connection with client, signer and the node's network parameters

    Raises:
        ConfigError: If a secret placeholder cannot be expanded
        NetworkUnavailableError: If the node cannot be reached
        NetworkMismatchError: If the node is on a different network
        GasLimitExceededError: If the profile's gas exceeds the block gas limit
    """
    client = JsonRpcClient(expand_env(profile.endpoint, environ))
    logger.info("Connecting to network '%s' at %s", profile.name, profile.endpoint)

    try:
        network_id, chain_id, block_gas_limit, signer = _check_network(
            client, profile, sleep, environ
        )
    except Exception:
        client.close()
        raise

    logger.info(
        "Connected to network id %s (chain id %s) as %s", network_id, chain_id, signer.address
    )
    return Connection(
        profile=profile,
        client=client,
        signer=signer,
        network_id=network_id,
        chain_id=chain_id,
        block_gas_limit=block_gas_limit,
    )
