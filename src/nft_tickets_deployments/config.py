"""Network profile configuration for nft-tickets-deployments."""

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_GAS,
    DEFAULT_GAS_PRICE,
    DEFAULT_NETWORK_CHECK_TIMEOUT,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_TIMEOUT_BLOCKS,
    SOLC_VERSION,
    WILDCARD_NETWORK_ID,
)
from .exceptions import ConfigError, InvalidNetworkProfileError, NetworkNotFoundError
from .paths import get_default_config_path, resolve_project_path
from .rpc import to_int
from .types import NetworkProfile

logger = logging.getLogger(__name__)

# Non-negative integer thresholds (Truffle key names)
_TUNING_KEYS = (
    "confirmations",
    "timeoutBlocks",
    "deploymentPollingInterval",
    "networkCheckTimeout",
)

_KNOWN_KEYS = {
    "network_id",
    "host",
    "port",
    "provider",
    "skipDryRun",
    "gas",
    "gasPrice",
    *_TUNING_KEYS,
}


@dataclass
class DeployConfig:
    """Loaded deployment configuration."""

    networks: Dict[str, NetworkProfile]
    compiler_version: str = SOLC_VERSION
    migrations_directory: Path = field(default_factory=lambda: Path.cwd() / "migrations")
    contracts_build_directory: Path = field(
        default_factory=lambda: Path.cwd() / "build" / "contracts"
    )
    path: Optional[Path] = None  # None when built-in defaults are in use

    def network(self, name: str) -> NetworkProfile:
        """
        Select a network profile by name.

        Raises:
            NetworkNotFoundError: If no profile has that name
        """
        if name not in self.networks:
            available = ", ".join(sorted(self.networks)) or "none"
            raise NetworkNotFoundError(
                f"Network '{name}' not configured (available: {available})"
            )
        return self.networks[name]

    def network_names(self) -> List[str]:
        return sorted(self.networks)


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid quantity
    return isinstance(value, int) and not isinstance(value, bool)


def _is_numeric(value: Any) -> bool:
    """True for ints and decimal or 0x-prefixed hex strings."""
    if _is_int(value):
        return True
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            try:
                int(text, 16)
                return True
            except ValueError:
                return False
        # isdigit() also accepts superscripts that int() rejects
        return text.isdecimal()
    return False


def validate_network_profile(name: str, data: Any) -> List[str]:
    """
    Check the shape of a raw network profile.

    Args:
        name: Network profile name
        data: Raw profile mapping as read from the config file

    Returns:
        List of human-readable problems, empty if the profile is valid
    """
    if not isinstance(data, Mapping):
        return [f"profile must be an object, got {type(data).__name__}"]

    problems: List[str] = []

    # network_id: number, numeric string, or wildcard
    if "network_id" not in data:
        problems.append("network_id is required")
    else:
        network_id = data["network_id"]
        if network_id != WILDCARD_NETWORK_ID and not _is_numeric(network_id):
            problems.append(f"network_id must be a number or '*', got {network_id!r}")

    # Connection: host/port or provider, not both
    has_host = "host" in data or "port" in data
    has_provider = "provider" in data
    if has_host and has_provider:
        problems.append("host/port and provider are mutually exclusive")
    elif not has_host and not has_provider:
        problems.append("either host/port or provider is required")

    if has_host:
        if not isinstance(data.get("host"), str) or not data.get("host"):
            problems.append("host must be a non-empty string")
        port = data.get("port")
        if not _is_int(port) or not 1 <= port <= 65535:
            problems.append(f"port must be an integer in 1..65535, got {port!r}")

    if has_provider:
        provider = data["provider"]
        if not isinstance(provider, Mapping):
            problems.append("provider must be an object with url and mnemonic")
        else:
            if not isinstance(provider.get("url"), str) or not provider.get("url"):
                problems.append("provider.url must be a non-empty string")
            if not isinstance(provider.get("mnemonic"), str) or not provider.get("mnemonic"):
                problems.append("provider.mnemonic must be a non-empty string")
            index = provider.get("addressIndex", 0)
            if not _is_int(index) or index < 0:
                problems.append(f"provider.addressIndex must be >= 0, got {index!r}")

    # Gas parameters
    if "gas" in data:
        if not _is_numeric(data["gas"]) or to_int(data["gas"]) <= 0:
            problems.append(f"gas must be a positive number, got {data['gas']!r}")
    if "gasPrice" in data:
        if not _is_numeric(data["gasPrice"]) or to_int(data["gasPrice"]) < 0:
            problems.append(f"gasPrice must be a non-negative number, got {data['gasPrice']!r}")

    # Polling and confirmation thresholds
    for key in _TUNING_KEYS:
        if key in data:
            value = data[key]
            if not _is_int(value) or value < 0:
                problems.append(f"{key} must be a non-negative integer, got {value!r}")

    if "skipDryRun" in data and not isinstance(data["skipDryRun"], bool):
        problems.append(f"skipDryRun must be a boolean, got {data['skipDryRun']!r}")

    for key in sorted(set(data) - _KNOWN_KEYS):
        logger.warning("Ignoring unknown key '%s' in network '%s'", key, name)

    return problems


def parse_network_profile(name: str, data: Any) -> NetworkProfile:
    """
    Build a NetworkProfile from its raw config mapping.

    Raises:
        InvalidNetworkProfileError: If the profile fails validation
    """
    problems = validate_network_profile(name, data)
    if problems:
        raise InvalidNetworkProfileError(name, problems)

    network_id = data["network_id"]
    if network_id != WILDCARD_NETWORK_ID:
        network_id = to_int(network_id)

    kwargs: Dict[str, Any] = {
        "name": name,
        "network_id": network_id,
        "skip_dry_run": data.get("skipDryRun", False),
        "gas": to_int(data.get("gas", DEFAULT_GAS)),
        "gas_price": to_int(data.get("gasPrice", DEFAULT_GAS_PRICE)),
        "confirmations": data.get("confirmations", DEFAULT_CONFIRMATIONS),
        "timeout_blocks": data.get("timeoutBlocks", DEFAULT_TIMEOUT_BLOCKS),
        "deployment_polling_interval": data.get(
            "deploymentPollingInterval", DEFAULT_POLLING_INTERVAL
        ),
        "network_check_timeout": data.get(
            "networkCheckTimeout", DEFAULT_NETWORK_CHECK_TIMEOUT
        ),
    }

    if "provider" in data:
        kwargs["url"] = data["provider"]["url"]
        kwargs["mnemonic"] = data["provider"]["mnemonic"]
        kwargs["address_index"] = data["provider"].get("addressIndex", 0)
    else:
        kwargs["host"] = data["host"]
        kwargs["port"] = data["port"]

    return NetworkProfile(**kwargs)


def validate_config(raw: Mapping[str, Any]) -> Dict[str, List[str]]:
    """
    Validate every network profile of a raw config mapping.

    Returns:
        Mapping of network name -> problems, for invalid profiles only
    """
    networks_raw = raw.get("networks")
    if not isinstance(networks_raw, Mapping) or not networks_raw:
        return {"*": ["configuration must declare at least one network"]}

    report = {}
    for name, data in networks_raw.items():
        problems = validate_network_profile(name, data)
        if problems:
            report[name] = problems
    return report


def _resolve_config_path(path: Optional[Union[Path, str]]) -> Optional[Path]:
    # None means no file: the built-in defaults apply
    if path is None:
        path = get_default_config_path()
        if not path.exists():
            return None
    return Path(path).absolute()


def read_raw_config(path: Optional[Union[Path, str]] = None) -> Dict[str, Any]:
    """
    Read the raw config mapping without validating it.

    Falls back to the built-in defaults when no path is given and
    ./deploy-config.json does not exist.

    Raises:
        ConfigError: If the file is missing or not a JSON object
    """
    config_path = _resolve_config_path(path)
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path) as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return raw


def parse_config(raw: Mapping[str, Any], base_dir: Optional[Path] = None) -> DeployConfig:
    """
    Build a DeployConfig from a raw config mapping.

    Args:
        raw: Parsed config file contents
        base_dir: Directory relative paths are resolved against (defaults to cwd)

    Raises:
        ConfigError: If the mapping is malformed
        InvalidNetworkProfileError: If any network profile is invalid
    """
    if base_dir is None:
        base_dir = Path.cwd()

    networks_raw = raw.get("networks")
    if not isinstance(networks_raw, Mapping) or not networks_raw:
        raise ConfigError("Configuration must declare at least one network")

    networks = {
        name: parse_network_profile(name, data) for name, data in networks_raw.items()
    }

    try:
        compiler_version = raw.get("compilers", {}).get("solc", {}).get("version", SOLC_VERSION)
    except AttributeError as e:
        raise ConfigError("compilers.solc must be an object") from e

    return DeployConfig(
        networks=networks,
        compiler_version=compiler_version,
        migrations_directory=resolve_project_path(
            base_dir, raw.get("migrations_directory", "migrations")
        ),
        contracts_build_directory=resolve_project_path(
            base_dir, raw.get("contracts_build_directory", "build/contracts")
        ),
    )


def load_config(path: Optional[Union[Path, str]] = None) -> DeployConfig:
    """
    Load deployment configuration.

    Args:
        path: Path to a JSON config file. If None, ./deploy-config.json is
              used when present, otherwise the built-in defaults.

    Returns:
        DeployConfig object

    Raises:
        ConfigError: If an explicit path is missing or the file is not valid JSON
        InvalidNetworkProfileError: If any network profile is invalid
    """
    config_path = _resolve_config_path(path)
    raw = read_raw_config(config_path)
    if config_path is None:
        logger.debug("No deploy config file found, using built-in networks")
        return parse_config(raw)

    config = parse_config(raw, base_dir=config_path.parent)
    config.path = config_path
    return config


def expand_env(value: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Substitute ${VAR} placeholders from the environment.

    Raises:
        ConfigError: If a referenced variable is not set
    """
    if environ is None:
        environ = os.environ
    try:
        return Template(value).substitute(environ)
    except KeyError as e:
        raise ConfigError(f"Environment variable {e.args[0]} is not set") from e
    except ValueError as e:
        raise ConfigError(f"Malformed placeholder in configuration value: {e}") from e
