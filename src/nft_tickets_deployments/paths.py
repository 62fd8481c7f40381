"""Path management utilities for nft-tickets-deployments."""

from pathlib import Path
from typing import Optional, Union

CONFIG_FILENAME = "deploy-config.json"


def get_default_registry_dir() -> Path:
    """
    Get default registry directory (current project).

    Returns:
        Path to ./.nft-tickets-deployments
    """
    return Path.cwd() / ".nft-tickets-deployments"


def get_registry_path(registry_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get deployment registry file path.

    Args:
        registry_root: Custom registry directory (defaults to ./.nft-tickets-deployments)

    Returns:
        Path to deployments.json inside the registry directory
    """
    if registry_root is None:
        registry_root = get_default_registry_dir()
    else:
        registry_root = Path(registry_root).absolute()

    return registry_root / "deployments.json"


def get_default_config_path() -> Path:
    return Path.cwd() / CONFIG_FILENAME


def resolve_project_path(base: Path, value: Union[Path, str]) -> Path:
    """Resolve a config-relative directory against the config file location."""
    path = Path(value)
    if path.is_absolute():
        return path
    return (base / path).absolute()
