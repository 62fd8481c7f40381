"""Compiled contract artifact handling for nft-tickets-deployments."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError

from .exceptions import ArtifactError, ArtifactNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    """A compiled contract as produced by the Solidity toolchain."""

    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed creation code
    path: Optional[Path] = None
    compiler_version: Optional[str] = None
    networks: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return item.get("inputs", [])
        return []

    def constructor_types(self) -> List[str]:
        """Canonical ABI type strings of the constructor parameters."""
        return [_canonical_type(item) for item in self.constructor_inputs()]

    def deployment_data(self, args: Sequence[Any] = ()) -> str:
        """
        Build contract-creation calldata.

        Args:
            args: Constructor arguments, already resolved to plain values

        Returns:
            Hex string: bytecode followed by ABI-encoded arguments

        Raises:
            ArtifactError: If argument count or types don't match the constructor
        """
        types = self.constructor_types()
        if len(args) != len(types):
            raise ArtifactError(
                f"{self.contract_name} constructor takes {len(types)} argument(s) "
                f"({', '.join(types) or 'none'}), got {len(args)}"
            )
        if not types:
            return self.bytecode

        try:
            encoded = encode(types, list(args))
        except (EncodingError, TypeError) as e:
            raise ArtifactError(
                f"Cannot encode {self.contract_name} constructor arguments: {e}"
            ) from e
        return self.bytecode + encoded.hex()

    def address(self, network_id: int) -> Optional[str]:
        """Address recorded in the artifact for a network id, if any."""
        entry = self.networks.get(str(network_id))
        if entry is None:
            return None
        return entry.get("address")


def _canonical_type(item: Dict[str, Any]) -> str:
    # Tuples are spelled out from their components, keeping array suffixes
    abi_type = item["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in item.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def parse_artifact(file_path: Path) -> Artifact:
    """
    Parse a compiled contract artifact JSON file.

    Args:
        file_path: Path to <ContractName>.json

    Returns:
        Artifact with abi, bytecode, compiler version and recorded networks

    Raises:
        ArtifactError: If the file is not an artifact, or the bytecode is
                       missing or still needs library linking
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ArtifactError(f"Artifact {file_path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ArtifactError(f"Artifact {file_path} must contain a JSON object")

    contract_name = data.get("contractName", file_path.stem)
    if not isinstance(data.get("abi"), list):
        raise ArtifactError(f"{contract_name} artifact has no abi")

    bytecode = data.get("bytecode")
    if not bytecode or bytecode == "0x":
        raise ArtifactError(
            f"{contract_name} has no creation bytecode (abstract contract or interface?)"
        )
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    # Unlinked library references look like __LibName____ or __$hash$__
    if "__" in bytecode:
        raise ArtifactError(f"{contract_name} bytecode has unlinked library references")

    compiler_version = None
    if "compiler" in data:
        compiler_version = data["compiler"].get("version")

    return Artifact(
        contract_name=contract_name,
        abi=data["abi"],
        bytecode=bytecode,
        path=file_path,
        compiler_version=compiler_version,
        networks=data.get("networks", {}),
    )


class ArtifactStore:
    """Loads artifacts from a build directory and records deployments into them."""

    def __init__(self, build_dir: Path, compiler_version: Optional[str] = None):
        self.build_dir = Path(build_dir)
        self.compiler_version = compiler_version
        self._loaded: Dict[str, Artifact] = {}

    def require(self, name: str) -> Artifact:
        """
        Load an artifact by contract name.

        Raises:
            ArtifactNotFoundError: If build_dir/<name>.json does not exist
        """
        if name in self._loaded:
            return self._loaded[name]

        file_path = self.build_dir / f"{name}.json"
        if not file_path.exists():
            raise ArtifactNotFoundError(
                f"Artifact for {name} not found at {file_path}. Compile the contracts first."
            )

        artifact = parse_artifact(file_path)

        # "0.8.19+commit.7dd6d404.Emscripten.clang" matches "0.8.19"
        if (
            self.compiler_version
            and artifact.compiler_version
            and not artifact.compiler_version.startswith(self.compiler_version)
        ):
            logger.warning(
                "%s was compiled with solc %s, configuration expects %s",
                name,
                artifact.compiler_version,
                self.compiler_version,
            )

        self._loaded[name] = artifact
        return artifact

    def record_deployment(
        self,
        artifact: Artifact,
        network_id: int,
        address: str,
        transaction_hash: Optional[str],
    ) -> None:
        """Write a deployment into the artifact's networks table on disk."""
        artifact.networks[str(network_id)] = {
            "address": address,
            "transactionHash": transaction_hash,
        }
        if artifact.path is None:
            return

        with open(artifact.path) as f:
            data = json.load(f)
        data.setdefault("networks", {})
        data["networks"][str(network_id)] = {
            "address": address,
            "transactionHash": transaction_hash,
        }
        data["updatedAt"] = datetime.now(timezone.utc).isoformat()
        with open(artifact.path, "w") as f:
            json.dump(data, f, indent=2)
