"""Compiled contract artifacts and constructor argument helpers.

Reads both Foundry (``out/<File>.sol/<Name>.json``) and Hardhat
(``artifacts/src/<File>.sol/<Name>.json``) artifact layouts.
"""

import json
import logging
from pathlib import Path

from eth_typing import HexStr
from hexbytes import HexBytes
from web3 import Web3

from eth_deployer.exceptions import ArtifactNotFound

logger = logging.getLogger(__name__)


def to_padded_bytes32(value: int | str) -> HexStr:
    """Left-pad an integer or a hex string to a bytes32 hex value.

    Used to build ``bytes32`` constructor arguments like chain ids and addresses.

    Example:

    .. code-block:: python

        assert to_padded_bytes32(10) == "0x" + "0" * 63 + "a"
    """
    if type(value) is int:
        assert value >= 0, f"Cannot pad negative number {value}"
        hex_str = f"{value:x}"
    else:
        assert isinstance(value, str), f"Expected int or hex string, got {type(value)}"
        hex_str = value.removeprefix("0x")

    assert len(hex_str) <= 64, f"Value does not fit in 32 bytes: {value}"
    return HexStr("0x" + hex_str.rjust(64, "0"))


def find_artifact(project_folder: Path, contract_file: str, contract_name: str) -> Path:
    """Find the compiled artifact of a contract in a Foundry or Hardhat project.

    :raise ArtifactNotFound:
        Neither layout has the artifact
    """
    candidates = [
        project_folder / "out" / contract_file / f"{contract_name}.json",
        project_folder / "artifacts" / "src" / contract_file / f"{contract_name}.json",
    ]
    for path in candidates:
        if path.exists():
            return path
    raise ArtifactNotFound(f"No compiled artifact for {contract_name} in {project_folder}, tried: {', '.join(str(c) for c in candidates)}")


def read_artifact(path: Path) -> dict:
    """Read ABI and creation code from a build artifact.

    :return:
        Dict with ``abi`` and ``bytecode`` keys, bytecode as a hex string
    """
    if not path.exists():
        raise ArtifactNotFound(f"Artifact does not exist: {path}")

    with open(path, "rt") as inp:
        data = json.load(inp)

    bytecode = data.get("bytecode")
    # Foundry nests the creation code
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")

    assert bytecode, f"No creation bytecode in artifact {path}"
    return {"abi": data["abi"], "bytecode": bytecode}


def get_creation_code_hash(artifact: dict) -> HexBytes:
    """Get keccak256 of the contract creation code.

    This is what CREATE2 address derivation commits to.
    """
    return HexBytes(Web3.keccak(hexstr=artifact["bytecode"]))
