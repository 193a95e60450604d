"""Print the creation code and its keccak256 hash for a compiled contract.

CREATE2 deployers and factories commit to this hash.

.. code-block:: shell

    export PROJECT_FOLDER=~/code/my-contracts
    export CONTRACT_NAME=HookExecutor
    python scripts/get-creation-code-hash.py
"""

import logging
import os
from pathlib import Path

from web3 import Web3

from eth_deployer.abi import find_artifact, get_creation_code_hash, read_artifact
from eth_deployer.utils import setup_console_logging

logger = logging.getLogger(__name__)


def main():
    setup_console_logging()

    contract_name = os.environ["CONTRACT_NAME"]
    contract_file = os.environ.get("CONTRACT_FILE") or f"{contract_name}.sol"
    project_folder = Path(os.environ.get("PROJECT_FOLDER", ".")).absolute()

    artifact = read_artifact(find_artifact(project_folder, contract_file, contract_name))
    logger.info("%s creation code: %s", contract_name, artifact["bytecode"])
    logger.info("%s creation code hash: %s", contract_name, Web3.to_hex(get_creation_code_hash(artifact)))


if __name__ == "__main__":
    main()
