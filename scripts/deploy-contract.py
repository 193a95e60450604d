"""Deploy a contract, wait for confirmations and verify it on the block explorer.

Example how to deploy a contract with no constructor arguments on OP Sepolia:

.. code-block:: shell

    export NETWORK=opSepolia
    export OP_SEPOLIA_RPC=...
    export DEPLOY_PRIVATE_KEY=...
    export ETHERSCAN_API_KEY=...
    export CONTRACT_NAME=PaymentRegistry
    export PROJECT_FOLDER=~/code/my-contracts

    python scripts/deploy-contract.py

Constructor arguments are given as a JSON list, e.g. an array of structs:

.. code-block:: shell

    export CONTRACT_NAME=Escrow
    export CONSTRUCTOR_ARGS='[[["0x...0aa36a7c", "0x...43aa1", "0x07ae...36d5"]]]'

Tune waits with ``CONFIRMATIONS``, ``CONFIRMATION_POLL_INTERVAL_MS``,
``VERIFY_MAX_ATTEMPTS`` and ``VERIFY_RETRY_BASE_DELAY_MS``.
"""

import sys

from eth_deployer.main import main

if __name__ == "__main__":
    sys.exit(main())
