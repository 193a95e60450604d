"""Broadcast contract deployments with web3.py.

Sign locally with a private key and send the raw transaction,
without waiting for the receipt. Confirmations are tracked by
:py:func:`eth_deployer.confirmation.wait_for_confirmations`.
"""

import logging
from pathlib import Path

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from eth_deployer.abi import find_artifact, read_artifact
from eth_deployer.exceptions import SubmissionFailed
from eth_deployer.orchestrator import DeploymentRequest, TransactionHandle

logger = logging.getLogger(__name__)


class Web3DeploymentSubmitter:
    """Deploy compiled contracts from a Foundry or Hardhat project.

    :param project_folder:
        Project root with ``out`` or ``artifacts`` build folder

    :param gas:
        Gas limit. If not set, the node estimates it.
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        deployer: LocalAccount,
        project_folder: Path,
        gas: int | None = None,
    ):
        self.web3 = web3
        self.deployer = deployer
        self.project_folder = project_folder
        self.gas = gas

    async def submit(self, request: DeploymentRequest) -> TransactionHandle:
        artifact = read_artifact(find_artifact(self.project_folder, request.get_contract_file(), request.contract_name))
        Contract = self.web3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])

        try:
            nonce = await self.web3.eth.get_transaction_count(self.deployer.address)
            tx_params = {
                "from": self.deployer.address,
                "nonce": nonce,
                "chainId": await self.web3.eth.chain_id,
            }
            if self.gas:
                tx_params["gas"] = self.gas

            tx_data = await Contract.constructor(*request.constructor_args).build_transaction(tx_params)
            signed_tx = self.deployer.sign_transaction(tx_data)
            tx_hash = await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except (ValueError, Web3Exception) as e:
            # Node rejected the transaction, e.g. insufficient funds for gas
            raise SubmissionFailed(f"Could not broadcast {request.contract_name} deployment from {self.deployer.address}: {e}") from e

        logger.info("Broadcasted %s deployment from %s, nonce %d", request.contract_name, self.deployer.address, nonce)
        return TransactionHandle(tx_hash=Web3.to_hex(tx_hash))
