"""Deploy, confirm and verify a single contract.

:py:class:`DeploymentOrchestrator` drives one :py:class:`DeploymentRequest` through

1. submission of the deployment transaction
2. waiting for block confirmations, see :py:func:`eth_deployer.confirmation.wait_for_confirmations`
3. block explorer verification, see :py:func:`eth_deployer.verification.verify_with_retries`

A failed verification does not fail the deployment: the contract is already on-chain
and there is nothing to roll back.

Example:

.. code-block:: python

    orchestrator = DeploymentOrchestrator(
        chain_client=Web3ChainClient.from_json_rpc_url(json_rpc_url),
        submitter=Web3DeploymentSubmitter(web3, deployer, artifacts),
        verification_service=ForgeVerificationService(project_folder, etherscan_api_key, network),
        confirmation_policy=config.confirmation_policy,
        retry_policy=config.retry_policy,
    )
    result = await orchestrator.deploy(DeploymentRequest("PaymentRegistry", network="opSepolia"))
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from eth_deployer.chain import ChainClient
from eth_deployer.confirmation import ConfirmationPolicy, Sleeper, wait_for_confirmations
from eth_deployer.exceptions import SubmissionFailed
from eth_deployer.reporting import DeploymentReporter, LoggingReporter
from eth_deployer.verification import RetryPolicy, VerificationOutcome, VerificationService, verify_with_retries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentRequest:
    """What to deploy and where."""

    #: Contract name in the source file, e.g. ``Escrow``
    contract_name: str

    #: Constructor arguments, passed as is to the submitter and the verifier
    constructor_args: tuple = field(default_factory=tuple)

    #: Target network name, e.g. ``opSepolia``
    network: Optional[str] = None

    #: Source file relative to the project ``src`` folder, e.g. ``Escrow.sol``.
    #:
    #: Defaults to ``<contract_name>.sol``.
    contract_file: Optional[str] = None

    def get_contract_file(self) -> str:
        return self.contract_file or f"{self.contract_name}.sol"


@dataclass(frozen=True)
class TransactionHandle:
    """A broadcasted deployment transaction."""

    tx_hash: str

    #: Some submitters know the address before the receipt
    contract_address: Optional[str] = None


class DeploymentSubmitter(Protocol):
    """Broadcast a contract deployment transaction."""

    async def submit(self, request: DeploymentRequest) -> TransactionHandle:
        """Broadcast the deployment and return without waiting it to be mined.

        :raise SubmissionFailed:
            If the transaction could not be broadcasted
        """


@dataclass
class DeploymentResult:
    """Everything we know about a finished deployment."""

    request: DeploymentRequest

    handle: TransactionHandle

    #: Checksummed contract address
    address: str

    #: Receipt after enough confirmations
    receipt: dict

    #: ``None`` if verification was skipped
    verification: Optional[VerificationOutcome] = None

    def is_verified(self) -> bool:
        return self.verification is not None and self.verification.is_success()


class DeploymentOrchestrator:
    """Sequence submission, confirmation and verification for any contract.

    :param verification_service:
        Set to ``None`` to skip the verification, e.g. on a local Anvil chain.

    :param sleep:
        Coroutine used for all waits. Tests replace this with a recorder.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        submitter: DeploymentSubmitter,
        verification_service: Optional[VerificationService],
        confirmation_policy: ConfirmationPolicy = None,
        retry_policy: RetryPolicy = None,
        reporter: DeploymentReporter = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.chain_client = chain_client
        self.submitter = submitter
        self.verification_service = verification_service
        self.confirmation_policy = confirmation_policy or ConfirmationPolicy()
        self.retry_policy = retry_policy or RetryPolicy()
        self.reporter = reporter or LoggingReporter()
        self.sleep = sleep

    async def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        """Deploy, confirm and verify.

        :raise SubmissionFailed:
            Could not broadcast, or the deployment transaction reverted

        :raise ConfirmationTimedOut:
            Only if the confirmation policy has ``max_polls`` set

        :return:
            Deployment result. Check :py:attr:`DeploymentResult.verification` for the verification status.
        """

        logger.info("Deploying %s contract with %d constructor arguments", request.contract_name, len(request.constructor_args))
        handle = await self.submitter.submit(request)
        self.reporter.on_submitted(request.contract_name, handle.tx_hash)

        receipt = await wait_for_confirmations(
            self.chain_client,
            handle.tx_hash,
            self.confirmation_policy,
            sleep=self.sleep,
        )

        if receipt.get("status", 1) != 1:
            raise SubmissionFailed(f"Contract {request.contract_name} deployment reverted, tx hash is {handle.tx_hash}")

        address = handle.contract_address or receipt.get("contractAddress")
        if not address:
            raise SubmissionFailed(f"Receipt for {handle.tx_hash} does not carry a contract address: {receipt}")

        self.reporter.on_confirmed(request.contract_name, address, receipt["blockNumber"], self.confirmation_policy.target_confirmations)

        result = DeploymentResult(request=request, handle=handle, address=address, receipt=receipt)

        if self.verification_service is None:
            self.reporter.on_verification_skipped(address, "no verification service configured")
            return result

        result.verification = await verify_with_retries(
            self.verification_service,
            address,
            request.constructor_args,
            self.retry_policy,
            sleep=self.sleep,
            on_retry=lambda attempt, max_attempts, delay: self.reporter.on_verification_retry(address, attempt, max_attempts, delay),
        )

        if result.verification.is_success():
            self.reporter.on_verified(address, result.verification)
        else:
            self.reporter.on_verification_failed(address, result.verification)

        return result
