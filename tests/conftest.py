"""Fake collaborators shared by the deployment tests."""

import datetime

import pytest

from eth_deployer.confirmation import ConfirmationPolicy
from eth_deployer.orchestrator import DeploymentRequest, TransactionHandle
from eth_deployer.verification import RetryPolicy


class RecordingSleep:
    """Replace asyncio.sleep, remember the requested delays in seconds."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


class ScriptedChainClient:
    """Chain client answering from scripted responses.

    Each response is a value to return or an exception to raise.
    The last response repeats forever.
    """

    def __init__(self, receipts: list, heads: list):
        self.receipts = list(receipts)
        self.heads = list(heads)
        self.receipt_calls = 0
        self.head_calls = 0

    @staticmethod
    def _next(responses: list):
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def get_transaction_receipt(self, tx_hash: str):
        self.receipt_calls += 1
        return self._next(self.receipts)

    async def get_head_block_number(self) -> int:
        self.head_calls += 1
        return self._next(self.heads)


class ScriptedVerificationService:
    """Verification service failing with scripted error messages.

    ``None`` in the script means success.
    """

    def __init__(self, errors: list):
        self.errors = list(errors)
        self.calls = []

    async def verify(self, address: str, constructor_args):
        self.calls.append((address, constructor_args))
        error = self.errors.pop(0) if len(self.errors) > 1 else self.errors[0]
        if error is not None:
            raise RuntimeError(error)


class StaticSubmitter:
    """Pretend to broadcast a deployment."""

    def __init__(self, handle: TransactionHandle = None, error: Exception = None):
        self.handle = handle or TransactionHandle(tx_hash="0x" + "ab" * 32)
        self.error = error
        self.requests = []

    async def submit(self, request: DeploymentRequest) -> TransactionHandle:
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.handle


class RecordingReporter:
    """Collect reporter events as tuples."""

    def __init__(self):
        self.events = []

    def on_submitted(self, contract_name, tx_hash):
        self.events.append(("submitted", contract_name, tx_hash))

    def on_confirmed(self, contract_name, address, block_number, confirmations):
        self.events.append(("confirmed", address, block_number))

    def on_verification_retry(self, address, attempt, max_attempts, delay):
        self.events.append(("retry", attempt, delay))

    def on_verified(self, address, outcome):
        self.events.append(("verified", outcome.status))

    def on_verification_failed(self, address, outcome):
        self.events.append(("verification_failed", outcome.status))

    def on_verification_skipped(self, address, reason):
        self.events.append(("skipped", address))


#: Deployed contract address used across tests
CONTRACT_ADDRESS = "0x9eB3feB35884B284Ea1e38Dd175417cE90B43AA1"


def make_receipt(block_number: int, status: int = 1) -> dict:
    return {"blockNumber": block_number, "status": status, "contractAddress": CONTRACT_ADDRESS}


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture()
def confirmation_policy() -> ConfirmationPolicy:
    return ConfirmationPolicy(target_confirmations=5, poll_interval=datetime.timedelta(seconds=15))


@pytest.fixture()
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=datetime.timedelta(seconds=10))
