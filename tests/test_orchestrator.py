"""Deploy, confirm and verify sequencing."""

import datetime

import pytest

from conftest import (
    CONTRACT_ADDRESS,
    RecordingReporter,
    ScriptedChainClient,
    ScriptedVerificationService,
    StaticSubmitter,
    make_receipt,
)
from eth_deployer.exceptions import SubmissionFailed
from eth_deployer.orchestrator import DeploymentOrchestrator, DeploymentRequest, TransactionHandle
from eth_deployer.reporting import LoggingReporter
from eth_deployer.verification import RetryPolicy, VerificationStatus


@pytest.fixture()
def request_() -> DeploymentRequest:
    return DeploymentRequest("Escrow", constructor_args=(["0x01", "0x02"],), network="opSepolia")


def make_orchestrator(chain_client, submitter, service, sleep, reporter, confirmation_policy, retry_policy):
    return DeploymentOrchestrator(
        chain_client=chain_client,
        submitter=submitter,
        verification_service=service,
        confirmation_policy=confirmation_policy,
        retry_policy=retry_policy,
        reporter=reporter,
        sleep=sleep,
    )


@pytest.mark.asyncio
async def test_deploy_confirm_verify(request_, sleep, reporter: RecordingReporter, confirmation_policy, retry_policy):
    """Receipt at 100, head at 104, verified after two rate limits."""
    submitter = StaticSubmitter()
    service = ScriptedVerificationService(["429 Too Many Requests", "429 Too Many Requests", None])
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        submitter,
        service,
        sleep,
        reporter,
        confirmation_policy,
        retry_policy,
    )

    result = await orchestrator.deploy(request_)

    assert result.address == CONTRACT_ADDRESS
    assert result.verification.status == VerificationStatus.verified
    assert result.is_verified()
    assert submitter.requests == [request_]
    assert service.calls[0] == (CONTRACT_ADDRESS, (["0x01", "0x02"],))
    assert sleep.delays == [10.0, 20.0]
    assert [e[0] for e in reporter.events] == ["submitted", "confirmed", "retry", "retry", "verified"]


@pytest.mark.asyncio
async def test_already_verified_is_success(request_, sleep, reporter, confirmation_policy, retry_policy):
    service = ScriptedVerificationService(["Already Verified"])
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        StaticSubmitter(),
        service,
        sleep,
        reporter,
        confirmation_policy,
        retry_policy,
    )

    result = await orchestrator.deploy(request_)

    assert result.verification.status == VerificationStatus.already_verified
    assert result.is_verified()
    assert sleep.delays == []
    assert reporter.events[-1] == ("verified", VerificationStatus.already_verified)


@pytest.mark.asyncio
async def test_verification_failure_does_not_fail_deployment(request_, sleep, reporter, confirmation_policy, retry_policy):
    service = ScriptedVerificationService(["Bytecode does not match"])
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        StaticSubmitter(),
        service,
        sleep,
        reporter,
        confirmation_policy,
        retry_policy,
    )

    result = await orchestrator.deploy(request_)

    assert result.address == CONTRACT_ADDRESS
    assert result.verification.status == VerificationStatus.failed
    assert not result.is_verified()
    assert reporter.events[-1] == ("verification_failed", VerificationStatus.failed)


@pytest.mark.asyncio
async def test_confirmation_precedes_verification(request_, sleep, reporter, confirmation_policy):
    """Verification starts only after the confirmation polls."""
    service = ScriptedVerificationService([None])
    client = ScriptedChainClient([None, make_receipt(100)], [102, 103, 104])
    orchestrator = make_orchestrator(client, StaticSubmitter(), service, sleep, reporter, confirmation_policy, RetryPolicy())

    await orchestrator.deploy(request_)

    assert client.receipt_calls == 2
    assert client.head_calls == 3
    assert len(service.calls) == 1
    assert sleep.delays == [15.0, 15.0, 15.0]


@pytest.mark.asyncio
async def test_submission_error_propagates(request_, sleep, reporter, confirmation_policy, retry_policy):
    client = ScriptedChainClient([make_receipt(100)], [104])
    service = ScriptedVerificationService([None])
    submitter = StaticSubmitter(error=SubmissionFailed("insufficient funds"))
    orchestrator = make_orchestrator(client, submitter, service, sleep, reporter, confirmation_policy, retry_policy)

    with pytest.raises(SubmissionFailed):
        await orchestrator.deploy(request_)

    assert client.receipt_calls == 0
    assert service.calls == []
    assert reporter.events == []


@pytest.mark.asyncio
async def test_reverted_deployment(request_, sleep, reporter, confirmation_policy, retry_policy):
    client = ScriptedChainClient([make_receipt(100, status=0)], [104])
    service = ScriptedVerificationService([None])
    orchestrator = make_orchestrator(client, StaticSubmitter(), service, sleep, reporter, confirmation_policy, retry_policy)

    with pytest.raises(SubmissionFailed):
        await orchestrator.deploy(request_)

    assert service.calls == []


@pytest.mark.asyncio
async def test_skip_verification(request_, sleep, reporter, confirmation_policy, retry_policy):
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        StaticSubmitter(),
        None,
        sleep,
        reporter,
        confirmation_policy,
        retry_policy,
    )

    result = await orchestrator.deploy(request_)

    assert result.verification is None
    assert not result.is_verified()
    assert reporter.events[-1] == ("skipped", CONTRACT_ADDRESS)


@pytest.mark.asyncio
async def test_submitter_known_address_wins(request_, sleep, reporter, confirmation_policy, retry_policy):
    """Forge tells the address before the receipt."""
    forge_address = "0x68F2b1C86B58A98D1F5c494393FF9e5A588c2ed1"
    submitter = StaticSubmitter(TransactionHandle(tx_hash="0x" + "cd" * 32, contract_address=forge_address))
    service = ScriptedVerificationService([None])
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        submitter,
        service,
        sleep,
        reporter,
        confirmation_policy,
        retry_policy,
    )

    result = await orchestrator.deploy(request_)

    assert result.address == forge_address
    assert service.calls[0][0] == forge_address


@pytest.mark.asyncio
async def test_logging_reporter(request_, sleep, confirmation_policy, caplog):
    """Default reporter writes progress to logging."""
    caplog.set_level("INFO")
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        StaticSubmitter(),
        ScriptedVerificationService(["429", "Contract source code already verified"]),
        sleep,
        LoggingReporter(),
        confirmation_policy,
        RetryPolicy(max_attempts=2, base_delay=datetime.timedelta(seconds=1)),
    )

    await orchestrator.deploy(request_)

    assert "Escrow deployment submitted" in caplog.text
    assert "already verified" in caplog.text


@pytest.mark.asyncio
async def test_retry_logged_once(request_, sleep, confirmation_policy, caplog):
    """Each rate-limited retry and the final result show up once at INFO level."""
    caplog.set_level("INFO")
    orchestrator = make_orchestrator(
        ScriptedChainClient([make_receipt(100)], [104]),
        StaticSubmitter(),
        ScriptedVerificationService(["429", None]),
        sleep,
        LoggingReporter(),
        confirmation_policy,
        RetryPolicy(max_attempts=2, base_delay=datetime.timedelta(seconds=1)),
    )

    await orchestrator.deploy(request_)

    messages = [r.getMessage() for r in caplog.records if r.levelname != "DEBUG"]
    assert len([m for m in messages if "rate-limited" in m]) == 1
    assert len([m for m in messages if "verified" in m]) == 1
