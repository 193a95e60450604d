"""Deployment progress reporting.

The orchestrator tells a :py:class:`DeploymentReporter` about every phase transition.
The default :py:class:`LoggingReporter` writes them to Python logging.
"""

import datetime
import logging
from typing import Optional, Protocol

from eth_deployer.networks import NetworkConfig
from eth_deployer.verification import VerificationOutcome, VerificationStatus

logger = logging.getLogger(__name__)


class DeploymentReporter(Protocol):
    """Receive deployment progress events."""

    def on_submitted(self, contract_name: str, tx_hash: str): ...

    def on_confirmed(self, contract_name: str, address: str, block_number: int, confirmations: int): ...

    def on_verification_retry(self, address: str, attempt: int, max_attempts: int, delay: datetime.timedelta): ...

    def on_verified(self, address: str, outcome: VerificationOutcome): ...

    def on_verification_failed(self, address: str, outcome: VerificationOutcome): ...

    def on_verification_skipped(self, address: str, reason: str): ...


class LoggingReporter:
    """Report deployment progress through logging.

    :param network:
        If given, include block explorer links in the messages
    """

    def __init__(self, network: Optional[NetworkConfig] = None, log: logging.Logger = logger):
        self.network = network
        self.log = log

    def _address_suffix(self, address: str) -> str:
        if self.network and self.network.browser_url:
            return f" {self.network.get_address_link(address)}"
        return ""

    def on_submitted(self, contract_name: str, tx_hash: str):
        self.log.info("%s deployment submitted, tx hash %s", contract_name, tx_hash)

    def on_confirmed(self, contract_name: str, address: str, block_number: int, confirmations: int):
        self.log.info(
            "✅ %s contract deployed to: %s (block %d, %d confirmations)%s",
            contract_name,
            address,
            block_number,
            confirmations,
            self._address_suffix(address),
        )

    def on_verification_retry(self, address: str, attempt: int, max_attempts: int, delay: datetime.timedelta):
        self.log.info("Verification of %s rate-limited (attempt %d/%d), retrying in %ds", address, attempt, max_attempts, round(delay.total_seconds()))

    def on_verified(self, address: str, outcome: VerificationOutcome):
        if outcome.status == VerificationStatus.already_verified:
            self.log.info("Contract %s is already verified.", address)
        else:
            self.log.info("✅ Contract %s verified successfully!%s", address, self._address_suffix(address))

    def on_verification_failed(self, address: str, outcome: VerificationOutcome):
        if outcome.rate_limit_exhausted:
            self.log.warning("Verification of %s failed: still rate-limited after %d attempts: %s", address, outcome.attempts, outcome.reason)
        else:
            self.log.warning("Verification of %s failed: %s", address, outcome.reason)

    def on_verification_skipped(self, address: str, reason: str):
        self.log.warning("Verification of %s skipped: %s", address, reason)
