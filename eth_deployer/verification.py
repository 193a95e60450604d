"""Block explorer source code verification with rate limit retries.

Explorer APIs (Etherscan and its clones) only give us a free text error message,
so we classify failures by looking for well known substrings in it:

- ``already verified``: somebody verified the same bytecode before us, this is a success

- ``too many requests`` or ``429``: we hit the per API key rate limit window, back off and try again

- anything else: a real failure, retrying would not help

Rate limited attempts back off linearly: we sleep ``base_delay * attempt``
before the next attempt.
"""

import asyncio
import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from eth_deployer.confirmation import Sleeper

logger = logging.getLogger(__name__)


class VerificationService(Protocol):
    """Submit a deployed contract for source verification."""

    async def verify(self, address: str, constructor_args: Sequence) -> None:
        """Verify the contract.

        :raise Exception:
            Any failure. The exception message is used to classify the failure.
        """


class VerificationErrorKind(enum.Enum):
    """How we interpret a verification failure message."""

    already_verified = "already_verified"

    rate_limited = "rate_limited"

    other = "other"


class VerificationStatus(enum.Enum):
    """Terminal state of a verification."""

    verified = "verified"

    already_verified = "already_verified"

    failed = "failed"


#: Message -> error kind
VerificationErrorClassifier = Callable[[str], VerificationErrorKind]

#: Called before backing off: attempt number, max attempts, delay
RetryCallback = Callable[[int, int, datetime.timedelta], None]


@dataclass(frozen=True)
class RetryPolicy:
    """How hard we try to get past explorer rate limits."""

    #: Total verification attempts, including the first one
    max_attempts: int = 5

    #: Linear backoff unit, we sleep ``base_delay * attempt`` after a rate limited attempt
    base_delay: datetime.timedelta = datetime.timedelta(seconds=10)

    def __post_init__(self):
        assert type(self.max_attempts) is int and self.max_attempts > 0, f"max_attempts must be a positive integer, got {self.max_attempts}"
        assert isinstance(self.base_delay, datetime.timedelta), f"Got {type(self.base_delay)}"
        assert self.base_delay.total_seconds() > 0, f"base_delay must be positive, got {self.base_delay}"

    def get_delay(self, attempt: int) -> datetime.timedelta:
        """How long to wait after a rate limited attempt number ``attempt`` (1-based)."""
        return self.base_delay * attempt


@dataclass(frozen=True)
class VerificationOutcome:
    """The end result of verifying a single deployment."""

    status: VerificationStatus

    #: How many times we called the verification service
    attempts: int

    #: Error message for failed verifications
    reason: Optional[str] = None

    #: We gave up because the explorer kept rate limiting us
    rate_limit_exhausted: bool = False

    def __repr__(self):
        return f"<VerificationOutcome {self.status.name} attempts:{self.attempts} reason:{self.reason}>"

    def is_success(self) -> bool:
        """Already verified contracts count as a success."""
        return self.status in (VerificationStatus.verified, VerificationStatus.already_verified)


def classify_verification_error(message: str) -> VerificationErrorKind:
    """Classify an explorer error message.

    Case-insensitive substring match.
    """
    message = (message or "").lower()
    if "already verified" in message:
        return VerificationErrorKind.already_verified
    if "too many requests" in message or "429" in message:
        return VerificationErrorKind.rate_limited
    return VerificationErrorKind.other


async def verify_with_retries(
    service: VerificationService,
    address: str,
    constructor_args: Sequence,
    policy: RetryPolicy,
    classifier: VerificationErrorClassifier = classify_verification_error,
    sleep: Sleeper = asyncio.sleep,
    on_retry: Optional[RetryCallback] = None,
) -> VerificationOutcome:
    """Verify a contract, retrying while the explorer rate limits us.

    Never raises on verification failures; the outcome tells what happened.

    :param service:
        The explorer integration

    :param address:
        Deployed contract address

    :param constructor_args:
        Opaque constructor arguments the contract was deployed with

    :param policy:
        Attempt cap and backoff unit

    :param classifier:
        Map failure messages to error kinds.

        Swap this if the explorer starts to give structured error codes.

    :param sleep:
        Coroutine used to back off

    :param on_retry:
        Progress callback fired before each backoff sleep

    :return:
        Terminal verification outcome
    """

    attempt = 1
    while True:
        try:
            await service.verify(address, constructor_args)
            logger.debug("Contract %s verified on attempt %d", address, attempt)
            return VerificationOutcome(VerificationStatus.verified, attempts=attempt)
        except Exception as e:
            message = str(e)
            kind = classifier(message)

            if kind == VerificationErrorKind.already_verified:
                logger.debug("Contract %s is already verified", address)
                return VerificationOutcome(VerificationStatus.already_verified, attempts=attempt)

            if kind == VerificationErrorKind.rate_limited:
                if attempt < policy.max_attempts:
                    delay = policy.get_delay(attempt)
                    logger.debug(
                        "Verification rate-limited (attempt %d/%d). Retrying in %ds...",
                        attempt,
                        policy.max_attempts,
                        round(delay.total_seconds()),
                    )
                    if on_retry:
                        on_retry(attempt, policy.max_attempts, delay)
                    await sleep(delay.total_seconds())
                    attempt += 1
                    continue

                logger.debug("Verification of %s still rate-limited after %d attempts, giving up", address, attempt)
                return VerificationOutcome(
                    VerificationStatus.failed,
                    attempts=attempt,
                    reason=message,
                    rate_limit_exhausted=True,
                )

            logger.debug("Verification of %s failed: %s", address, message)
            return VerificationOutcome(VerificationStatus.failed, attempts=attempt, reason=message)
