"""Block confirmation tracking for deployment transactions.

Wait until a broadcasted transaction is mined and buried under
enough blocks that we are comfortable to ask a block explorer to verify it.

- Node errors during the wait are assumed to be transient and retried forever,
  because we know the transaction has been broadcasted

- There is no wall clock timeout, but the number of polls can be capped with
  :py:attr:`ConfirmationPolicy.max_polls`
"""

import asyncio
import datetime
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from eth_deployer.chain import ChainClient
from eth_deployer.exceptions import ConfirmationTimedOut

logger = logging.getLogger(__name__)


#: Sleep function signature, takes seconds
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ConfirmationPolicy:
    """How long we wait for a deployment transaction to settle."""

    #: How many blocks, including the inclusion block, must exist before we consider the tx confirmed
    target_confirmations: int = 5

    #: Delay between receipt and head block polls
    poll_interval: datetime.timedelta = datetime.timedelta(seconds=15)

    #: Give up after this many polls.
    #:
    #: ``None`` waits forever.
    max_polls: Optional[int] = None

    def __post_init__(self):
        assert type(self.target_confirmations) is int and self.target_confirmations > 0, f"target_confirmations must be a positive integer, got {self.target_confirmations}"
        assert isinstance(self.poll_interval, datetime.timedelta), f"Got {type(self.poll_interval)}"
        assert self.poll_interval.total_seconds() > 0, f"poll_interval must be positive, got {self.poll_interval}"
        assert self.max_polls is None or self.max_polls > 0, f"max_polls must be positive, got {self.max_polls}"


def count_confirmations(inclusion_block: int, head_block: int) -> int:
    """How many confirmations a transaction has.

    The inclusion block itself counts as the first confirmation.
    """
    return head_block - inclusion_block + 1


async def wait_for_confirmations(
    client: ChainClient,
    tx_hash: str,
    policy: ConfirmationPolicy,
    sleep: Sleeper = asyncio.sleep,
) -> dict:
    """Wait until a transaction has enough block confirmations.

    First poll until the node gives us a receipt, then poll the chain head
    until ``head - inclusion_block + 1 >= target_confirmations``.

    Example:

    .. code-block:: python

        client = Web3ChainClient.from_json_rpc_url(json_rpc_url)
        policy = ConfirmationPolicy(target_confirmations=5)
        receipt = await wait_for_confirmations(client, handle.tx_hash, policy)
        logger.info("Contract at %s", receipt["contractAddress"])

    :param client:
        Chain access

    :param tx_hash:
        Deployment transaction hash as a hex string

    :param policy:
        Confirmation depth and poll delay

    :param sleep:
        Coroutine used to wait between polls.

        Tests replace this with a recorder.

    :raise ConfirmationTimedOut:
        Only if ``policy.max_polls`` is set and exceeded.

    :return:
        The transaction receipt
    """

    poll_delay = policy.poll_interval.total_seconds()
    polls = 0

    def _check_poll_budget(stage: str):
        if policy.max_polls is not None and polls >= policy.max_polls:
            raise ConfirmationTimedOut(f"Transaction {tx_hash} not confirmed after {polls} polls ({stage}), poll delay {poll_delay}s, needed {policy.target_confirmations} confirmations")

    logger.info("Waiting transaction %s to reach %d confirmations, poll delay %fs", tx_hash, policy.target_confirmations, poll_delay)

    receipt = None
    while not receipt:
        polls += 1
        try:
            receipt = await client.get_transaction_receipt(tx_hash)
        except Exception as e:
            logger.debug("Receipt lookup failed for %s, retrying: %s", tx_hash, e)
            receipt = None

        if not receipt:
            _check_poll_budget("waiting for receipt")
            await sleep(poll_delay)

    inclusion_block = receipt["blockNumber"]
    logger.info("Transaction %s included in block %d", tx_hash, inclusion_block)

    # Lagging nodes behind a load balancer may report an older head
    observed_head: Optional[int] = None
    while True:
        polls += 1
        try:
            head = await client.get_head_block_number()
        except Exception as e:
            logger.debug("Head block lookup failed, retrying: %s", e)
            head = None

        if head is not None:
            if observed_head is None or head > observed_head:
                observed_head = head

            confirmations = count_confirmations(inclusion_block, observed_head)
            if confirmations >= policy.target_confirmations:
                logger.info("Transaction %s confirmed with %d confirmations at block %d", tx_hash, confirmations, observed_head)
                return receipt

            logger.debug("Still waiting more confirmations. Tx %s with %d confirmations, %d needed", tx_hash, confirmations, policy.target_confirmations)

        _check_poll_budget("waiting for confirmations")
        await sleep(poll_delay)
