"""Chain client used to observe deployment transactions.

- :py:class:`ChainClient` is the narrow read interface the confirmation tracker needs

- :py:class:`Web3ChainClient` implements it on the top of :py:class:`web3.AsyncWeb3`
"""

import logging
from typing import Protocol

from hexbytes import HexBytes
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

logger = logging.getLogger(__name__)


class ChainClient(Protocol):
    """Read transaction receipts and the chain head.

    Both calls may fail transiently. Callers treat any exception as "try again later".
    """

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        """Get the receipt of a mined transaction.

        :return:
            Receipt with ``blockNumber`` key, or ``None`` if the transaction is not mined yet
        """

    async def get_head_block_number(self) -> int:
        """Get the latest block number of the canonical chain."""


class Web3ChainClient:
    """Chain client backed by web3.py async API."""

    def __init__(self, web3: AsyncWeb3):
        self.web3 = web3

    def __repr__(self):
        return f"<Web3ChainClient {self.web3.provider}>"

    @classmethod
    def from_json_rpc_url(cls, json_rpc_url: str) -> "Web3ChainClient":
        assert json_rpc_url.startswith("http"), f"Only HTTP JSON-RPC endpoints supported, got {json_rpc_url[0:12]}..."
        return cls(AsyncWeb3(AsyncHTTPProvider(json_rpc_url)))

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        try:
            receipt = await self.web3.eth.get_transaction_receipt(HexBytes(tx_hash))
        except TransactionNotFound as e:
            # Most nodes raise instead of returning null for pending transactions
            logger.debug("Transaction not found yet: %s", e)
            return None
        return receipt

    async def get_head_block_number(self) -> int:
        return await self.web3.eth.block_number
