"""Polls a transaction until the network reports a terminal status."""

import asyncio
import logging

from chain_test_session.errors import AwaitTimeoutError
from chain_test_session.models import TERMINAL_STATUSES, TransactionOnNetwork
from chain_test_session.network.base import ChainClient

logger = logging.getLogger(__name__)


class TransactionWatcher:
    """Suspends the caller until a transaction completes or *timeout* elapses.

    There is no cancellation hook: the timeout is the only way out, and it
    surfaces as :class:`AwaitTimeoutError`.  Errors of the chain client
    propagate unchanged.
    """

    DEFAULT_POLLING_INTERVAL = 6.0
    DEFAULT_TIMEOUT = 90.0

    def __init__(
        self,
        client: ChainClient,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.client = client
        self.polling_interval = polling_interval
        self.timeout = timeout

    async def await_completed(self, transaction_hash: str) -> TransactionOnNetwork:
        """Wait for a terminal status, then fetch the transaction with its results."""
        await self.await_status(transaction_hash, TERMINAL_STATUSES)
        return await self.client.get_transaction(transaction_hash)

    async def await_status(self, transaction_hash: str, statuses: frozenset[str] | set[str]) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        status: str | None = None
        while True:
            status = await self.client.get_transaction_status(transaction_hash)
            if status in statuses:
                logger.debug("Transaction %s reached status %s", transaction_hash, status)
                return status

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise AwaitTimeoutError(transaction_hash, self.timeout, status)
            await asyncio.sleep(min(self.polling_interval, remaining))
