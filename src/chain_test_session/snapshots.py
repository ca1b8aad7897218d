"""Point-in-time captures of account state."""

import logging

from chain_test_session.models import (
    AccountSnapshotRecord,
    FungibleTokenBalance,
    NonFungibleTokenNonce,
)
from chain_test_session.network.base import ChainClient
from chain_test_session.store.base import SessionStore

logger = logging.getLogger(__name__)


class SnapshottingService:
    """Reads accounts from the chain client and records simplified snapshots.

    Token holdings are reduced to ``{identifier, balance}`` (fungible) and
    ``{identifier, nonce}`` (non-fungible); other token metadata is dropped.
    """

    def __init__(self, client: ChainClient, store: SessionStore) -> None:
        self.client = client
        self.store = store

    async def capture_account(self, address: str) -> AccountSnapshotRecord:
        """Query the account and its tokens.  Nothing is written."""
        account = await self.client.get_account(address)
        fungible_tokens = await self.client.get_fungible_tokens_of_account(address)
        non_fungible_tokens = await self.client.get_non_fungible_tokens_of_account(address)

        return AccountSnapshotRecord(
            address=address,
            nonce=account.nonce,
            balance=str(account.balance),
            fungible_tokens=[
                FungibleTokenBalance(identifier=t.identifier, balance=str(t.balance)) for t in fungible_tokens
            ],
            non_fungible_tokens=[NonFungibleTokenNonce(identifier=t.identifier, nonce=t.nonce) for t in non_fungible_tokens],
        )

    async def take_snapshots_of_account(
        self,
        scope: str,
        address: str,
        before: int | None = None,
        after: int | None = None,
    ) -> AccountSnapshotRecord:
        """Capture *address* and store it, optionally tied to an interaction id."""
        snapshot = await self.capture_account(address)
        return await self.save(scope, snapshot, before=before, after=after)

    async def save(
        self,
        scope: str,
        snapshot: AccountSnapshotRecord,
        before: int | None = None,
        after: int | None = None,
    ) -> AccountSnapshotRecord:
        """Store a previously captured snapshot."""
        record = AccountSnapshotRecord.model_validate(
            {
                **snapshot.model_dump(),
                "scope": scope,
                "taken_before_interaction": before,
                "taken_after_interaction": after,
            }
        )
        await self.store.insert_account_snapshot(scope, record)
        logger.debug("Stored snapshot of %s (before=%s, after=%s)", snapshot.address, before, after)
        return record
