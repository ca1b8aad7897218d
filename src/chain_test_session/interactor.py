"""Send / watch / record glue shared by contract-specific interactors.

An interactor builds and signs a transaction however it likes, then hands it
to :meth:`InteractionRunner.run`, which broadcasts and records it, then waits
for completion to attach the output.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from chain_test_session.event_log import EventLog
from chain_test_session.models import (
    AccountSnapshotRecord,
    InteractionOutcome,
    InteractionRecord,
    TransactionOnNetwork,
)
from chain_test_session.network.base import ChainClient
from chain_test_session.network.watcher import TransactionWatcher
from chain_test_session.outcome import parse_untyped_outcome
from chain_test_session.snapshots import SnapshottingService
from chain_test_session.store.base import SessionStore

logger = logging.getLogger(__name__)

OutputParser = Callable[[TransactionOnNetwork], Any]


class InteractionRunner:
    def __init__(
        self,
        scope: str,
        client: ChainClient,
        store: SessionStore,
        snapshots: SnapshottingService,
        log: EventLog,
        watcher: TransactionWatcher | None = None,
    ) -> None:
        self.scope = scope
        self.client = client
        self.store = store
        self.snapshots = snapshots
        self.log = log
        self.watcher = watcher or TransactionWatcher(client)

    async def run(
        self,
        action: str,
        user_address: str,
        transaction: dict[str, Any],
        *,
        contract_address: str = "",
        input: Any = None,
        transfers: Any = None,
        parse_output: OutputParser = parse_untyped_outcome,
        snapshot_addresses: Sequence[str] = (),
        is_deployment: bool = False,
    ) -> InteractionOutcome:
        """Broadcast *transaction* and record it as interaction *action*.

        The interaction is recorded as soon as the transaction is submitted;
        its block coordinates and output are attached once it completes.
        Accounts in *snapshot_addresses* are captured before broadcasting and
        again after completion.  Failures abort the run; rows already written
        stay in place, so a timed-out transaction still shows up as an
        interaction without output.
        """
        before: list[AccountSnapshotRecord] = []
        for address in snapshot_addresses:
            before.append(await self.snapshots.capture_account(address))

        transaction_hash = await self.client.send_transaction(transaction)
        if is_deployment:
            await self.log.on_contract_deployment_sent(transaction_hash, contract_address)
        else:
            await self.log.on_transaction_sent(transaction_hash)

        interaction_id = await self.store.insert_interaction(
            self.scope,
            InteractionRecord(
                action=action,
                user_address=user_address,
                contract_address=contract_address,
                transaction_hash=transaction_hash,
                input=input,
                transfers=transfers,
            ),
        )
        await self.log.on_interaction_recorded(interaction_id, action, transaction_hash)
        for snapshot in before:
            await self.snapshots.save(self.scope, snapshot, before=interaction_id)

        transaction_on_network = await self.watcher.await_completed(transaction_hash)
        await self.log.on_transaction_completed(transaction_hash, transaction_on_network, interaction_id)

        for address in snapshot_addresses:
            await self.snapshots.take_snapshots_of_account(self.scope, address, after=interaction_id)

        output = parse_output(transaction_on_network)
        await self.store.set_interaction_output(interaction_id, output, transaction_on_network.block_coordinates)
        await self.log.on_interaction_output(interaction_id, output)

        logger.info("%s: %s -> %s", action, transaction_hash, transaction_on_network.status)
        return InteractionOutcome(
            interaction_id=interaction_id,
            transaction_hash=transaction_hash,
            transaction=transaction_on_network,
            output=output,
        )
