"""Tests for InteractionRunner."""

import pytest
from chain_test_session.errors import AwaitTimeoutError
from chain_test_session.event_log import (
    CONTRACT_DEPLOYMENT_SENT,
    INTERACTION_OUTPUT,
    INTERACTION_RECORDED,
    TRANSACTION_COMPLETED,
    TRANSACTION_SENT,
)
from chain_test_session.models import AccountOnNetwork, TransactionOnNetwork
from chain_test_session.network.watcher import TransactionWatcher

from .conftest import ALICE, BOB, CONTRACT


@pytest.fixture
def runner(session):
    return session.create_interaction_runner(TransactionWatcher(session.client, polling_interval=0.01, timeout=1.0))


class TestRun:
    @pytest.mark.asyncio
    async def test_records_interaction_and_output(self, runner, chain_client, memory_store):
        chain_client.queue_transaction(
            TransactionOnNetwork(
                hash="",
                status="success",
                timestamp=1650000000,
                round=20,
                epoch=2,
                block_nonce=19,
                hyperblock_nonce=18,
                contract_results=[{"data": "@6f6b@05"}],
            ),
            statuses=["pending", "success"],
        )

        outcome = await runner.run("add", ALICE, {"nonce": 3}, contract_address=CONTRACT, input={"value": 5})

        assert outcome.output == {"returnCode": "ok", "returnMessage": "", "values": ["05"]}
        record = await memory_store.get_interaction(outcome.interaction_id)
        assert record.scope == "s1"
        assert record.action == "add"
        assert record.user_address == ALICE
        assert record.contract_address == CONTRACT
        assert record.transaction_hash == outcome.transaction_hash
        assert (record.round, record.epoch, record.block_nonce, record.hyperblock_nonce) == (20, 2, 19, 18)
        assert record.timestamp == 1650000000
        assert record.input == {"value": 5}
        assert record.transfers == {}
        assert record.output["returnCode"] == "ok"

    @pytest.mark.asyncio
    async def test_events(self, runner, memory_store):
        outcome = await runner.run("add", ALICE, {"nonce": 3}, contract_address=CONTRACT)

        events = await memory_store.list_events("s1")
        assert [e.kind for e in events] == [
            TRANSACTION_SENT,
            INTERACTION_RECORDED,
            TRANSACTION_COMPLETED,
            INTERACTION_OUTPUT,
        ]
        assert [e.interaction for e in events] == [None] + [outcome.interaction_id] * 3
        assert events[0].payload == {"transactionHash": outcome.transaction_hash}

    @pytest.mark.asyncio
    async def test_deployment_event(self, runner, memory_store):
        await runner.run("deploy", ALICE, {"nonce": 3}, contract_address=CONTRACT, is_deployment=True)
        events = await memory_store.list_events("s1")
        assert events[0].kind == CONTRACT_DEPLOYMENT_SENT
        assert events[0].payload["contractAddress"] == CONTRACT

    @pytest.mark.asyncio
    async def test_snapshots_before_and_after(self, runner, chain_client, memory_store):
        chain_client.queue_transaction(
            TransactionOnNetwork(hash="", status="success", contract_results=[{"data": "@6f6b"}]),
            effects={BOB: AccountOnNetwork(address=BOB, nonce=1, balance=4 * 10**17)},
        )

        outcome = await runner.run("transfer", BOB, {"nonce": 0}, snapshot_addresses=[BOB])

        snapshots = await memory_store.list_account_snapshots("s1", address=BOB)
        assert len(snapshots) == 2
        before, after = snapshots
        assert before.taken_before_interaction == outcome.interaction_id
        assert before.taken_after_interaction is None
        assert before.balance == str(5 * 10**17)
        assert after.taken_after_interaction == outcome.interaction_id
        assert after.balance == str(4 * 10**17)
        assert after.nonce == 1

    @pytest.mark.asyncio
    async def test_custom_parser(self, runner):
        outcome = await runner.run("add", ALICE, {"nonce": 3}, parse_output=lambda tx: {"status": tx.status})
        assert outcome.output == {"status": "success"}

    @pytest.mark.asyncio
    async def test_timeout_leaves_interaction_without_output(self, session, chain_client, memory_store):
        chain_client.queue_transaction(TransactionOnNetwork(hash="", status="pending"))
        runner = session.create_interaction_runner(TransactionWatcher(chain_client, polling_interval=0.01, timeout=0.05))

        with pytest.raises(AwaitTimeoutError):
            await runner.run("add", ALICE, {"nonce": 3}, contract_address=CONTRACT, snapshot_addresses=[ALICE])

        interactions = await memory_store.list_interactions("s1")
        assert len(interactions) == 1
        pending = interactions[0]
        assert pending.action == "add"
        assert pending.transaction_hash == f"{1:064x}"
        assert pending.output is None
        assert (pending.round, pending.block_nonce) == (0, 0)

        assert [e.kind for e in await memory_store.list_events("s1")] == [TRANSACTION_SENT, INTERACTION_RECORDED]
        snapshots = await memory_store.list_account_snapshots("s1", address=ALICE)
        assert [s.taken_before_interaction for s in snapshots] == [pending.id]
