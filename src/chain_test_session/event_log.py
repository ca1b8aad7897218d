"""Lifecycle notifications written to the session's event log."""

import logging
from typing import Any

from chain_test_session.models import EventRecord, TransactionOnNetwork
from chain_test_session.store.base import SessionStore

logger = logging.getLogger(__name__)

TRANSACTION_SENT = "transaction-sent"
CONTRACT_DEPLOYMENT_SENT = "contract-deployment-sent"
TRANSACTION_COMPLETED = "transaction-completed"
INTERACTION_RECORDED = "interaction-recorded"
INTERACTION_OUTPUT = "interaction-output"


class EventLog:
    def __init__(self, scope: str, store: SessionStore) -> None:
        self.scope = scope
        self.store = store

    async def log(
        self,
        kind: str,
        summary: str,
        payload: Any = None,
        interaction: int | None = None,
    ) -> None:
        logger.info("[%s] %s: %s", self.scope, kind, summary)
        await self.store.insert_event(
            self.scope,
            EventRecord(kind=kind, summary=summary, payload=payload, interaction=interaction),
        )

    async def on_transaction_sent(self, transaction_hash: str) -> None:
        await self.log(
            TRANSACTION_SENT,
            f"transaction {transaction_hash} sent",
            {"transactionHash": transaction_hash},
        )

    async def on_contract_deployment_sent(self, transaction_hash: str, contract_address: str) -> None:
        await self.log(
            CONTRACT_DEPLOYMENT_SENT,
            f"deployment of {contract_address} sent",
            {"transactionHash": transaction_hash, "contractAddress": contract_address},
        )

    async def on_transaction_completed(
        self,
        transaction_hash: str,
        transaction: TransactionOnNetwork,
        interaction_id: int | None = None,
    ) -> None:
        await self.log(
            TRANSACTION_COMPLETED,
            f"transaction {transaction_hash} completed with status {transaction.status}",
            {
                "transactionHash": transaction_hash,
                "status": transaction.status,
                "round": transaction.round,
                "epoch": transaction.epoch,
            },
            interaction=interaction_id,
        )

    async def on_interaction_recorded(self, interaction_id: int, action: str, transaction_hash: str) -> None:
        await self.log(
            INTERACTION_RECORDED,
            f"interaction {action} recorded",
            {"action": action, "transactionHash": transaction_hash},
            interaction=interaction_id,
        )

    async def on_interaction_output(self, interaction_id: int, output: Any) -> None:
        await self.log(INTERACTION_OUTPUT, "output attached", output, interaction=interaction_id)
