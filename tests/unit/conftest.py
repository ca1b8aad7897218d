"""Shared fixtures for chain-test-session tests."""

import json
from collections import deque
from typing import Any

import pytest
import pytest_asyncio
from chain_test_session.errors import NetworkProviderError
from chain_test_session.models import (
    AccountOnNetwork,
    ContractQueryResponse,
    FungibleTokenOfAccount,
    NetworkConfig,
    NonFungibleTokenOfAccount,
    SessionConfig,
    TransactionOnNetwork,
)
from chain_test_session.session import TestSession
from chain_test_session.store.memory_store import MemorySessionStore
from chain_test_session.users import BunchOfUsers, TestUser
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

ALICE = "erd1qyu5wthldzr8wx5c9ucg8kjagg0jfs53s8nr3zpz3hypefsdd8ssycr6th"
BOB = "erd1spyavw0956vq68xj8y4tenjpq2wd5a9p2c6j8gsz7ztyrnpxrruqzu66jx"
CONTRACT = "erd1qqqqqqqqqqqqqpgqak8zt22wl2ph4tswtyc39namqx6ysa2sd8ss4xmlj3"

# ------------------------------------------------------------------
# Fake chain client
# ------------------------------------------------------------------


class FakeChainClient:
    """In-memory ``ChainClient`` with scriptable transactions."""

    def __init__(self) -> None:
        self.accounts: dict[str, AccountOnNetwork] = {}
        self.fungible: dict[str, list[FungibleTokenOfAccount]] = {}
        self.non_fungible: dict[str, list[NonFungibleTokenOfAccount]] = {}
        self.network_config = NetworkConfig(chain_id="localnet", min_gas_price=1_000_000_000)
        self.failing_addresses: set[str] = set()
        self.sent: list[dict[str, Any]] = []
        self.transactions: dict[str, TransactionOnNetwork] = {}
        self.statuses: dict[str, deque[str]] = {}
        self.status_polls: dict[str, int] = {}
        self._queue: deque[tuple[TransactionOnNetwork, list[str] | None, dict[str, AccountOnNetwork]]] = deque()
        self.closed = False

    def add_account(
        self,
        address: str,
        nonce: int = 0,
        balance: int = 0,
        tokens: list[tuple[str, int]] = (),
        nfts: list[tuple[str, int]] = (),
    ) -> None:
        self.accounts[address] = AccountOnNetwork(address=address, nonce=nonce, balance=balance)
        self.fungible[address] = [
            FungibleTokenOfAccount(identifier=i, balance=b, raw={"decimals": 18}) for i, b in tokens
        ]
        self.non_fungible[address] = [
            NonFungibleTokenOfAccount(
                identifier=f"{i}-{n:02x}",
                collection=i,
                nonce=n,
                name="some name",
                attributes="YQ==",
            )
            for i, n in nfts
        ]

    def queue_transaction(
        self,
        transaction: TransactionOnNetwork,
        statuses: list[str] | None = None,
        effects: dict[str, AccountOnNetwork] | None = None,
    ) -> None:
        """Script the next ``send_transaction()``: its outcome, status sequence and account changes."""
        self._queue.append((transaction, statuses, effects or {}))

    def _check(self, address: str) -> None:
        if address in self.failing_addresses:
            raise NetworkProviderError(f"fake://{address}", "account unavailable")

    async def get_network_config(self) -> NetworkConfig:
        return self.network_config

    async def get_account(self, address: str) -> AccountOnNetwork:
        self._check(address)
        return self.accounts.get(address) or AccountOnNetwork(address=address)

    async def get_fungible_tokens_of_account(self, address: str) -> list[FungibleTokenOfAccount]:
        self._check(address)
        return list(self.fungible.get(address, []))

    async def get_non_fungible_tokens_of_account(self, address: str) -> list[NonFungibleTokenOfAccount]:
        self._check(address)
        return list(self.non_fungible.get(address, []))

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        self.sent.append(transaction)
        tx_hash = f"{len(self.sent):064x}"
        if self._queue:
            template, statuses, effects = self._queue.popleft()
        else:
            template, statuses, effects = (
                TransactionOnNetwork(hash="", status="success", contract_results=[{"data": "@6f6b"}]),
                None,
                {},
            )
        self.transactions[tx_hash] = template.model_copy(update={"hash": tx_hash})
        self.statuses[tx_hash] = deque(statuses or [template.status])
        for address, account in effects.items():
            self.accounts[address] = account
        return tx_hash

    async def get_transaction(self, transaction_hash: str) -> TransactionOnNetwork:
        return self.transactions[transaction_hash]

    async def get_transaction_status(self, transaction_hash: str) -> str:
        self.status_polls[transaction_hash] = self.status_polls.get(transaction_hash, 0) + 1
        statuses = self.statuses[transaction_hash]
        if len(statuses) > 1:
            return statuses.popleft()
        return statuses[0]

    async def query_contract(self, query: dict[str, Any]) -> ContractQueryResponse:
        return ContractQueryResponse(return_code="ok", return_data_parts=["Kg=="])

    async def close(self) -> None:
        self.closed = True


# ------------------------------------------------------------------
# Mock gateway (proxy + API routes)
# ------------------------------------------------------------------

_NETWORK_CONFIG = {
    "erd_chain_id": "D",
    "erd_gas_per_data_byte": 1500,
    "erd_min_gas_limit": 50000,
    "erd_min_gas_price": 1000000000,
    "erd_min_transaction_version": 1,
    "erd_round_duration": 6000,
}


def _envelope(data: Any) -> dict[str, Any]:
    return {"data": data, "error": "", "code": "successful"}


def build_mock_gateway_app() -> FastAPI:
    """Create a minimal gateway that answers both proxy and API routes."""
    app = FastAPI()
    app.state.request_log = []

    # -- Proxy routes -------------------------------------------------------

    @app.get("/network/config")
    async def network_config():
        return _envelope({"config": _NETWORK_CONFIG})

    @app.get("/address/{address}")
    async def get_address(address: str):
        if address == "erd1bad":
            return JSONResponse(
                status_code=400,
                content={"data": None, "error": "cannot decode address", "code": "bad_request"},
            )
        if address == "erd1internal":
            return {"data": None, "error": "internal issue", "code": "internal_issue"}
        return _envelope({"account": {"address": address, "nonce": 5, "balance": "1000000000000000000"}})

    @app.get("/address/{address}/esdt")
    async def get_esdts(address: str):
        return _envelope(
            {
                "esdts": {
                    "TKN-abcdef": {"tokenIdentifier": "TKN-abcdef", "balance": "100"},
                    "USDC-123456": {"tokenIdentifier": "USDC-123456", "balance": "2500000"},
                    "NFT-123456-01": {
                        "tokenIdentifier": "NFT-123456",
                        "nonce": 1,
                        "balance": "1",
                        "name": "first",
                        "attributes": "YQ==",
                    },
                }
            }
        )

    @app.post("/transaction/send")
    async def send_transaction(request: Request):
        body = await request.json()
        app.state.request_log.append(body)
        if body.get("signature") == "dropped":
            return _envelope({})
        return _envelope({"txHash": "abc123"})

    @app.get("/transaction/{tx_hash}/status")
    async def transaction_status(tx_hash: str):
        return _envelope({"status": "success"})

    @app.get("/transaction/{tx_hash}")
    async def get_transaction(tx_hash: str, request: Request):
        app.state.request_log.append(dict(request.query_params))
        return _envelope(
            {
                "transaction": {
                    "status": "success",
                    "sender": "erd1sender",
                    "receiver": "erd1receiver",
                    "value": "0",
                    "data": "YWRkQDA1",
                    "nonce": 42,
                    "timestamp": 1650000000,
                    "round": 100,
                    "epoch": 3,
                    "blockNonce": 99,
                    "hyperblockNonce": 98,
                    "smartContractResults": [{"data": "QDZmNmJAMmE="}],
                    "logs": {"events": [{"identifier": "completedTxEvent", "topics": ["YWJj"], "data": None}]},
                }
            }
        )

    @app.post("/vm-values/query")
    async def vm_query(request: Request):
        app.state.request_log.append(await request.json())
        return _envelope({"data": {"returnData": ["Kg=="], "returnCode": "ok", "returnMessage": ""}})

    # -- API routes ---------------------------------------------------------

    @app.get("/accounts/{address}")
    async def get_account(address: str):
        return {"address": address, "nonce": 7, "balance": "42"}

    @app.get("/accounts/{address}/tokens")
    async def get_tokens(address: str, request: Request):
        app.state.request_log.append(dict(request.query_params))
        return [{"identifier": "TKN-abcdef", "balance": "100", "decimals": 6}]

    @app.get("/accounts/{address}/nfts")
    async def get_nfts(address: str):
        return [
            {"identifier": "NFT-123456-01", "collection": "NFT-123456", "nonce": 1, "name": "first"},
            {"identifier": "NFT-123456-02", "collection": "NFT-123456", "nonce": 2, "name": "second"},
        ]

    @app.post("/transactions")
    async def post_transaction(request: Request):
        body = await request.json()
        app.state.request_log.append(body)
        if body.get("signature") == "dropped":
            return {}
        return {"txHash": "def456"}

    @app.get("/transactions/{tx_hash}")
    async def api_transaction(tx_hash: str, request: Request):
        if request.query_params.get("fields") == "status":
            return {"status": "pending"}
        if tx_hash == "missing":
            return JSONResponse(status_code=404, content={"message": "Transaction not found", "statusCode": 404})
        return {
            "txHash": tx_hash,
            "status": "fail",
            "sender": "erd1sender",
            "receiver": "erd1receiver",
            "data": "YWRkQDA1",
            "timestamp": 1650000001,
            "round": 101,
            "epoch": 3,
            "results": [],
            "logs": {
                "events": [
                    {"identifier": "signalError", "topics": ["YWJj", "ZXhlY3V0aW9uIGZhaWxlZA=="], "data": None}
                ]
            },
        }

    @app.post("/query")
    async def api_query(request: Request):
        app.state.request_log.append(await request.json())
        return {"returnData": ["Kg=="], "returnCode": "ok", "returnMessage": ""}

    return app


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def chain_client() -> FakeChainClient:
    client = FakeChainClient()
    client.add_account(ALICE, nonce=3, balance=10**18, tokens=[("TKN-abcdef", 100), ("USDC-123456", 5)], nfts=[("NFT-123456", 1)])
    client.add_account(BOB, nonce=0, balance=5 * 10**17)
    return client


@pytest.fixture
def memory_store():
    return MemorySessionStore()


@pytest.fixture
def mock_gateway() -> FastAPI:
    return build_mock_gateway_app()


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig.model_validate(
        {
            "networkProvider": {"type": "ProxyNetworkProvider", "url": "http://localhost:7950"},
            "users": [{"name": "alice", "address": ALICE}, {"name": "bob", "address": BOB}],
            "reporting": {"outputFolder": "reports"},
        }
    )


@pytest_asyncio.fixture
async def session(tmp_path, chain_client, memory_store, session_config):
    s = TestSession(
        name="s1",
        config=session_config,
        client=chain_client,
        users=BunchOfUsers([TestUser(u.name, u.address) for u in session_config.users]),
        store=memory_store,
        base_folder=tmp_path,
    )
    yield s
    await s.close()


def write_session_config(folder, name: str, config: dict[str, Any]) -> None:
    (folder / f"{name}.session.json").write_text(json.dumps(config), encoding="utf-8")
