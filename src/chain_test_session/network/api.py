"""Chain client talking to the public indexing API (``/accounts``, ``/transactions``, ...)."""

from typing import Any

from chain_test_session.models import (
    AccountOnNetwork,
    ContractQueryResponse,
    FungibleTokenOfAccount,
    NetworkConfig,
    NonFungibleTokenOfAccount,
    TransactionOnNetwork,
)
from chain_test_session.network.http_provider import (
    HttpNetworkProvider,
    decode_text,
    parse_contract_results,
    parse_log_events,
)
from chain_test_session.network.proxy import network_config_from_proxy, query_response_from_vm_output

# The API pages token listings; one large page is enough for test accounts.
_PAGE_SIZE = 10_000


class ApiNetworkProvider(HttpNetworkProvider):
    async def get_network_config(self) -> NetworkConfig:
        # The API forwards this route to its gateway, envelope included.
        data = await self._get_proxy_data("/network/config")
        return network_config_from_proxy(data.get("config") or {})

    async def get_account(self, address: str) -> AccountOnNetwork:
        body = await self._get(f"/accounts/{address}")
        return AccountOnNetwork(
            address=body.get("address", address),
            nonce=body.get("nonce", 0),
            balance=body.get("balance", 0),
        )

    async def get_fungible_tokens_of_account(self, address: str) -> list[FungibleTokenOfAccount]:
        body = await self._get(f"/accounts/{address}/tokens", params={"from": 0, "size": _PAGE_SIZE})
        return [
            FungibleTokenOfAccount(identifier=item["identifier"], balance=item.get("balance", 0), raw=item)
            for item in body or []
        ]

    async def get_non_fungible_tokens_of_account(self, address: str) -> list[NonFungibleTokenOfAccount]:
        body = await self._get(f"/accounts/{address}/nfts", params={"from": 0, "size": _PAGE_SIZE})
        return [
            NonFungibleTokenOfAccount(
                identifier=item["identifier"],
                collection=item.get("collection", ""),
                nonce=item.get("nonce", 0),
                balance=item.get("balance", 1),
                name=item.get("name", ""),
                attributes=item.get("attributes", ""),
                raw=item,
            )
            for item in body or []
        ]

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        body = await self._post("/transactions", transaction)
        return self._transaction_hash("/transactions", body)

    async def get_transaction(self, transaction_hash: str) -> TransactionOnNetwork:
        tx = await self._get(f"/transactions/{transaction_hash}")
        return TransactionOnNetwork(
            hash=tx.get("txHash", transaction_hash),
            status=tx.get("status", ""),
            sender=tx.get("sender", ""),
            receiver=tx.get("receiver", ""),
            value=str(tx.get("value", "0")),
            data=decode_text(tx.get("data")),
            nonce=tx.get("nonce", 0),
            timestamp=tx.get("timestamp", 0),
            round=tx.get("round", 0),
            epoch=tx.get("epoch", 0),
            block_nonce=tx.get("blockNonce", 0),
            hyperblock_nonce=tx.get("hyperblockNonce", 0),
            contract_results=parse_contract_results(tx.get("results")),
            log_events=parse_log_events(tx.get("logs")),
        )

    async def get_transaction_status(self, transaction_hash: str) -> str:
        body = await self._get(f"/transactions/{transaction_hash}", params={"fields": "status"})
        return body.get("status", "")

    async def query_contract(self, query: dict[str, Any]) -> ContractQueryResponse:
        body = await self._post("/query", query)
        return query_response_from_vm_output(body or {})
