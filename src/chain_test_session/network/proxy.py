"""Chain client talking to a gateway (proxy) node."""

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


class ProxyNetworkProvider(HttpNetworkProvider):
    """Chain client for the gateway REST API (``/address``, ``/transaction``, ...)."""

    async def get_network_config(self) -> NetworkConfig:
        data = await self._get_proxy_data("/network/config")
        return network_config_from_proxy(data.get("config") or {})

    async def get_account(self, address: str) -> AccountOnNetwork:
        data = await self._get_proxy_data(f"/address/{address}")
        account = data.get("account") or {}
        return AccountOnNetwork(
            address=account.get("address", address),
            nonce=account.get("nonce", 0),
            balance=account.get("balance", 0),
        )

    async def _get_esdts(self, address: str) -> dict[str, Any]:
        data = await self._get_proxy_data(f"/address/{address}/esdt")
        return data.get("esdts") or {}

    async def get_fungible_tokens_of_account(self, address: str) -> list[FungibleTokenOfAccount]:
        esdts = await self._get_esdts(address)
        return [
            FungibleTokenOfAccount(
                identifier=item.get("tokenIdentifier") or key,
                balance=item.get("balance", 0),
                raw=item,
            )
            for key, item in esdts.items()
            if not item.get("nonce")
        ]

    async def get_non_fungible_tokens_of_account(self, address: str) -> list[NonFungibleTokenOfAccount]:
        esdts = await self._get_esdts(address)
        tokens: list[NonFungibleTokenOfAccount] = []
        for key, item in esdts.items():
            nonce = item.get("nonce")
            if not nonce:
                continue
            collection = item.get("tokenIdentifier", "")
            tokens.append(
                NonFungibleTokenOfAccount(
                    identifier=key if key != collection else f"{collection}-{nonce:02x}",
                    collection=collection,
                    nonce=nonce,
                    balance=item.get("balance", 1),
                    name=item.get("name", ""),
                    attributes=item.get("attributes", ""),
                    raw=item,
                )
            )
        return tokens

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        data = await self._post_proxy_data("/transaction/send", transaction)
        return self._transaction_hash("/transaction/send", data)

    async def get_transaction(self, transaction_hash: str) -> TransactionOnNetwork:
        data = await self._get_proxy_data(f"/transaction/{transaction_hash}", params={"withResults": "true"})
        tx = data.get("transaction") or {}
        return TransactionOnNetwork(
            hash=transaction_hash,
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
            contract_results=parse_contract_results(tx.get("smartContractResults")),
            log_events=parse_log_events(tx.get("logs")),
        )

    async def get_transaction_status(self, transaction_hash: str) -> str:
        data = await self._get_proxy_data(f"/transaction/{transaction_hash}/status")
        return data.get("status", "")

    async def query_contract(self, query: dict[str, Any]) -> ContractQueryResponse:
        data = await self._post_proxy_data("/vm-values/query", query)
        return query_response_from_vm_output(data.get("data") or {})


def network_config_from_proxy(config: dict[str, Any]) -> NetworkConfig:
    return NetworkConfig(
        chain_id=config.get("erd_chain_id", ""),
        gas_per_data_byte=config.get("erd_gas_per_data_byte", 1500),
        min_gas_limit=config.get("erd_min_gas_limit", 50_000),
        min_gas_price=config.get("erd_min_gas_price", 1_000_000_000),
        min_transaction_version=config.get("erd_min_transaction_version", 1),
        round_duration=config.get("erd_round_duration", 6000),
    )


def query_response_from_vm_output(output: dict[str, Any]) -> ContractQueryResponse:
    return ContractQueryResponse(
        return_code=output.get("returnCode", ""),
        return_message=output.get("returnMessage", ""),
        return_data_parts=list(output.get("returnData") or []),
        gas_used=output.get("gasUsed", 0),
    )
