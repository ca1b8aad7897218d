"""ChainClient protocol: what the session needs from a network provider."""

from typing import Any, Protocol

from chain_test_session.models import (
    AccountOnNetwork,
    ContractQueryResponse,
    FungibleTokenOfAccount,
    NetworkConfig,
    NonFungibleTokenOfAccount,
    TransactionOnNetwork,
)


class ChainClient(Protocol):
    """Network access used by sessions, snapshots and interactors.

    Transactions are handed over already built and signed, as the JSON-ready
    mapping the network expects.  Failures are raised as they come; callers
    do not retry.
    """

    async def get_network_config(self) -> NetworkConfig: ...

    async def get_account(self, address: str) -> AccountOnNetwork: ...

    async def get_fungible_tokens_of_account(self, address: str) -> list[FungibleTokenOfAccount]: ...

    async def get_non_fungible_tokens_of_account(self, address: str) -> list[NonFungibleTokenOfAccount]: ...

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        """Broadcast *transaction* and return its hash."""
        ...

    async def get_transaction(self, transaction_hash: str) -> TransactionOnNetwork: ...

    async def get_transaction_status(self, transaction_hash: str) -> str: ...

    async def query_contract(self, query: dict[str, Any]) -> ContractQueryResponse: ...

    async def close(self) -> None: ...
