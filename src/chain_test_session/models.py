"""Pydantic data models for chain-test-session."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ------------------------------------------------------------------
# Store records
# ------------------------------------------------------------------


class BreadcrumbRecord(BaseModel):
    """A named, latest-value-wins fact within a scope."""

    id: int | None = None
    scope: str = ""
    name: str
    type: str
    payload: Any = None


class BlockCoordinates(BaseModel):
    """Where a completed transaction landed."""

    timestamp: int = 0
    round: int = 0
    epoch: int = 0
    block_nonce: int = 0
    hyperblock_nonce: int = 0


class InteractionRecord(BaseModel):
    """One submitted transaction.

    Recorded at submission; the block coordinates stay zero and ``output``
    stays ``None`` until the transaction completes and its output is attached.
    """

    id: int | None = None
    scope: str = ""
    action: str
    user_address: str
    contract_address: str = ""
    transaction_hash: str
    timestamp: int = 0
    round: int = 0
    epoch: int = 0
    block_nonce: int = 0
    hyperblock_nonce: int = 0
    input: Any = None
    transfers: Any = None
    output: Any = None


class FungibleTokenBalance(BaseModel):
    identifier: str
    balance: str


class NonFungibleTokenNonce(BaseModel):
    identifier: str
    nonce: int


class AccountSnapshotRecord(BaseModel):
    """Point-in-time capture of an account, optionally tied to an interaction."""

    id: int | None = None
    scope: str = ""
    address: str
    nonce: int = 0
    # Decimal string: balances exceed 64-bit integers.
    balance: str = "0"
    fungible_tokens: list[FungibleTokenBalance] = Field(default_factory=list)
    non_fungible_tokens: list[NonFungibleTokenNonce] = Field(default_factory=list)
    taken_before_interaction: int | None = None
    taken_after_interaction: int | None = None

    @model_validator(mode="after")
    def _single_correlation(self) -> "AccountSnapshotRecord":
        if self.taken_before_interaction is not None and self.taken_after_interaction is not None:
            raise ValueError("a snapshot is taken either before or after an interaction, not both")
        return self


class EventRecord(BaseModel):
    """Free-form lifecycle log entry."""

    id: int | None = None
    scope: str = ""
    kind: str
    summary: str = ""
    payload: Any = None
    interaction: int | None = None


class ScopeSummary(BaseModel):
    """Record counts of one scope, as listed by ``list_scopes()``."""

    scope: str
    breadcrumbs: int = 0
    interactions: int = 0
    account_snapshots: int = 0
    events: int = 0


# ------------------------------------------------------------------
# Domain values
# ------------------------------------------------------------------


class Token(BaseModel):
    identifier: str
    decimals: int = 0


# ------------------------------------------------------------------
# Network
# ------------------------------------------------------------------


class AccountOnNetwork(BaseModel):
    address: str
    nonce: int = 0
    balance: int = 0


class FungibleTokenOfAccount(BaseModel):
    identifier: str
    balance: int = 0
    raw: dict[str, Any] = Field(default_factory=dict)


class NonFungibleTokenOfAccount(BaseModel):
    identifier: str
    collection: str = ""
    nonce: int = 0
    balance: int = 1
    name: str = ""
    attributes: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class NetworkConfig(BaseModel):
    chain_id: str
    gas_per_data_byte: int = 1500
    min_gas_limit: int = 50_000
    min_gas_price: int = 1_000_000_000
    min_transaction_version: int = 1
    round_duration: int = 6000


TERMINAL_STATUSES = frozenset({"success", "executed", "fail", "invalid"})
SUCCESSFUL_STATUSES = frozenset({"success", "executed"})


class TransactionOnNetwork(BaseModel):
    """A transaction as reported by the network, with its results and logs."""

    hash: str
    status: str = ""
    sender: str = ""
    receiver: str = ""
    value: str = "0"
    data: str = ""
    nonce: int = 0
    timestamp: int = 0
    round: int = 0
    epoch: int = 0
    block_nonce: int = 0
    hyperblock_nonce: int = 0
    # Each item carries at least ``data`` (plain text, e.g. "@6f6b@2a").
    contract_results: list[dict[str, Any]] = Field(default_factory=list)
    # Each item carries ``identifier``, ``topics`` (base64) and ``data`` (base64).
    log_events: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def block_coordinates(self) -> BlockCoordinates:
        return BlockCoordinates(
            timestamp=self.timestamp,
            round=self.round,
            epoch=self.epoch,
            block_nonce=self.block_nonce,
            hyperblock_nonce=self.hyperblock_nonce,
        )

    @property
    def is_completed(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_successful(self) -> bool:
        return self.status in SUCCESSFUL_STATUSES


class ContractQueryResponse(BaseModel):
    return_code: str = ""
    return_message: str = ""
    # Base64-encoded return values.
    return_data_parts: list[str] = Field(default_factory=list)
    gas_used: int = 0


class InteractionOutcome(BaseModel):
    """What ``InteractionRunner.run()`` hands back to the interactor."""

    interaction_id: int
    transaction_hash: str
    transaction: TransactionOnNetwork
    output: Any = None


# ------------------------------------------------------------------
# Session configuration
# ------------------------------------------------------------------


class NetworkProviderConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    url: str | None = None
    # Milliseconds.
    timeout: int | None = None


class UserConfig(BaseModel):
    name: str
    address: str


class ReportingConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    output_folder: str = Field("reports", alias="outputFolder")
    format: Literal["markdown", "yaml", "json"] = "markdown"


class SessionConfig(BaseModel):
    """Contents of ``<session>.session.json``."""

    model_config = ConfigDict(populate_by_name=True)

    network_provider: NetworkProviderConfig = Field(alias="networkProvider")
    users: list[UserConfig] = Field(default_factory=list)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
