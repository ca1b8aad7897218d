"""In-memory session store for testing and embedded usage."""

from collections import defaultdict
from typing import Any

from chain_test_session.errors import (
    BreadcrumbNotFoundError,
    InteractionNotFoundError,
    InteractionOutputAlreadySetError,
    StoreClosedError,
)
from chain_test_session.models import (
    AccountSnapshotRecord,
    BlockCoordinates,
    BreadcrumbRecord,
    EventRecord,
    InteractionRecord,
    ScopeSummary,
)
from chain_test_session.serialization import deserialize_item, serialize_item


class MemorySessionStore:
    """Ephemeral in-memory store.  Useful for tests and short-lived processes.

    Payloads go through the same text codec as the SQLite store, so records
    read back are detached copies with identical round-trip behaviour.
    """

    def __init__(self) -> None:
        self._next_id = 0
        # (scope, name) -> breadcrumb
        self._breadcrumbs: dict[tuple[str, str], BreadcrumbRecord] = {}
        # interaction_id -> interaction
        self._interactions: dict[int, InteractionRecord] = {}
        self._snapshots: list[AccountSnapshotRecord] = []
        self._events: list[EventRecord] = []
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Memory store is closed")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # -- Breadcrumbs -------------------------------------------------------

    async def upsert_breadcrumb(self, scope: str, name: str, type: str, payload: Any) -> None:
        self._check_open()
        existing = self._breadcrumbs.get((scope, name))
        self._breadcrumbs[(scope, name)] = BreadcrumbRecord(
            id=existing.id if existing is not None else self._new_id(),
            scope=scope,
            name=name,
            type=type,
            payload=serialize_item(payload),
        )

    async def get_breadcrumb(self, scope: str, name: str) -> BreadcrumbRecord:
        self._check_open()
        record = self._breadcrumbs.get((scope, name))
        if record is None:
            raise BreadcrumbNotFoundError(scope, name)
        return _thaw_breadcrumb(record)

    async def list_breadcrumbs(self, scope: str) -> list[BreadcrumbRecord]:
        self._check_open()
        records = [b for (s, _), b in self._breadcrumbs.items() if s == scope]
        records.sort(key=lambda b: b.id)
        return [_thaw_breadcrumb(b) for b in records]

    async def list_breadcrumbs_by_type(self, scope: str, type: str) -> list[BreadcrumbRecord]:
        return [b for b in await self.list_breadcrumbs(scope) if b.type == type]

    # -- Interactions ------------------------------------------------------

    async def insert_interaction(self, scope: str, record: InteractionRecord) -> int:
        self._check_open()
        interaction_id = self._new_id()
        self._interactions[interaction_id] = record.model_copy(
            update={
                "id": interaction_id,
                "scope": scope,
                "input": serialize_item(record.input),
                "transfers": serialize_item(record.transfers),
                "output": None,
            }
        )
        return interaction_id

    async def set_interaction_output(
        self,
        interaction_id: int,
        output: Any,
        block: BlockCoordinates | None = None,
    ) -> None:
        self._check_open()
        record = self._interactions.get(interaction_id)
        if record is None:
            raise InteractionNotFoundError(interaction_id)
        if record.output is not None:
            raise InteractionOutputAlreadySetError(interaction_id)
        update = {"output": serialize_item(output)}
        if block is not None:
            update.update(block.model_dump())
        self._interactions[interaction_id] = record.model_copy(update=update)

    async def get_interaction(self, interaction_id: int) -> InteractionRecord:
        self._check_open()
        record = self._interactions.get(interaction_id)
        if record is None:
            raise InteractionNotFoundError(interaction_id)
        return _thaw_interaction(record)

    async def list_interactions(self, scope: str) -> list[InteractionRecord]:
        self._check_open()
        return [_thaw_interaction(r) for _, r in sorted(self._interactions.items()) if r.scope == scope]

    # -- Account snapshots -------------------------------------------------

    async def insert_account_snapshot(self, scope: str, record: AccountSnapshotRecord) -> None:
        self._check_open()
        self._snapshots.append(record.model_copy(update={"id": self._new_id(), "scope": scope}, deep=True))

    async def list_account_snapshots(self, scope: str, address: str | None = None) -> list[AccountSnapshotRecord]:
        self._check_open()
        return [
            s.model_copy(deep=True)
            for s in self._snapshots
            if s.scope == scope and (address is None or s.address == address)
        ]

    # -- Events ------------------------------------------------------------

    async def insert_event(self, scope: str, record: EventRecord) -> None:
        self._check_open()
        self._events.append(
            record.model_copy(
                update={
                    "id": self._new_id(),
                    "scope": scope,
                    "payload": serialize_item(record.payload),
                }
            )
        )

    async def list_events(self, scope: str, interaction: int | None = None) -> list[EventRecord]:
        self._check_open()
        return [
            e.model_copy(update={"payload": deserialize_item(e.payload)})
            for e in self._events
            if e.scope == scope and (interaction is None or e.interaction == interaction)
        ]

    # -- Scopes ------------------------------------------------------------

    async def list_scopes(self) -> list[ScopeSummary]:
        self._check_open()
        counts: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for scope, _ in self._breadcrumbs:
            counts[scope]["breadcrumbs"] += 1
        for record in self._interactions.values():
            counts[record.scope]["interactions"] += 1
        for snapshot in self._snapshots:
            counts[snapshot.scope]["account_snapshots"] += 1
        for event in self._events:
            counts[event.scope]["events"] += 1
        return [ScopeSummary(scope=scope, **dict(c)) for scope, c in sorted(counts.items())]

    # -- Lifecycle ---------------------------------------------------------

    async def close(self) -> None:
        self._closed = True

    async def destroy(self) -> None:
        self._breadcrumbs.clear()
        self._interactions.clear()
        self._snapshots.clear()
        self._events.clear()
        self._closed = True


def _thaw_breadcrumb(record: BreadcrumbRecord) -> BreadcrumbRecord:
    return record.model_copy(update={"payload": deserialize_item(record.payload)})


def _thaw_interaction(record: InteractionRecord) -> InteractionRecord:
    return record.model_copy(
        update={
            "input": deserialize_item(record.input),
            "transfers": deserialize_item(record.transfers),
            "output": deserialize_item(record.output),
        }
    )
