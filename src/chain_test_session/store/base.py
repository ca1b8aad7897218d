"""SessionStore protocol: the abstract interface for session persistence."""

from typing import Any, Protocol

from chain_test_session.models import (
    AccountSnapshotRecord,
    BlockCoordinates,
    BreadcrumbRecord,
    EventRecord,
    InteractionRecord,
    ScopeSummary,
)


class SessionStore(Protocol):
    """Scoped storage backend for one test session.

    Implementations must be async.  Breadcrumbs are upserted by
    ``(scope, name)``; interactions, account snapshots and events are
    append-only and listed in insertion order.
    """

    async def upsert_breadcrumb(self, scope: str, name: str, type: str, payload: Any) -> None:
        """Insert a breadcrumb, or replace type and payload of the existing one."""
        ...

    async def get_breadcrumb(self, scope: str, name: str) -> BreadcrumbRecord:
        """Raises ``BreadcrumbNotFoundError`` when absent."""
        ...

    async def list_breadcrumbs(self, scope: str) -> list[BreadcrumbRecord]: ...

    async def list_breadcrumbs_by_type(self, scope: str, type: str) -> list[BreadcrumbRecord]: ...

    async def insert_interaction(self, scope: str, record: InteractionRecord) -> int:
        """Append an interaction (output left unset) and return its id."""
        ...

    async def set_interaction_output(
        self,
        interaction_id: int,
        output: Any,
        block: BlockCoordinates | None = None,
    ) -> None:
        """Attach the output of an interaction.  Allowed once per interaction.

        When *block* is given, the block coordinates are written in the same
        update; otherwise they keep their insert-time values.
        """
        ...

    async def get_interaction(self, interaction_id: int) -> InteractionRecord: ...

    async def list_interactions(self, scope: str) -> list[InteractionRecord]: ...

    async def insert_account_snapshot(self, scope: str, record: AccountSnapshotRecord) -> None: ...

    async def list_account_snapshots(self, scope: str, address: str | None = None) -> list[AccountSnapshotRecord]: ...

    async def insert_event(self, scope: str, record: EventRecord) -> None: ...

    async def list_events(self, scope: str, interaction: int | None = None) -> list[EventRecord]: ...

    async def list_scopes(self) -> list[ScopeSummary]: ...

    async def close(self) -> None:
        """Release any resources held by the store."""
        ...

    async def destroy(self) -> None:
        """Close the store and irreversibly delete its contents."""
        ...
