"""SQLite-backed session store.

One file holds the records of any number of scopes; a test session normally
owns one file (``<session>.session.sqlite``) and uses its name as the scope.
Breadcrumbs are upserted through a ``UNIQUE(scope, name)`` constraint, so the
lookup-then-write happens in a single statement.
"""

import logging
import os
import sqlite3
from typing import Any

import aiosqlite

from chain_test_session.errors import (
    BreadcrumbNotFoundError,
    InteractionNotFoundError,
    InteractionOutputAlreadySetError,
    StoreClosedError,
    StoreOpenError,
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

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_TABLES = ("breadcrumb", "interaction", "account_snapshot", "event")

_SCHEMA = (
    """
    CREATE TABLE breadcrumb (
        id      INTEGER PRIMARY KEY AUTOINCREMENT,
        scope   TEXT NOT NULL,
        name    TEXT NOT NULL,
        type    TEXT NOT NULL,
        payload TEXT NOT NULL,
        UNIQUE (scope, name)
    )
    """,
    """
    CREATE TABLE interaction (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        scope            TEXT NOT NULL,
        action           TEXT NOT NULL,
        user             TEXT NOT NULL,
        contract         TEXT NOT NULL,
        transaction_hash TEXT NOT NULL,
        timestamp        INTEGER NOT NULL,
        round            INTEGER NOT NULL,
        epoch            INTEGER NOT NULL,
        block_nonce      INTEGER NOT NULL,
        hyperblock_nonce INTEGER NOT NULL,
        input            TEXT NOT NULL,
        transfers        TEXT NOT NULL,
        output           TEXT NULL
    )
    """,
    """
    CREATE TABLE account_snapshot (
        id                       INTEGER PRIMARY KEY AUTOINCREMENT,
        scope                    TEXT NOT NULL,
        address                  TEXT NOT NULL,
        nonce                    INTEGER NOT NULL,
        balance                  TEXT NOT NULL,
        fungible_tokens          TEXT NOT NULL,
        non_fungible_tokens      TEXT NOT NULL,
        taken_before_interaction INTEGER NULL,
        taken_after_interaction  INTEGER NULL
    )
    """,
    """
    CREATE TABLE event (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        scope       TEXT NOT NULL,
        kind        TEXT NOT NULL,
        summary     TEXT NOT NULL,
        payload     TEXT NOT NULL,
        interaction INTEGER NULL
    )
    """,
    "CREATE INDEX idx_interaction_scope ON interaction(scope, id)",
    "CREATE INDEX idx_snapshot_scope ON account_snapshot(scope, address, id)",
    "CREATE INDEX idx_event_scope ON event(scope, id)",
)


class SqliteSessionStore:
    """Persistent session store backed by a single SQLite file.

    Uses a single persistent connection for the lifetime of the store
    (single-process, single-writer).  Open it with :meth:`open`, which creates
    the schema on a new or empty file and rejects files written by an
    incompatible schema.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = os.path.expanduser(db_path)
        self._busy_timeout_ms = 20_000
        self._conn: aiosqlite.Connection | None = None
        self._closed = False

    @classmethod
    async def open(cls, db_path: str) -> "SqliteSessionStore":
        """Create or open the store at *db_path*."""
        store = cls(db_path)
        await store._get_conn()
        return store

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _get_conn(self) -> aiosqlite.Connection:
        """Return the persistent connection, initializing on first call."""
        if self._closed:
            raise StoreClosedError(f"Store {self.db_path} is closed")
        if self._conn is None:
            self._conn = await self._connect()
        return self._conn

    async def _connect(self) -> aiosqlite.Connection:
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            try:
                os.makedirs(db_dir, exist_ok=True)
            except OSError as exc:
                raise StoreOpenError(f"Cannot create directory {db_dir}: {exc}") from exc
        if os.path.exists(self.db_path) and not os.access(self.db_path, os.W_OK):
            raise StoreOpenError(f"Store file {self.db_path} is not writable")

        try:
            conn = await aiosqlite.connect(self.db_path, timeout=self._busy_timeout_ms / 1000.0)
        except sqlite3.Error as exc:
            raise StoreOpenError(f"Cannot open store {self.db_path}: {exc}") from exc

        try:
            conn.row_factory = aiosqlite.Row
            for pragma in (
                "PRAGMA journal_mode=DELETE",
                "PRAGMA synchronous=NORMAL",
                f"PRAGMA busy_timeout={self._busy_timeout_ms}",
            ):
                await conn.execute(pragma)
            await self._ensure_schema(conn)
        except sqlite3.Error as exc:
            await conn.close()
            raise StoreOpenError(f"Cannot open store {self.db_path}: {exc}") from exc
        except StoreOpenError:
            await conn.close()
            raise
        return conn

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("PRAGMA user_version") as cur:
            row = await cur.fetchone()
        version = row[0] if row else 0
        async with conn.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name != 'sqlite_sequence'") as cur:
            tables = {r[0] for r in await cur.fetchall()}

        if not tables and version == 0:
            logger.debug("Creating schema v%d in %s", SCHEMA_VERSION, self.db_path)
            for statement in _SCHEMA:
                await conn.execute(statement)
            await conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
            await conn.commit()
            return

        if version != SCHEMA_VERSION:
            raise StoreOpenError(f"Store {self.db_path} has schema version {version}, expected {SCHEMA_VERSION}")
        missing = [t for t in _TABLES if t not in tables]
        if missing:
            raise StoreOpenError(f"Store {self.db_path} is missing tables: {', '.join(missing)}")

    async def close(self) -> None:
        """Close the persistent connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        self._closed = True

    async def destroy(self) -> None:
        """Close the connection and delete the backing file."""
        await self.close()
        for path in (self.db_path, f"{self.db_path}-journal"):
            if os.path.exists(path):
                os.remove(path)
        logger.info("Destroyed store %s", self.db_path)

    # ------------------------------------------------------------------
    # Breadcrumbs
    # ------------------------------------------------------------------

    async def upsert_breadcrumb(self, scope: str, name: str, type: str, payload: Any) -> None:
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT INTO breadcrumb (scope, name, type, payload)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (scope, name) DO UPDATE SET
                type = excluded.type,
                payload = excluded.payload
            """,
            (scope, name, type, serialize_item(payload)),
        )
        await conn.commit()

    async def get_breadcrumb(self, scope: str, name: str) -> BreadcrumbRecord:
        conn = await self._get_conn()
        async with conn.execute("SELECT * FROM breadcrumb WHERE scope = ? AND name = ?", (scope, name)) as cur:
            row = await cur.fetchone()
        if row is None:
            raise BreadcrumbNotFoundError(scope, name)
        return _hydrate_breadcrumb(row)

    async def list_breadcrumbs(self, scope: str) -> list[BreadcrumbRecord]:
        conn = await self._get_conn()
        async with conn.execute("SELECT * FROM breadcrumb WHERE scope = ? ORDER BY id ASC", (scope,)) as cur:
            rows = await cur.fetchall()
        return [_hydrate_breadcrumb(r) for r in rows]

    async def list_breadcrumbs_by_type(self, scope: str, type: str) -> list[BreadcrumbRecord]:
        conn = await self._get_conn()
        async with conn.execute(
            "SELECT * FROM breadcrumb WHERE scope = ? AND type = ? ORDER BY id ASC",
            (scope, type),
        ) as cur:
            rows = await cur.fetchall()
        return [_hydrate_breadcrumb(r) for r in rows]

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    async def insert_interaction(self, scope: str, record: InteractionRecord) -> int:
        conn = await self._get_conn()
        cur = await conn.execute(
            """
            INSERT INTO interaction (
                scope, action, user, contract, transaction_hash, timestamp,
                round, epoch, block_nonce, hyperblock_nonce, input, transfers, output
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL)
            """,
            (
                scope,
                record.action,
                record.user_address,
                record.contract_address,
                record.transaction_hash,
                record.timestamp,
                record.round,
                record.epoch,
                record.block_nonce,
                record.hyperblock_nonce,
                serialize_item(record.input),
                serialize_item(record.transfers),
            ),
        )
        await conn.commit()
        interaction_id = cur.lastrowid
        await cur.close()
        return int(interaction_id)

    async def set_interaction_output(
        self,
        interaction_id: int,
        output: Any,
        block: BlockCoordinates | None = None,
    ) -> None:
        conn = await self._get_conn()
        if block is None:
            cur = await conn.execute(
                "UPDATE interaction SET output = ? WHERE id = ? AND output IS NULL",
                (serialize_item(output), interaction_id),
            )
        else:
            cur = await conn.execute(
                """
                UPDATE interaction
                SET output = ?, timestamp = ?, round = ?, epoch = ?, block_nonce = ?, hyperblock_nonce = ?
                WHERE id = ? AND output IS NULL
                """,
                (
                    serialize_item(output),
                    block.timestamp,
                    block.round,
                    block.epoch,
                    block.block_nonce,
                    block.hyperblock_nonce,
                    interaction_id,
                ),
            )
        updated = cur.rowcount
        await cur.close()
        await conn.commit()
        if updated == 1:
            return

        async with conn.execute("SELECT 1 FROM interaction WHERE id = ?", (interaction_id,)) as check:
            exists = await check.fetchone()
        if exists is None:
            raise InteractionNotFoundError(interaction_id)
        raise InteractionOutputAlreadySetError(interaction_id)

    async def get_interaction(self, interaction_id: int) -> InteractionRecord:
        conn = await self._get_conn()
        async with conn.execute("SELECT * FROM interaction WHERE id = ?", (interaction_id,)) as cur:
            row = await cur.fetchone()
        if row is None:
            raise InteractionNotFoundError(interaction_id)
        return _hydrate_interaction(row)

    async def list_interactions(self, scope: str) -> list[InteractionRecord]:
        conn = await self._get_conn()
        async with conn.execute("SELECT * FROM interaction WHERE scope = ? ORDER BY id ASC", (scope,)) as cur:
            rows = await cur.fetchall()
        return [_hydrate_interaction(r) for r in rows]

    # ------------------------------------------------------------------
    # Account snapshots
    # ------------------------------------------------------------------

    async def insert_account_snapshot(self, scope: str, record: AccountSnapshotRecord) -> None:
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT INTO account_snapshot (
                scope, address, nonce, balance, fungible_tokens, non_fungible_tokens,
                taken_before_interaction, taken_after_interaction
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                scope,
                record.address,
                record.nonce,
                record.balance,
                serialize_item(record.fungible_tokens),
                serialize_item(record.non_fungible_tokens),
                record.taken_before_interaction,
                record.taken_after_interaction,
            ),
        )
        await conn.commit()

    async def list_account_snapshots(self, scope: str, address: str | None = None) -> list[AccountSnapshotRecord]:
        conn = await self._get_conn()
        sql = "SELECT * FROM account_snapshot WHERE scope = ?"
        params: list[Any] = [scope]
        if address is not None:
            sql += " AND address = ?"
            params.append(address)
        sql += " ORDER BY id ASC"
        async with conn.execute(sql, params) as cur:
            rows = await cur.fetchall()
        return [_hydrate_account_snapshot(r) for r in rows]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def insert_event(self, scope: str, record: EventRecord) -> None:
        conn = await self._get_conn()
        await conn.execute(
            "INSERT INTO event (scope, kind, summary, payload, interaction) VALUES (?, ?, ?, ?, ?)",
            (scope, record.kind, record.summary, serialize_item(record.payload), record.interaction),
        )
        await conn.commit()

    async def list_events(self, scope: str, interaction: int | None = None) -> list[EventRecord]:
        conn = await self._get_conn()
        sql = "SELECT * FROM event WHERE scope = ?"
        params: list[Any] = [scope]
        if interaction is not None:
            sql += " AND interaction = ?"
            params.append(interaction)
        sql += " ORDER BY id ASC"
        async with conn.execute(sql, params) as cur:
            rows = await cur.fetchall()
        return [_hydrate_event(r) for r in rows]

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    async def list_scopes(self) -> list[ScopeSummary]:
        conn = await self._get_conn()
        async with conn.execute(
            """
            SELECT scope,
                   SUM(CASE WHEN kind = 'breadcrumb' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN kind = 'interaction' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN kind = 'account_snapshot' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN kind = 'event' THEN 1 ELSE 0 END)
            FROM (
                SELECT scope, 'breadcrumb' AS kind FROM breadcrumb
                UNION ALL SELECT scope, 'interaction' FROM interaction
                UNION ALL SELECT scope, 'account_snapshot' FROM account_snapshot
                UNION ALL SELECT scope, 'event' FROM event
            )
            GROUP BY scope
            ORDER BY scope ASC
            """
        ) as cur:
            rows = await cur.fetchall()
        return [
            ScopeSummary(
                scope=r[0],
                breadcrumbs=r[1],
                interactions=r[2],
                account_snapshots=r[3],
                events=r[4],
            )
            for r in rows
        ]


# ------------------------------------------------------------------
# Row hydration
# ------------------------------------------------------------------


def _hydrate_breadcrumb(row: aiosqlite.Row) -> BreadcrumbRecord:
    return BreadcrumbRecord(
        id=row["id"],
        scope=row["scope"],
        name=row["name"],
        type=row["type"],
        payload=deserialize_item(row["payload"]),
    )


def _hydrate_interaction(row: aiosqlite.Row) -> InteractionRecord:
    return InteractionRecord(
        id=row["id"],
        scope=row["scope"],
        action=row["action"],
        user_address=row["user"],
        contract_address=row["contract"],
        transaction_hash=row["transaction_hash"],
        timestamp=row["timestamp"],
        round=row["round"],
        epoch=row["epoch"],
        block_nonce=row["block_nonce"],
        hyperblock_nonce=row["hyperblock_nonce"],
        input=deserialize_item(row["input"]),
        transfers=deserialize_item(row["transfers"]),
        output=deserialize_item(row["output"]),
    )


def _hydrate_account_snapshot(row: aiosqlite.Row) -> AccountSnapshotRecord:
    return AccountSnapshotRecord(
        id=row["id"],
        scope=row["scope"],
        address=row["address"],
        nonce=row["nonce"],
        balance=row["balance"],
        fungible_tokens=deserialize_item(row["fungible_tokens"]),
        non_fungible_tokens=deserialize_item(row["non_fungible_tokens"]),
        taken_before_interaction=row["taken_before_interaction"],
        taken_after_interaction=row["taken_after_interaction"],
    )


def _hydrate_event(row: aiosqlite.Row) -> EventRecord:
    return EventRecord(
        id=row["id"],
        scope=row["scope"],
        kind=row["kind"],
        summary=row["summary"],
        payload=deserialize_item(row["payload"]),
        interaction=row["interaction"],
    )
