"""SQLite-specific behaviour: file lifecycle and schema checks."""

import sqlite3

import pytest
from chain_test_session.errors import StoreOpenError
from chain_test_session.models import EventRecord, InteractionRecord
from chain_test_session.store.sqlite_store import SCHEMA_VERSION, SqliteSessionStore


class TestOpen:
    @pytest.mark.asyncio
    async def test_creates_file_and_schema(self, tmp_path):
        path = tmp_path / "nested" / "s1.session.sqlite"
        store = await SqliteSessionStore.open(str(path))
        await store.close()

        assert path.exists()
        conn = sqlite3.connect(path)
        try:
            tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
            version = conn.execute("PRAGMA user_version").fetchone()[0]
        finally:
            conn.close()
        assert {"breadcrumb", "interaction", "account_snapshot", "event"} <= tables
        assert version == SCHEMA_VERSION

    @pytest.mark.asyncio
    async def test_reopen_keeps_records(self, tmp_path):
        path = str(tmp_path / "s1.session.sqlite")
        store = await SqliteSessionStore.open(path)
        await store.upsert_breadcrumb("s1", "addr", "address", "erd1first")
        interaction_id = await store.insert_interaction(
            "s1",
            InteractionRecord(action="deploy", user_address="erd1alice", transaction_hash="ff"),
        )
        await store.close()

        reopened = await SqliteSessionStore.open(path)
        try:
            assert (await reopened.get_breadcrumb("s1", "addr")).payload == "erd1first"
            # Output attached after a restart still lands on the original row.
            await reopened.set_interaction_output(interaction_id, {"returnCode": "ok"})
            assert (await reopened.get_interaction(interaction_id)).output == {"returnCode": "ok"}
            next_id = await reopened.insert_interaction(
                "s1",
                InteractionRecord(action="add", user_address="erd1alice", transaction_hash="ee"),
            )
            assert next_id > interaction_id
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_foreign_schema_is_rejected(self, tmp_path):
        path = tmp_path / "foreign.sqlite"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE something_else (id INTEGER)")
        conn.commit()
        conn.close()

        with pytest.raises(StoreOpenError):
            await SqliteSessionStore.open(str(path))

    @pytest.mark.asyncio
    async def test_other_schema_version_is_rejected(self, tmp_path):
        path = str(tmp_path / "s1.session.sqlite")
        store = await SqliteSessionStore.open(path)
        await store.close()

        conn = sqlite3.connect(path)
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION + 1}")
        conn.commit()
        conn.close()

        with pytest.raises(StoreOpenError, match="schema version"):
            await SqliteSessionStore.open(path)

    @pytest.mark.asyncio
    async def test_not_a_database(self, tmp_path):
        path = tmp_path / "garbage.sqlite"
        path.write_text("this is definitely not a sqlite database\n" * 20)

        with pytest.raises(StoreOpenError):
            await SqliteSessionStore.open(str(path))

    @pytest.mark.asyncio
    async def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a folder")

        with pytest.raises(StoreOpenError):
            await SqliteSessionStore.open(str(blocker / "sub" / "s1.session.sqlite"))


class TestDestroy:
    @pytest.mark.asyncio
    async def test_removes_file(self, tmp_path):
        path = tmp_path / "s1.session.sqlite"
        store = await SqliteSessionStore.open(str(path))
        await store.insert_event("s1", EventRecord(kind="x"))
        assert path.exists()

        await store.destroy()
        assert not path.exists()
