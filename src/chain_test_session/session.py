"""Test sessions: one chain client, one user registry, one store per named run.

A session named ``alpha`` is configured by ``alpha.session.json`` (looked up in
the given folder, then in its parent) and records everything in
``alpha.session.sqlite`` next to that config file, under the scope ``alpha``.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from chain_test_session.errors import (
    BadConfigError,
    ConfigNotFoundError,
    NetworkConfigNotSyncedError,
    SessionDestroyedError,
)
from chain_test_session.event_log import EventLog
from chain_test_session.interactor import InteractionRunner
from chain_test_session.models import (
    AccountSnapshotRecord,
    NetworkConfig,
    NetworkProviderConfig,
    SessionConfig,
    Token,
)
from chain_test_session.network.api import ApiNetworkProvider
from chain_test_session.network.base import ChainClient
from chain_test_session.network.proxy import ProxyNetworkProvider
from chain_test_session.network.watcher import TransactionWatcher
from chain_test_session.report import Report
from chain_test_session.snapshots import SnapshottingService
from chain_test_session.store.base import SessionStore
from chain_test_session.store.sqlite_store import SqliteSessionStore
from chain_test_session.users import BunchOfUsers, TestUser

logger = logging.getLogger(__name__)

TYPE_TOKEN = "token"
TYPE_ADDRESS = "address"
TYPE_ARBITRARY_BREADCRUMB = "breadcrumb"

CONFIG_SUFFIX = ".session.json"
STORE_SUFFIX = ".session.sqlite"

_PROVIDERS = {
    "ProxyNetworkProvider": ProxyNetworkProvider,
    "ApiNetworkProvider": ApiNetworkProvider,
}


# ------------------------------------------------------------------
# Config loading
# ------------------------------------------------------------------


def find_session_config_file(session_name: str, folder: str | Path) -> Path:
    """Return ``<folder>/<name>.session.json``, falling back to the parent folder."""
    folder = Path(folder).resolve()
    candidates = [folder / f"{session_name}{CONFIG_SUFFIX}", folder.parent / f"{session_name}{CONFIG_SUFFIX}"]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(session_name, [str(c) for c in candidates])


def load_session_config(session_name: str, path: Path) -> SessionConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise BadConfigError(session_name, f"cannot read {path}: {exc}") from exc
    try:
        return SessionConfig.model_validate(data)
    except ValidationError as exc:
        raise BadConfigError(session_name, str(exc)) from exc


def create_network_provider(session_name: str, config: NetworkProviderConfig) -> ChainClient:
    if not config.url:
        raise BadConfigError(session_name, "missing networkProvider.url")
    if not config.type:
        raise BadConfigError(session_name, "missing networkProvider.type")

    provider_class = _PROVIDERS.get(config.type)
    if provider_class is None:
        raise BadConfigError(session_name, f"bad networkProvider.type: {config.type}")

    timeout = config.timeout / 1000.0 if config.timeout is not None else None
    return provider_class(config.url, timeout=timeout)


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------


class TestSession:
    """One named test run.

    Use :meth:`load` to build a session from its config file; the constructor
    accepts ready-made collaborators (tests pass a fake chain client and an
    in-memory store).
    """

    __test__ = False  # not a pytest class

    def __init__(
        self,
        *,
        name: str,
        config: SessionConfig,
        client: ChainClient,
        users: BunchOfUsers,
        store: SessionStore,
        base_folder: str | Path = ".",
    ) -> None:
        self.name = name
        self.config = config
        self.client = client
        self.users = users
        self.store = store
        self.base_folder = Path(base_folder)
        self.snapshots = SnapshottingService(client, store)
        self.log = EventLog(name, store)
        self._network_config: NetworkConfig | None = None
        self._released: str | None = None

    @property
    def scope(self) -> str:
        return self.name

    @classmethod
    async def load(cls, session_name: str, folder: str | Path) -> "TestSession":
        config_file = find_session_config_file(session_name, folder)
        config = load_session_config(session_name, config_file)
        logger.info("Loading session [%s] from %s", session_name, config_file)

        client = create_network_provider(session_name, config.network_provider)
        try:
            users = BunchOfUsers.from_config(config.users)
            store = await SqliteSessionStore.open(str(config_file.parent / f"{session_name}{STORE_SUFFIX}"))
        except Exception:
            await client.close()
            raise

        return cls(
            name=session_name,
            config=config,
            client=client,
            users=users,
            store=store,
            base_folder=config_file.parent,
        )

    def _ensure_alive(self) -> None:
        if self._released is not None:
            raise SessionDestroyedError(f"Session [{self.name}] is {self._released}")

    # -- Network -----------------------------------------------------------

    async def sync_network_config(self) -> NetworkConfig:
        self._ensure_alive()
        self._network_config = await self.client.get_network_config()
        logger.info("Session [%s] synced network config: chain %s", self.name, self._network_config.chain_id)
        return self._network_config

    @property
    def network_config(self) -> NetworkConfig:
        self._ensure_alive()
        if self._network_config is None:
            raise NetworkConfigNotSyncedError(f"Session [{self.name}]: call sync_network_config() first")
        return self._network_config

    async def sync_users(self, users: list[TestUser] | None = None) -> None:
        """Refresh nonce and balance of *users* (default: all) concurrently."""
        self._ensure_alive()
        targets = self.users.get_all() if users is None else users
        await asyncio.gather(*(user.sync(self.client) for user in targets))

    # -- Breadcrumbs -------------------------------------------------------

    async def save_address(self, name: str, address: str) -> None:
        self._ensure_alive()
        logger.info("TestSession.save_address(): name = [%s], address = %s", name, address)
        await self.store.upsert_breadcrumb(self.scope, name, TYPE_ADDRESS, address)

    async def load_address(self, name: str) -> str:
        self._ensure_alive()
        breadcrumb = await self.store.get_breadcrumb(self.scope, name)
        return _decode_address(breadcrumb.payload)

    async def save_token(self, name: str, token: Token) -> None:
        self._ensure_alive()
        logger.info("TestSession.save_token(): name = [%s], token = %s", name, token.identifier)
        await self.store.upsert_breadcrumb(self.scope, name, TYPE_TOKEN, token)

    async def load_token(self, name: str) -> Token:
        self._ensure_alive()
        breadcrumb = await self.store.get_breadcrumb(self.scope, name)
        return Token.model_validate(breadcrumb.payload)

    async def save_breadcrumb(self, name: str, value: Any, type: str | None = None) -> None:
        self._ensure_alive()
        logger.info("TestSession.save_breadcrumb(): name = [%s], type = %s", name, type)
        await self.store.upsert_breadcrumb(self.scope, name, type or TYPE_ARBITRARY_BREADCRUMB, value)

    async def load_breadcrumb(self, name: str, as_type: Any = None) -> Any:
        """Return the payload of *name*, validated into *as_type* when given."""
        self._ensure_alive()
        breadcrumb = await self.store.get_breadcrumb(self.scope, name)
        if as_type is None:
            return breadcrumb.payload
        return TypeAdapter(as_type).validate_python(breadcrumb.payload)

    async def load_breadcrumbs_by_type(self, type: str) -> list[Any]:
        self._ensure_alive()
        breadcrumbs = await self.store.list_breadcrumbs_by_type(self.scope, type)
        return [b.payload for b in breadcrumbs]

    # -- Snapshots & interactions -----------------------------------------

    async def take_snapshots_of_account(
        self,
        address: str,
        before: int | None = None,
        after: int | None = None,
    ) -> AccountSnapshotRecord:
        self._ensure_alive()
        return await self.snapshots.take_snapshots_of_account(self.scope, address, before=before, after=after)

    def create_interaction_runner(self, watcher: TransactionWatcher | None = None) -> InteractionRunner:
        self._ensure_alive()
        return InteractionRunner(
            scope=self.scope,
            client=self.client,
            store=self.store,
            snapshots=self.snapshots,
            log=self.log,
            watcher=watcher,
        )

    # -- Reporting & teardown ---------------------------------------------

    async def generate_report(self, tag: str | None = None) -> Path:
        self._ensure_alive()
        report = Report(self.config.reporting, self.store, self.scope, base_folder=self.base_folder)
        await report.prepare()
        return await report.generate(tag)

    async def close(self) -> None:
        """Release the chain client and the store; the store file is kept."""
        if self._released is not None:
            return
        self._released = "closed"
        await self.client.close()
        await self.store.close()

    async def destroy(self) -> None:
        """Delete the store.  Works on a closed session; unusable afterwards."""
        if self._released == "destroyed":
            raise SessionDestroyedError(f"Session [{self.name}] is destroyed")
        if self._released is None:
            await self.client.close()
        self._released = "destroyed"
        await self.store.destroy()
        logger.info("Session [%s] destroyed", self.name)


def _decode_address(payload: Any) -> str:
    if not isinstance(payload, str) or "1" not in payload:
        raise ValueError(f"Not an address: {payload!r}")
    return payload
