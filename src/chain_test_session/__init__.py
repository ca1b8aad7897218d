"""chain-test-session: scoped, persistent state for smart contract test sessions."""

from chain_test_session._version import __version__
from chain_test_session.errors import (
    AwaitTimeoutError,
    BadConfigError,
    BreadcrumbNotFoundError,
    ConfigNotFoundError,
    NotFoundError,
    StoreOpenError,
)
from chain_test_session.interactor import InteractionRunner
from chain_test_session.models import (
    AccountSnapshotRecord,
    BlockCoordinates,
    BreadcrumbRecord,
    EventRecord,
    InteractionRecord,
    SessionConfig,
    Token,
)
from chain_test_session.session import TestSession
from chain_test_session.store.sqlite_store import SqliteSessionStore

__all__ = [
    "__version__",
    "TestSession",
    "InteractionRunner",
    "SqliteSessionStore",
    "SessionConfig",
    "Token",
    "BreadcrumbRecord",
    "InteractionRecord",
    "AccountSnapshotRecord",
    "BlockCoordinates",
    "EventRecord",
    "ConfigNotFoundError",
    "BadConfigError",
    "StoreOpenError",
    "NotFoundError",
    "BreadcrumbNotFoundError",
    "AwaitTimeoutError",
]
