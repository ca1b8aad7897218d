"""Exception hierarchy for chain-test-session."""


class ChainTestSessionError(Exception):
    """Base exception for chain-test-session errors."""


class ConfigNotFoundError(ChainTestSessionError):
    """Raised when no session config file exists next to or above the folder."""

    def __init__(self, session_name: str, searched: list[str]) -> None:
        super().__init__(f"Config of session [{session_name}] not found, searched: {', '.join(searched)}")
        self.session_name = session_name
        self.searched = searched


class BadConfigError(ChainTestSessionError):
    """Raised when a session config is unreadable, incomplete or invalid."""

    def __init__(self, session_name: str, reason: str) -> None:
        super().__init__(f"Bad config of session [{session_name}]: {reason}")
        self.session_name = session_name
        self.reason = reason


class StoreOpenError(ChainTestSessionError):
    """Raised when the backing store cannot be created or opened."""


class StoreClosedError(ChainTestSessionError):
    """Raised when a store is used after ``close()`` or ``destroy()``."""


class NotFoundError(ChainTestSessionError):
    """Raised when a record addressed by identity does not exist."""


class BreadcrumbNotFoundError(NotFoundError):
    def __init__(self, scope: str, name: str) -> None:
        super().__init__(f"Breadcrumb [{name}] not found in scope [{scope}]")
        self.scope = scope
        self.name = name


class InteractionNotFoundError(NotFoundError):
    def __init__(self, interaction_id: int) -> None:
        super().__init__(f"Interaction {interaction_id} not found")
        self.interaction_id = interaction_id


class InteractionOutputAlreadySetError(ChainTestSessionError):
    """Raised when the output of an interaction is written a second time."""

    def __init__(self, interaction_id: int) -> None:
        super().__init__(f"Output of interaction {interaction_id} is already set")
        self.interaction_id = interaction_id


class AwaitTimeoutError(ChainTestSessionError):
    """Raised when a transaction does not complete within the watcher timeout."""

    def __init__(self, transaction_hash: str, timeout: float, last_status: str | None = None) -> None:
        super().__init__(
            f"Transaction {transaction_hash} not completed after {timeout:.1f}s (last status: {last_status or 'unknown'})"
        )
        self.transaction_hash = transaction_hash
        self.timeout = timeout
        self.last_status = last_status


class NetworkConfigNotSyncedError(ChainTestSessionError):
    """Raised when the network config is read before ``sync_network_config()``."""


class SessionDestroyedError(ChainTestSessionError):
    """Raised when a session is used after ``destroy()``."""


class NetworkProviderError(ChainTestSessionError):
    """Raised when a network provider answers with an error."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"Request to {url} failed: {message}")
        self.url = url
        self.message = message
        self.status_code = status_code
