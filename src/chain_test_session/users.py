"""Test users declared in the session config."""

import logging
from collections.abc import Iterator

from chain_test_session.models import UserConfig
from chain_test_session.network.base import ChainClient

logger = logging.getLogger(__name__)


class TestUser:
    """A named account with a locally tracked nonce.

    Signing is left to the caller; the user only knows its address and the
    account state last seen on the network.
    """

    __test__ = False  # not a pytest class

    def __init__(self, name: str, address: str) -> None:
        self.name = name
        self.address = address
        self.nonce = 0
        self.balance = 0
        self.synced = False

    async def sync(self, client: ChainClient) -> None:
        account = await client.get_account(self.address)
        self.nonce = account.nonce
        self.balance = account.balance
        self.synced = True
        logger.debug("Synced user %s: nonce=%d balance=%d", self.name, self.nonce, self.balance)

    def get_nonce_then_increment(self) -> int:
        nonce = self.nonce
        self.nonce += 1
        return nonce

    def __repr__(self) -> str:
        return f"TestUser(name={self.name!r}, address={self.address!r})"


class BunchOfUsers:
    """Registry of the session's users, addressable by name."""

    def __init__(self, users: list[TestUser]) -> None:
        self._users: dict[str, TestUser] = {}
        for user in users:
            if user.name in self._users:
                raise ValueError(f"Duplicate user name: {user.name}")
            self._users[user.name] = user

    @classmethod
    def from_config(cls, configs: list[UserConfig]) -> "BunchOfUsers":
        return cls([TestUser(c.name, c.address) for c in configs])

    def get(self, name: str) -> TestUser:
        try:
            return self._users[name]
        except KeyError:
            raise KeyError(f"Unknown user: {name}") from None

    def get_all(self) -> list[TestUser]:
        return list(self._users.values())

    def __iter__(self) -> Iterator[TestUser]:
        return iter(self._users.values())

    def __len__(self) -> int:
        return len(self._users)
