"""Service lifecycle — keeps each user's backend client service in step with
the user directory.

Learn: the objects that actually open a connection to a user's torrent
client live outside this package. The gateway only needs three hooks,
`create`, `update` and `destroy`, called right after the matching
directory change. `ServiceRegistry` is the in-process default: it tracks
one `UserService` per username (its connection target) and logs each
transition, which is enough for a single-node deployment and for tests.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from floodgate.db.models import ConnectionTarget, User

logger = structlog.get_logger()


class ServiceLifecycle(Protocol):
    async def create(self, user: User) -> None: ...

    async def update(self, user: User) -> None: ...

    async def destroy(self, user: User) -> None: ...


@dataclass
class UserService:
    username: str
    connection: Optional[ConnectionTarget]


class ServiceRegistry:
    """In-memory ServiceLifecycle: one UserService per username."""

    def __init__(self):
        self._services: dict[str, UserService] = {}

    def get(self, username: str) -> Optional[UserService]:
        return self._services.get(username)

    def __contains__(self, username: str) -> bool:
        return username in self._services

    def __len__(self) -> int:
        return len(self._services)

    async def create(self, user: User) -> None:
        if user.username in self._services:
            return
        self._services[user.username] = UserService(user.username, user.connection)
        logger.info("service.created", username=user.username, connection=repr(user.connection))

    async def update(self, user: User) -> None:
        service = self._services.get(user.username)
        if service is None:
            await self.create(user)
            return
        service.connection = user.connection
        logger.info("service.updated", username=user.username, connection=repr(user.connection))

    async def destroy(self, user: User) -> None:
        if self._services.pop(user.username, None) is not None:
            logger.info("service.destroyed", username=user.username)

    async def bootstrap(self, users: list[User]) -> None:
        """Start a service for every stored user (run once at startup)."""
        for user in users:
            await self.create(user)
        logger.info("service.bootstrapped", count=len(users))

    async def close(self) -> None:
        for username in list(self._services):
            self._services.pop(username)
        logger.info("service.registry_closed")
