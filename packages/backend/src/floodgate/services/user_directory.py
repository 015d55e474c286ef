"""User directory — user records, credential checks, bootstrap detection.

Learn: Service layer separates business logic from HTTP routing. Routes
(and the gateway) call the directory, the directory calls the database.
The directory itself never talks to the service lifecycle; the gateway
pairs each mutation with the matching lifecycle hook.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from floodgate.auth.password import burn_password_check, hash_password, verify_password
from floodgate.config import settings
from floodgate.db.models import ConnectionTarget, NetworkTarget, UnixSocketTarget, User
from floodgate.errors import ConflictError, NotFoundError, StorageError

logger = structlog.get_logger()

CONFIG_USERNAME = "_config"

# Usernames double as directory names for the settings stores.
USERNAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$"
_USERNAME_RE = re.compile(USERNAME_PATTERN)


class GateState(enum.Enum):
    BOOTSTRAP = "bootstrap"  # no users yet — registration is open
    STEADY = "steady"


@dataclass(frozen=True)
class PasswordCheck:
    matched: bool
    is_admin: bool


@dataclass(frozen=True)
class UserPatch:
    """Fields an admin may change. Username is immutable."""
    connection: Optional[ConnectionTarget] = None
    is_admin: Optional[bool] = None


def get_config_user() -> User:
    """The single pseudo-user used when users and auth are disabled."""
    user = User(username=CONFIG_USERNAME, password_hash="", is_admin=True)
    if settings.client_socket_path:
        user.connection = UnixSocketTarget(path=settings.client_socket_path)
    else:
        user.connection = NetworkTarget(host=settings.client_host, port=settings.client_port)
    return user


class UserDirectory:
    """CRUD and credential checks for user records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Bootstrap ──────────────────────────────────────

    async def count_users(self) -> int:
        try:
            result = await self.db.execute(select(func.count()).select_from(User))
        except SQLAlchemyError as e:
            raise StorageError("Could not read users") from e
        return result.scalar_one()

    async def initial_user_gate(self) -> GateState:
        if await self.count_users() == 0:
            return GateState.BOOTSTRAP
        return GateState.STEADY

    # ─── Lookup ─────────────────────────────────────────

    async def lookup_user(self, username: str) -> Optional[User]:
        try:
            return await self.db.get(User, username)
        except SQLAlchemyError as e:
            raise StorageError("Could not read users") from e

    async def list_users(self) -> list[User]:
        try:
            result = await self.db.execute(select(User).order_by(User.username))
        except SQLAlchemyError as e:
            raise StorageError("Could not read users") from e
        return list(result.scalars().all())

    # ─── Credentials ────────────────────────────────────

    async def compare_password(self, username: str, password: str) -> PasswordCheck:
        """Check a password against the stored hash.

        Unknown usernames raise NotFoundError, but only after the same
        bcrypt work a real check costs.
        """
        user = await self.lookup_user(username)
        if user is None:
            burn_password_check(password)
            raise NotFoundError(f"User '{username}' not found")
        matched = verify_password(password, user.password_hash)
        return PasswordCheck(matched=matched, is_admin=bool(user.is_admin))

    # ─── Mutations ──────────────────────────────────────

    async def create_user(
        self,
        username: str,
        password: str,
        connection: ConnectionTarget,
        is_admin: bool = False,
    ) -> User:
        if not _USERNAME_RE.fullmatch(username):
            raise ValueError(f"Invalid username: {username!r}")
        if await self.lookup_user(username) is not None:
            raise ConflictError(f"Username '{username}' already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            is_admin=is_admin,
        )
        user.connection = connection
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same username.
            await self.db.rollback()
            raise ConflictError(f"Username '{username}' already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Could not save user") from e

        await self.db.refresh(user)
        logger.info("user.created", username=username, is_admin=is_admin)
        return user

    async def update_user(self, username: str, patch: UserPatch) -> User:
        user = await self.lookup_user(username)
        if user is None:
            raise NotFoundError(f"User '{username}' not found")

        if patch.connection is not None:
            user.connection = patch.connection
        if patch.is_admin is not None:
            user.is_admin = patch.is_admin

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Could not save user") from e

        await self.db.refresh(user)
        logger.info("user.updated", username=username)
        return user

    async def remove_user(self, username: str) -> User:
        """Delete a user and return the removed record.

        The last remaining user can't be removed: once bootstrapped, the
        directory never goes back to accepting open registration.
        """
        user = await self.lookup_user(username)
        if user is None:
            raise NotFoundError(f"User '{username}' not found")
        if await self.count_users() <= 1:
            raise ConflictError("Cannot remove the last user")

        try:
            await self.db.delete(user)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Could not remove user") from e

        logger.info("user.removed", username=username)
        return user
