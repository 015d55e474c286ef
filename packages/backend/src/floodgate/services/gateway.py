"""Authentication gateway — decides who a request is and what it may do.

Learn: every decision starts from the AuthMode. In BYPASSED mode
(`disable_users_and_auth`) there is exactly one identity, the config
pseudo-user, and it is an admin; nothing below that check runs. In
ENFORCED mode the flow is:

    no token ── initial-user gate ── BOOTSTRAP → register/verify allowed
        │                         └─ STEADY    → token required
    token ── verify signature/expiry ── look user up ── Identity(is_admin)
                                                          └─ admin gate

User mutations made through the gateway are paired with the service
lifecycle hook for that user (create/update/destroy), so a live client
connection is reconfigured or torn down as part of the same call.
"""

import enum
from dataclasses import dataclass
from typing import Optional

import structlog

from floodgate.auth.jwt import InvalidTokenError, TokenIssuer
from floodgate.config import settings
from floodgate.db.models import ConnectionTarget, User
from floodgate.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    ConflictError,
    NotFoundError,
)
from floodgate.services.lifecycle import ServiceLifecycle
from floodgate.services.user_directory import (
    GateState,
    UserDirectory,
    UserPatch,
    get_config_user,
)

logger = structlog.get_logger()

FAILED_LOGIN = "Failed login."
UNAUTHORIZED = "Unauthorized"


class AuthMode(enum.Enum):
    ENFORCED = "enforced"
    BYPASSED = "bypassed"

    @classmethod
    def from_settings(cls) -> "AuthMode":
        return cls.BYPASSED if settings.disable_users_and_auth else cls.ENFORCED


@dataclass(frozen=True)
class Identity:
    username: str
    is_admin: bool


@dataclass(frozen=True)
class Session:
    """A freshly issued token and who it belongs to."""
    token: str
    username: str
    is_admin: bool


@dataclass(frozen=True)
class Verification:
    initial_user: bool
    username: Optional[str] = None
    is_admin: Optional[bool] = None
    session: Optional[Session] = None


@dataclass(frozen=True)
class Registration:
    session: Session
    bootstrapped: bool  # True when this was the first user


class AuthGateway:
    def __init__(
        self,
        mode: AuthMode,
        directory: UserDirectory,
        tokens: TokenIssuer,
        lifecycle: ServiceLifecycle,
    ):
        self.mode = mode
        self.directory = directory
        self.tokens = tokens
        self.lifecycle = lifecycle

    @property
    def bypassed(self) -> bool:
        return self.mode is AuthMode.BYPASSED

    def _session(self, username: str, is_admin: bool) -> Session:
        token = self.tokens.issue(username, {"isAdmin": is_admin})
        return Session(token=token, username=username, is_admin=is_admin)

    # ─── Identity ───────────────────────────────────────

    async def resolve_identity(self, token: Optional[str]) -> Identity:
        """Turn a presented token into an Identity, or fail generically."""
        if self.bypassed:
            config_user = get_config_user()
            return Identity(username=config_user.username, is_admin=True)

        if not token:
            raise AuthenticationFailure(UNAUTHORIZED)
        try:
            payload = self.tokens.verify(token)
        except InvalidTokenError:
            raise AuthenticationFailure(UNAUTHORIZED)

        # The directory is the source of truth for the admin flag: a
        # demoted or deleted user loses access before their token expires.
        user = await self.directory.lookup_user(payload.subject)
        if user is None:
            raise AuthenticationFailure(UNAUTHORIZED)
        return Identity(username=user.username, is_admin=bool(user.is_admin))

    def require_admin(self, identity: Identity) -> Identity:
        if self.bypassed:
            # No user management when there is only one (pseudo) user.
            raise NotFoundError("Not found")
        if not identity.is_admin:
            raise AuthorizationFailure("Not authorized")
        return identity

    # ─── Open routes ────────────────────────────────────

    async def authenticate(self, username: Optional[str], password: Optional[str]) -> Session:
        if self.bypassed:
            return self._session(get_config_user().username, True)

        if not username or not password:
            raise AuthenticationFailure(FAILED_LOGIN)
        try:
            check = await self.directory.compare_password(username, password)
        except NotFoundError:
            logger.info("auth.login_failed", username=username)
            raise AuthenticationFailure(FAILED_LOGIN)
        if not check.matched:
            logger.info("auth.login_failed", username=username)
            raise AuthenticationFailure(FAILED_LOGIN)

        logger.info("auth.login", username=username)
        return self._session(username, check.is_admin)

    async def register(
        self,
        username: str,
        password: str,
        connection: ConnectionTarget,
        token: Optional[str] = None,
    ) -> Registration:
        """Create an admin user.

        Open while no users exist; afterwards only an admin may register
        someone. Disabled entirely in bypass mode.
        """
        if self.bypassed:
            raise NotFoundError("Not found")

        gate = await self.directory.initial_user_gate()
        if gate is GateState.STEADY:
            self.require_admin(await self.resolve_identity(token))

        user = await self.directory.create_user(
            username, password, connection, is_admin=True
        )
        await self.lifecycle.create(user)
        return Registration(
            session=self._session(user.username, True),
            bootstrapped=gate is GateState.BOOTSTRAP,
        )

    async def verify(self, token: Optional[str]) -> Verification:
        if self.bypassed:
            session = self._session(get_config_user().username, True)
            return Verification(
                initial_user=False,
                username=session.username,
                is_admin=True,
                session=session,
            )

        if await self.directory.initial_user_gate() is GateState.BOOTSTRAP:
            return Verification(initial_user=True)

        identity = await self.resolve_identity(token)
        return Verification(
            initial_user=False,
            username=identity.username,
            is_admin=identity.is_admin,
        )

    # ─── User management (admin) ────────────────────────

    async def list_users(self) -> list[User]:
        return await self.directory.list_users()

    async def create_user(
        self,
        username: str,
        password: str,
        connection: ConnectionTarget,
        is_admin: bool = False,
    ) -> User:
        user = await self.directory.create_user(username, password, connection, is_admin)
        await self.lifecycle.create(user)
        return user

    async def update_user(self, username: str, patch: UserPatch) -> User:
        user = await self.directory.update_user(username, patch)
        await self.lifecycle.update(user)
        return user

    async def delete_user(self, username: str, acting: Identity) -> User:
        if username == acting.username:
            raise ConflictError("Cannot delete the current user")
        user = await self.directory.remove_user(username)
        await self.lifecycle.destroy(user)
        return user
