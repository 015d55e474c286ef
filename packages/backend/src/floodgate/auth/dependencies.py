"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. `get_gateway`
assembles an AuthGateway per request from the process-wide pieces (auth
mode, token issuer, service lifecycle) and the request's DB session.
`get_current_identity` is the hard auth check every protected router
uses; `require_admin` stacks the admin gate on top of it.

Tokens are read from the Authorization header first, then the session
cookie. The "Bearer " prefix is optional in both.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from floodgate.auth.jwt import TokenIssuer, issuer_from_settings
from floodgate.config import settings
from floodgate.db.engine import get_db
from floodgate.errors import AuthenticationFailure, AuthorizationFailure, NotFoundError
from floodgate.services.gateway import AuthGateway, AuthMode, Identity
from floodgate.services.lifecycle import ServiceLifecycle
from floodgate.services.user_directory import UserDirectory
from floodgate.settings_store import SettingsStore

TOKEN_SCHEME = "Bearer"

_token_issuer: Optional[TokenIssuer] = None


def get_auth_mode() -> AuthMode:
    return AuthMode.from_settings()


def get_token_issuer() -> TokenIssuer:
    """Process-wide issuer, built once from config."""
    global _token_issuer
    if _token_issuer is None:
        _token_issuer = issuer_from_settings()
    return _token_issuer


def get_lifecycle(request: Request) -> ServiceLifecycle:
    return request.app.state.services


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def get_gateway(
    mode: AuthMode = Depends(get_auth_mode),
    db: AsyncSession = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    lifecycle: ServiceLifecycle = Depends(get_lifecycle),
) -> AuthGateway:
    return AuthGateway(
        mode=mode,
        directory=UserDirectory(db),
        tokens=tokens,
        lifecycle=lifecycle,
    )


def _strip_scheme(value: str) -> str:
    scheme, _, rest = value.partition(" ")
    if rest and scheme.lower() == TOKEN_SCHEME.lower():
        return rest.strip()
    return value.strip()


def extract_token(request: Request) -> Optional[str]:
    """Pull the raw JWT from the Authorization header or session cookie."""
    header = request.headers.get("Authorization")
    if header:
        return _strip_scheme(header) or None
    cookie = request.cookies.get(settings.cookie_name)
    if cookie:
        return _strip_scheme(cookie) or None
    return None


def unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=message,
        headers={"WWW-Authenticate": TOKEN_SCHEME},
    )


async def get_current_identity(
    request: Request,
    gateway: AuthGateway = Depends(get_gateway),
) -> Identity:
    """Resolve the caller (required — 401 if missing or invalid)."""
    try:
        return await gateway.resolve_identity(extract_token(request))
    except AuthenticationFailure as e:
        raise unauthorized(str(e))


async def require_admin(
    identity: Identity = Depends(get_current_identity),
    gateway: AuthGateway = Depends(get_gateway),
) -> Identity:
    """Admin-only routes: 404 in bypass mode, 403 for non-admins."""
    try:
        return gateway.require_admin(identity)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")
    except AuthorizationFailure as e:
        raise HTTPException(status_code=403, detail=str(e))


def require_enforced(mode: AuthMode = Depends(get_auth_mode)) -> AuthMode:
    """Routes that only exist while auth is enforced (404 in bypass mode).

    Runs ahead of body validation, so a bypassed deployment answers 404
    whatever the request body looks like.
    """
    if mode is AuthMode.BYPASSED:
        raise HTTPException(status_code=404, detail="Not found")
    return mode
