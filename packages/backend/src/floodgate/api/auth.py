"""Auth API — bootstrap, login, session checks, user management.

Learn: Routes for authentication and the user directory:
- POST /auth/authenticate → username/password → token + session cookie
- POST /auth/register → first user (open) or new admin (admin token)
- GET /auth/verify → is the session valid? are there any users yet?
- GET /auth/logout → clear the session cookie
- GET/PUT /auth/users, PATCH/DELETE /auth/users/:username → admin only

Logout only clears the cookie. Tokens are stateless, so a copy of the
token keeps working until it expires.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from floodgate.auth.dependencies import (
    TOKEN_SCHEME,
    extract_token,
    get_current_identity,
    get_gateway,
    require_admin,
    require_enforced,
    unauthorized,
)
from floodgate.config import settings
from floodgate.errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    ConflictError,
    NotFoundError,
)
from floodgate.schemas.user import (
    AuthenticateRequest,
    AuthResponse,
    RegisterRequest,
    UserCreate,
    UserRead,
    UserUpdate,
    VerifyResponse,
)
from floodgate.services.gateway import AuthGateway, Identity, Session
from floodgate.services.user_directory import UserPatch

router = APIRouter(prefix="/auth")


def _set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=f"{TOKEN_SCHEME} {session.token}",
        max_age=settings.token_lifetime_seconds,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )


def _auth_response(session: Session) -> AuthResponse:
    return AuthResponse(
        token=f"{TOKEN_SCHEME} {session.token}",
        username=session.username,
        is_admin=session.is_admin,
    )


# ─── Authenticate ───────────────────────────────────────


@router.post("/authenticate", response_model=AuthResponse)
async def authenticate(
    body: AuthenticateRequest,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
):
    """Login with username and password → session token + cookie."""
    try:
        session = await gateway.authenticate(body.username, body.password)
    except AuthenticationFailure as e:
        raise unauthorized(str(e))

    _set_session_cookie(response, session)
    return _auth_response(session)


# ─── Register ───────────────────────────────────────────


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(require_enforced)],
)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
):
    """Create an admin user.

    Open while no users exist (the new user is logged in straight away);
    after that an admin token is required and the caller's own cookie is
    left alone.
    """
    try:
        registration = await gateway.register(
            username=body.username,
            password=body.password,
            connection=body.to_connection(),
            token=extract_token(request),
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")
    except AuthenticationFailure as e:
        raise unauthorized(str(e))
    except AuthorizationFailure as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if registration.bootstrapped:
        _set_session_cookie(response, registration.session)
    return _auth_response(registration.session)


# ─── Verify ─────────────────────────────────────────────


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    request: Request,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
):
    """Check the current session; reports `initialUser` before bootstrap."""
    try:
        result = await gateway.verify(extract_token(request))
    except AuthenticationFailure as e:
        raise unauthorized(str(e))

    if result.session is not None:
        _set_session_cookie(response, result.session)
    return VerifyResponse(
        initial_user=result.initial_user,
        username=result.username,
        is_admin=result.is_admin,
    )


# ─── Logout ─────────────────────────────────────────────


@router.get("/logout", dependencies=[Depends(get_current_identity)])
async def logout():
    """Clear the session cookie. Does not revoke the token."""
    response = Response(status_code=200)
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        samesite="strict",
        secure=settings.cookie_secure,
    )
    return response


# ─── Users (admin) ──────────────────────────────────────


@router.get("/users", response_model=list[UserRead])
async def list_users(
    _admin: Identity = Depends(require_admin),
    gateway: AuthGateway = Depends(get_gateway),
):
    """List users. Password hashes are never included."""
    return await gateway.list_users()


@router.put(
    "/users",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_enforced)],
)
async def create_user(
    body: UserCreate,
    _admin: Identity = Depends(require_admin),
    gateway: AuthGateway = Depends(get_gateway),
):
    try:
        return await gateway.create_user(
            username=body.username,
            password=body.password,
            connection=body.to_connection(),
            is_admin=body.is_admin,
        )
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch(
    "/users/{username}",
    response_model=UserRead,
    dependencies=[Depends(require_enforced)],
)
async def update_user(
    username: str,
    body: UserUpdate,
    _admin: Identity = Depends(require_admin),
    gateway: AuthGateway = Depends(get_gateway),
):
    """Change a user's connection and/or admin flag.

    A new connection replaces the old one: setting socketPath clears
    host/port and vice versa.
    """
    patch = UserPatch(connection=body.to_connection(), is_admin=body.is_admin)
    try:
        return await gateway.update_user(username, patch)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="User not found")


@router.delete("/users/{username}")
async def delete_user(
    username: str,
    admin: Identity = Depends(require_admin),
    gateway: AuthGateway = Depends(get_gateway),
):
    """Delete a user and tear down their client service."""
    try:
        await gateway.delete_user(username, acting=admin)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"deleted": True, "username": username}
