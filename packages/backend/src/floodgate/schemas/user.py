"""Pydantic schemas for auth and user-management requests/responses.

Learn: Pydantic v2 models validate request/response data. Fields are
snake_case in Python and camelCase on the wire (`isAdmin`, `socketPath`)
to match the web client. Unknown fields are rejected so a malformed body
fails with 422 before anything is written.

A client connection is either `host` + `port` or `socketPath`, never both
and never half a network target.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from floodgate.db.models import ConnectionTarget, NetworkTarget, UnixSocketTarget
from floodgate.services.user_directory import USERNAME_PATTERN


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ConnectionFields(CamelModel):
    host: Optional[str] = Field(None, min_length=1, max_length=255)
    port: Optional[int] = Field(None, ge=1, le=65535)
    socket_path: Optional[str] = Field(None, min_length=1, max_length=1024)

    @model_validator(mode="after")
    def check_connection_form(self):
        has_network = self.host is not None or self.port is not None
        if self.socket_path is not None and has_network:
            raise ValueError("Use either host/port or socketPath, not both")
        if has_network and (self.host is None or self.port is None):
            raise ValueError("host and port must be given together")
        return self

    def to_connection(self) -> Optional[ConnectionTarget]:
        if self.socket_path is not None:
            return UnixSocketTarget(path=self.socket_path)
        if self.host is not None and self.port is not None:
            return NetworkTarget(host=self.host, port=self.port)
        return None


class ConnectionRequired(ConnectionFields):
    @model_validator(mode="after")
    def require_connection(self):
        if self.to_connection() is None:
            raise ValueError("Either host and port, or socketPath, is required")
        return self


# ─── Auth ───────────────────────────────────────────────


class AuthenticateRequest(CamelModel):
    # Optional so bypass mode accepts an empty body.
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(ConnectionRequired):
    username: str = Field(..., pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=1)
    # Accepted for client compatibility; registered users are always admins.
    is_admin: Optional[bool] = None


class AuthResponse(CamelModel):
    success: bool = True
    token: str
    username: str
    is_admin: bool


class VerifyResponse(CamelModel):
    initial_user: bool
    username: Optional[str] = None
    is_admin: Optional[bool] = None


# ─── Users ──────────────────────────────────────────────


class UserCreate(ConnectionRequired):
    username: str = Field(..., pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=1)
    is_admin: bool = False


class UserUpdate(ConnectionFields):
    is_admin: Optional[bool] = None


class UserRead(CamelModel):
    username: str
    is_admin: bool
    host: Optional[str] = None
    port: Optional[int] = None
    socket_path: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")
