"""SQLAlchemy ORM models for the users database.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] +
mapped_column). The username is the primary key: it is also the user's id
and names the directory holding their settings store.

A user's client connection is a tagged union, either a TCP host/port or a
unix socket path. It is stored as three nullable columns but only ever
read and written through `User.connection`, which keeps exactly one form
populated.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for users-database models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Connection targets ─────────────────────────────────


@dataclass(frozen=True)
class NetworkTarget:
    host: str
    port: int


@dataclass(frozen=True)
class UnixSocketTarget:
    path: str


ConnectionTarget = Union[NetworkTarget, UnixSocketTarget]


# ─── Users ──────────────────────────────────────────────


class User(Base):
    """A person allowed to drive the remote client."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    host: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    port: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    socket_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    @property
    def id(self) -> str:
        return self.username

    @property
    def connection(self) -> Optional[ConnectionTarget]:
        if self.socket_path:
            return UnixSocketTarget(path=self.socket_path)
        if self.host and self.port:
            return NetworkTarget(host=self.host, port=self.port)
        return None

    @connection.setter
    def connection(self, target: ConnectionTarget) -> None:
        if isinstance(target, UnixSocketTarget):
            self.socket_path = target.path
            self.host = None
            self.port = None
        elif isinstance(target, NetworkTarget):
            self.host = target.host
            self.port = target.port
            self.socket_path = None
        else:
            raise TypeError(f"Unsupported connection target: {target!r}")

    def __repr__(self) -> str:
        return f"<User {self.username!r} admin={self.is_admin}>"
