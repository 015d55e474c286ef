"""Floodgate CLI — run the server and manage users from a shell.

Usage:
    floodgate serve                                   # Run the API with uvicorn
    floodgate users list                              # Show users
    floodgate users create alice --admin --host 127.0.0.1 --port 5000
    floodgate users create bob --socket-path /run/rtorrent.sock
    floodgate users delete bob
    floodgate secret                                  # Print a fresh JWT secret

The users commands talk to the users database directly, which is handy
for headless bootstrap. A running server only learns about CLI changes
on its next restart.
"""

from __future__ import annotations

import asyncio
import secrets as _secrets
import sys
from pathlib import Path
from typing import Optional

import click
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from floodgate import __version__
from floodgate.config import settings
from floodgate.db.engine import init_models
from floodgate.db.models import NetworkTarget, UnixSocketTarget
from floodgate.errors import ConflictError, NotFoundError
from floodgate.services.user_directory import UserDirectory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _database_url(db_path: Optional[str]) -> str:
    if db_path:
        return f"sqlite+aiosqlite:///{Path(db_path) / 'users.db'}"
    return settings.users_database_url


async def _with_directory(db_path: Optional[str], fn):
    """Open the users DB, run `fn(directory)`, and always dispose the engine."""
    engine = create_async_engine(_database_url(db_path))
    try:
        await init_models(engine)
        sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with sessions() as db:
            return await fn(UserDirectory(db))
    finally:
        await engine.dispose()


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _connection_label(user) -> str:
    target = user.connection
    if isinstance(target, UnixSocketTarget):
        return f"unix:{target.path}"
    if isinstance(target, NetworkTarget):
        return f"{target.host}:{target.port}"
    return "—"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="floodgate")
def main():
    """Floodgate — auth gateway and settings store for the Flood web UI."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: FLOODGATE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: FLOODGATE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "floodgate.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
def secret():
    """Print a random value suitable for FLOODGATE_JWT_SECRET."""
    click.echo(_secrets.token_urlsafe(32))


# ---------------------------------------------------------------------------
# floodgate users ...
# ---------------------------------------------------------------------------


@main.group()
def users():
    """Manage users in the users database."""


@users.command("list")
@click.option("--db-path", default=None, help="Database directory (default: FLOODGATE_DB_PATH)")
def list_users(db_path: Optional[str]):
    """List users."""
    rows = asyncio.run(_with_directory(db_path, lambda d: d.list_users()))
    if not rows:
        click.echo("No users yet. Create one with: floodgate users create <name> --admin")
        return
    _print_table(
        [
            {
                "username": u.username,
                "admin": "yes" if u.is_admin else "no",
                "connection": _connection_label(u),
            }
            for u in rows
        ],
        [("USERNAME", "username", 24), ("ADMIN", "admin", 5), ("CONNECTION", "connection", 40)],
    )


@users.command("create")
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--admin", "is_admin", is_flag=True, help="Grant admin rights")
@click.option("--host", default=None, help="Client host (with --port)")
@click.option("--port", default=None, type=click.IntRange(1, 65535), help="Client port")
@click.option("--socket-path", default=None, help="Client unix socket (instead of host/port)")
@click.option("--db-path", default=None, help="Database directory (default: FLOODGATE_DB_PATH)")
def create_user(
    username: str,
    password: str,
    is_admin: bool,
    host: Optional[str],
    port: Optional[int],
    socket_path: Optional[str],
    db_path: Optional[str],
):
    """Create a user."""
    if socket_path and (host or port):
        click.secho("Error: use either --socket-path or --host/--port", fg="red", err=True)
        sys.exit(2)
    if socket_path:
        connection = UnixSocketTarget(path=socket_path)
    elif host and port:
        connection = NetworkTarget(host=host, port=port)
    else:
        click.secho("Error: --host and --port, or --socket-path, required", fg="red", err=True)
        sys.exit(2)

    try:
        user = asyncio.run(
            _with_directory(
                db_path,
                lambda d: d.create_user(username, password, connection, is_admin=is_admin),
            )
        )
    except (ConflictError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Created user {user.username}{' (admin)' if user.is_admin else ''}", fg="green")


@users.command("delete")
@click.argument("username")
@click.option("--db-path", default=None, help="Database directory (default: FLOODGATE_DB_PATH)")
def delete_user(username: str, db_path: Optional[str]):
    """Delete a user (the last user can't be deleted)."""
    try:
        asyncio.run(_with_directory(db_path, lambda d: d.remove_user(username)))
    except (NotFoundError, ConflictError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Deleted user {username}", fg="green")


if __name__ == "__main__":
    main()
