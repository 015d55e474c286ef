"""Per-user store handles, opened lazily and kept for the process lifetime.

Learn: every user gets their own SQLite file at
`<root>/<user_id>/settings/settings.db`. Opening is memoized: the first
request for a user creates the engine, later ones reuse it. Two requests
racing on the first open still end up sharing one handle because creation
happens under a lock (double-checked, so the common path never blocks).
"""

import asyncio
import re
import threading
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from floodgate.settings_store.models import SettingsBase

logger = structlog.get_logger()

_SAFE_USER_ID = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


class StoreHandle:
    """An opened settings database for one user."""

    def __init__(self, user_id: str, path: Path, echo: bool = False):
        self.user_id = user_id
        self.path = path
        self.engine: AsyncEngine = create_async_engine(
            f"sqlite+aiosqlite:///{path}", echo=echo
        )
        self.sessions = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self._ready = False
        self._schema_lock = asyncio.Lock()

    async def ensure_schema(self) -> None:
        """Create the directory and table on first use."""
        if self._ready:
            return
        async with self._schema_lock:
            if self._ready:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with self.engine.begin() as conn:
                await conn.run_sync(SettingsBase.metadata.create_all)
            self._ready = True
            logger.info("settings.store_opened", user_id=self.user_id, path=str(self.path))

    async def dispose(self) -> None:
        await self.engine.dispose()


class StoreManager:
    """Owns every open StoreHandle, keyed by user id."""

    def __init__(self, root: str | Path, echo: bool = False):
        self.root = Path(root)
        self.echo = echo
        self._handles: dict[str, StoreHandle] = {}
        self._lock = threading.Lock()

    def path_for(self, user_id: str) -> Path:
        if not _SAFE_USER_ID.fullmatch(user_id) or user_id in (".", ".."):
            raise ValueError(f"Invalid user id for settings store: {user_id!r}")
        return self.root / user_id / "settings" / "settings.db"

    def get(self, user_id: str) -> StoreHandle:
        """Return the handle for `user_id`, creating it on first access."""
        handle = self._handles.get(user_id)
        if handle is not None:
            return handle
        with self._lock:
            handle = self._handles.get(user_id)
            if handle is None:
                handle = StoreHandle(user_id, self.path_for(user_id), echo=self.echo)
                self._handles[user_id] = handle
        return handle

    def is_open(self, user_id: str) -> bool:
        return user_id in self._handles

    async def close(self) -> None:
        """Dispose every handle. Called at shutdown."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            await handle.dispose()
