"""Settings store — per-user key/value persistence.

Learn: `get` always passes results through the legacy-key migration, so
callers only ever see current setting shapes. `set` upserts entry by
entry, each in its own transaction: a batch is not atomic, and a reader
may observe part of it. All entries are attempted; if any failed, the
first failure is raised once the loop is done.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from floodgate.errors import StorageError
from floodgate.settings_store.manager import StoreManager
from floodgate.settings_store.migrations import transform_legacy_keys
from floodgate.settings_store.models import SettingRecord

logger = structlog.get_logger()


@dataclass(frozen=True)
class SettingEntry:
    id: str
    data: Any = None


class SettingsStore:
    """Reads and writes settings in each user's own database."""

    def __init__(self, manager: StoreManager):
        self.manager = manager

    async def get(self, user_id: str, setting_id: Optional[str] = None) -> dict[str, Any]:
        """Return `{setting_id: data}` for one setting or all of them."""
        query = select(SettingRecord)
        if setting_id is not None:
            query = query.where(SettingRecord.id == setting_id)

        try:
            handle = self.manager.get(user_id)
            await handle.ensure_schema()
            async with handle.sessions() as session:
                result = await session.execute(query)
                records = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.error("settings.read_failed", user_id=user_id, error=str(e))
            raise StorageError("Could not read settings") from e

        return transform_legacy_keys({r.id: r.data for r in records})

    async def set(
        self,
        user_id: str,
        entries: Union[SettingEntry, Iterable[SettingEntry]],
    ) -> list[str]:
        """Upsert one entry or many. Returns the ids that were written."""
        if isinstance(entries, SettingEntry):
            entries = [entries]

        written: list[str] = []
        first_error: Optional[BaseException] = None

        try:
            handle = self.manager.get(user_id)
            await handle.ensure_schema()
        except (SQLAlchemyError, OSError) as e:
            logger.error("settings.write_failed", user_id=user_id, error=str(e))
            raise StorageError("Could not write settings") from e

        for entry in entries:
            stmt = sqlite_insert(SettingRecord).values(id=entry.id, data=entry.data)
            stmt = stmt.on_conflict_do_update(
                index_elements=[SettingRecord.id],
                set_={"data": stmt.excluded.data},
            )
            try:
                async with handle.sessions() as session:
                    await session.execute(stmt)
                    await session.commit()
                written.append(entry.id)
            except (SQLAlchemyError, OSError) as e:
                logger.error(
                    "settings.write_failed",
                    user_id=user_id,
                    setting_id=entry.id,
                    error=str(e),
                )
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise StorageError("Could not write settings") from first_error
        return written
