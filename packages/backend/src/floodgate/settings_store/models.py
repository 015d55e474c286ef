"""ORM model for a single user's settings database.

Each user has their own SQLite file holding one `settings` table, so this
model has its own metadata, separate from the users database.
"""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class SettingsBase(DeclarativeBase):
    pass


class SettingRecord(SettingsBase):
    """One setting: `id` is the setting name, `data` any JSON value."""

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
