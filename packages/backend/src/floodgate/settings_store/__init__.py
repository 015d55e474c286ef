"""Per-user settings persistence with legacy-key migration."""

from floodgate.settings_store.manager import StoreHandle, StoreManager
from floodgate.settings_store.migrations import (
    CHANGED_KEYS,
    REMOVED_KEYS,
    transform_legacy_keys,
)
from floodgate.settings_store.store import SettingEntry, SettingsStore

__all__ = [
    "CHANGED_KEYS",
    "REMOVED_KEYS",
    "SettingEntry",
    "SettingsStore",
    "StoreHandle",
    "StoreManager",
    "transform_legacy_keys",
]
