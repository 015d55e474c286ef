"""Settings API — the signed-in user's UI settings.

Learn: Settings are scoped by the authenticated username; there is no
way to address another user's store. Reads come back already migrated
from legacy property names. PATCH takes one `{id, data}` or a list and
upserts each entry independently.
"""

from fastapi import APIRouter, Depends, HTTPException

from floodgate.auth.dependencies import get_current_identity, get_settings_store
from floodgate.errors import StorageError
from floodgate.schemas.settings import SettingsPatch, SettingsUpdated, SettingWrite
from floodgate.services.gateway import Identity
from floodgate.settings_store import SettingEntry, SettingsStore

router = APIRouter(prefix="/settings")


@router.get("")
async def get_all_settings(
    identity: Identity = Depends(get_current_identity),
    store: SettingsStore = Depends(get_settings_store),
):
    """All settings for the current user, keyed by setting id."""
    try:
        return await store.get(identity.username)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{setting_id}")
async def get_setting(
    setting_id: str,
    identity: Identity = Depends(get_current_identity),
    store: SettingsStore = Depends(get_settings_store),
):
    """One setting as `{setting_id: data}`, or `{}` if it was never saved."""
    try:
        return await store.get(identity.username, setting_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("", response_model=SettingsUpdated)
async def update_settings(
    body: SettingsPatch,
    identity: Identity = Depends(get_current_identity),
    store: SettingsStore = Depends(get_settings_store),
):
    writes = body if isinstance(body, list) else [body]
    entries = [SettingEntry(id=w.id, data=w.data) for w in writes]
    try:
        updated = await store.set(identity.username, entries)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SettingsUpdated(updated=updated)
