"""Read-side migration of legacy torrent property keys in stored settings.

Older UI versions saved settings that refer to torrent properties by names
that have since been renamed (or dropped). Stored documents are never
rewritten; every read passes through `transform_legacy_keys` instead.

Learn: each step only moves data into a current key when that key is not
already used, so running the transform again on its own output changes
nothing, and values already stored under a current key always win.
"""

import copy
from typing import Any

CHANGED_KEYS: dict[str, str] = {
    "downloadRate": "downRate",
    "downloadTotal": "downTotal",
    "uploadRate": "upRate",
    "uploadTotal": "upTotal",
    "connectedPeers": "peersConnected",
    "totalPeers": "peersTotal",
    "connectedSeeds": "seedsConnected",
    "totalSeeds": "seedsTotal",
    "added": "dateAdded",
    "creationDate": "dateCreated",
    "trackers": "trackerURIs",
}

REMOVED_KEYS: frozenset[str] = frozenset({"freeDiskSpace"})


def _migrate_sort_property(sort_settings: Any) -> None:
    if not isinstance(sort_settings, dict):
        return
    prop = sort_settings.get("property")
    if isinstance(prop, str) and prop in CHANGED_KEYS:
        sort_settings["property"] = CHANGED_KEYS[prop]


def _migrate_detail_items(items: Any) -> Any:
    if not isinstance(items, list):
        return items

    # Only string ids name properties; anything else passes through as-is.
    present_ids = {
        item["id"] for item in items
        if isinstance(item, dict) and isinstance(item.get("id"), str)
    }
    migrated = []
    for item in items:
        if not isinstance(item, dict):
            continue
        item_id = item.get("id")
        if isinstance(item_id, str):
            new_id = CHANGED_KEYS.get(item_id)
            if new_id is not None and new_id not in present_ids:
                item["id"] = item_id = new_id
                present_ids.add(new_id)
            if item_id in REMOVED_KEYS:
                continue
        migrated.append(item)
    return migrated


def _migrate_column_widths(widths: Any) -> None:
    if not isinstance(widths, dict):
        return
    for old_key in list(widths):
        new_key = CHANGED_KEYS.get(old_key)
        if new_key is not None and new_key not in widths:
            widths[new_key] = widths[old_key]


def transform_legacy_keys(settings: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of `settings` with legacy property keys migrated.

    - sortTorrents.property: renamed.
    - torrentDetails: items renamed unless the new id is already listed;
      removed properties dropped.
    - torrentListColumnWidths: widths copied to the new key when it is
      missing; legacy keys stay in place.
    """
    migrated = copy.deepcopy(settings)

    if "sortTorrents" in migrated:
        _migrate_sort_property(migrated["sortTorrents"])

    if "torrentDetails" in migrated:
        migrated["torrentDetails"] = _migrate_detail_items(migrated["torrentDetails"])

    if "torrentListColumnWidths" in migrated:
        _migrate_column_widths(migrated["torrentListColumnWidths"])

    return migrated
