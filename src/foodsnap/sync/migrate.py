"""
Legacy Migration -- fold the old per-field keys into one snapshot.

Before snapshots were versioned, the app kept each top-level section
under its own fixed storage key. This module reads those keys once,
assembles a schema-1 snapshot and removes them.

Safe to re-run: once the keys are gone there is nothing to migrate,
and a failed migration leaves them in place for the next attempt.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .kvstore import KeyValueStore, StorageError
from .models import SCHEMA_VERSION, Snapshot, now_ms

logger = logging.getLogger("foodsnap.sync.migrate")

LEGACY_KEYS = {
    "profile": "foodsnap_profile",
    "goals": "foodsnap_goals",
    "logs": "foodsnap_logs",
    "weightHistory": "foodsnap_weight_history",
    "recentScans": "foodsnap_recent_scans",
}

# Section -> (required JSON type, placeholder when absent).
_SECTION_SHAPES: dict[str, tuple[type, Callable[[], Any]]] = {
    "profile": (dict, dict),
    "goals": (dict, dict),
    "logs": (dict, dict),
    "weightHistory": (list, list),
    "recentScans": (list, list),
}


class MigrationError(ValueError):
    """A legacy key held data that cannot become part of a snapshot."""


def _parse_section(section: str, raw: Optional[str]) -> Any:
    expected, placeholder = _SECTION_SHAPES[section]
    if not raw:
        return placeholder()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MigrationError(f"{section}: invalid JSON ({exc})") from exc
    if value is None:
        if section == "profile":
            raise MigrationError("profile: null")
        return placeholder()
    if not isinstance(value, expected):
        raise MigrationError(
            f"{section}: expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


class LegacyMigrator:
    """One-time conversion of the legacy multi-key format."""

    def __init__(
        self,
        storage: KeyValueStore,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.clock = clock

    def has_legacy_data(self) -> bool:
        """True when the legacy profile key is present."""
        try:
            return bool(self.storage.get_item(LEGACY_KEYS["profile"]))
        except StorageError:
            return False

    def migrate(self) -> Optional[Snapshot]:
        """Build a snapshot from the legacy keys and erase them.

        Returns:
            The migrated snapshot, or None when there is nothing to
            migrate or any legacy section is unreadable.
        """
        try:
            raw = {
                section: self.storage.get_item(key)
                for section, key in LEGACY_KEYS.items()
            }
        except StorageError as exc:
            logger.error("Migration failed reading legacy keys: %s", exc)
            return None

        # Fresh install and already-migrated look the same: no profile.
        if not raw["profile"]:
            return None

        try:
            sections = {
                section: _parse_section(section, value)
                for section, value in raw.items()
            }
            snapshot = Snapshot.model_validate({
                "schemaVersion": SCHEMA_VERSION,
                "updatedAt": self.clock(),
                **sections,
            })
        except (MigrationError, ValidationError) as exc:
            logger.error("Migration aborted, legacy keys kept: %s", exc)
            return None

        try:
            self.storage.multi_remove(LEGACY_KEYS.values())
        except StorageError as exc:
            logger.error("Migration aborted, could not clear legacy keys: %s", exc)
            return None

        logger.info(
            "Migrated legacy data: %d day(s), %d weight sample(s), %d recent scan(s)",
            len(snapshot.logs),
            len(snapshot.weight_history),
            len(snapshot.recent_scans),
        )
        return snapshot
