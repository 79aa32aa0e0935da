"""
Local snapshot store -- one versioned snapshot per user, on the device.

Reads never raise: a missing key and an unreadable value both come
back as None. Writes report success as a bool. The in-memory state of
the running app is what the UI renders from, so local persistence is
best-effort from the caller's point of view.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from .kvstore import KeyValueStore, StorageError
from .models import Snapshot

logger = logging.getLogger("foodsnap.sync.local")

DEFAULT_KEY_PREFIX = "foodsnap_local_v1_"


class SnapshotStore:
    """Per-user snapshot persistence on top of a key-value store."""

    def __init__(self, storage: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX):
        self.storage = storage
        self.key_prefix = key_prefix

    def key_for(self, user_id: str) -> str:
        return self.key_prefix + user_id

    def get(self, user_id: str) -> Optional[Snapshot]:
        """Load the user's snapshot, or None if absent or unreadable."""
        try:
            raw = self.storage.get_item(self.key_for(user_id))
        except StorageError as exc:
            logger.error("Local read failed for %s: %s", user_id, exc)
            return None
        if not raw:
            return None
        try:
            return Snapshot.loads(raw)
        except ValidationError as exc:
            logger.error(
                "Discarding unreadable local snapshot for %s: %s",
                user_id, exc.errors()[0].get("msg", exc),
            )
            return None

    def put(self, user_id: str, snapshot: Snapshot) -> bool:
        """Write the whole snapshot for ``user_id``."""
        try:
            self.storage.set_item(self.key_for(user_id), snapshot.dumps())
        except StorageError as exc:
            logger.error("Local write failed for %s: %s", user_id, exc)
            return False
        return True
