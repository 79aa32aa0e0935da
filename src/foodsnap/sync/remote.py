"""
Remote snapshot store -- the cloud copy, reachable only with an identity.

The identity is passed in on every call. ``None`` means nobody is
signed in yet, which is a normal condition: pulls come back empty and
pushes are skipped without a word.

Nothing here raises. A sync that cannot reach the cloud degrades to
local-only; the failure is logged and the caller carries on.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from .backends import RemoteBackend, RemoteError
from .models import SCHEMA_VERSION, Snapshot, now_ms

logger = logging.getLogger("foodsnap.sync.remote")


class RemoteStore:
    """Pull and push whole snapshots through a remote backend."""

    def __init__(
        self,
        backend: RemoteBackend,
        clock: Callable[[], int] = now_ms,
    ):
        self.backend = backend
        self.clock = clock

    def pull(self, uid: Optional[str]) -> Optional[Snapshot]:
        """Fetch the user's cloud snapshot.

        Returns:
            The stored snapshot, or None when there is no identity, no
            reachable backend, no document, or the document is unreadable.
        """
        if not uid:
            logger.debug("Pull skipped: no signed-in identity")
            return None
        if not self.backend.available():
            logger.info("Backend %s not available, pull skipped", self.backend.name)
            return None

        try:
            document = self.backend.read(uid)
        except RemoteError as exc:
            logger.error("Pull from %s failed: %s", self.backend.name, exc)
            return None
        if document is None:
            return None

        try:
            return Snapshot.model_validate(document)
        except ValidationError as exc:
            logger.error("Discarding unreadable cloud snapshot for %s: %s", uid, exc)
            return None

    def push(self, uid: Optional[str], snapshot: Snapshot) -> bool:
        """Replace the user's cloud document with ``snapshot``.

        ``updatedAt`` is stamped with the push time, whatever the
        snapshot carried.

        Returns:
            True if the document was written.
        """
        if not uid:
            return False
        if not self.backend.available():
            logger.info("Backend %s not available, push skipped", self.backend.name)
            return False

        document = {
            **snapshot.to_json(),
            "updatedAt": self.clock(),
            "schemaVersion": SCHEMA_VERSION,
        }
        try:
            self.backend.write(uid, document)
        except RemoteError as exc:
            logger.error("Push to %s failed: %s", self.backend.name, exc)
            return False
        return True
