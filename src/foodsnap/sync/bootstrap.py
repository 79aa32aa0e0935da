"""
Sync Bootstrap -- decide, once per session, which snapshot is the truth.

    local  = device snapshot (or whatever the legacy keys migrate into)
    cloud  = remote snapshot for the signed-in identity

    neither          -> make_empty(); save locally; seed the cloud
    cloud only       -> take cloud; save locally
    local only       -> take local; upload
    both, cloud newer-> take cloud; save locally
    both, otherwise  -> take local; upload only if strictly newer

Equal timestamps keep the local copy and skip the upload, so two
stores that already agree never bounce the snapshot back and forth.

Steps run one after another. Each store call is guarded: anything it
raises is logged and treated as "absent" or "not written". The only
exception that escapes is one raised by ``make_empty`` itself.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .local import SnapshotStore
from .migrate import LegacyMigrator
from .models import BootstrapResult, Resolution, Snapshot
from .remote import RemoteStore

logger = logging.getLogger("foodsnap.sync.bootstrap")

T = TypeVar("T")

# Sentinel: remote identity defaults to the local user id.
SAME_AS_USER = object()


def _guarded(what: str, fallback: T, call: Callable[[], T]) -> T:
    try:
        return call()
    except Exception:
        logger.exception("%s failed; treating as %r", what, fallback)
        return fallback


class SyncBootstrapper:
    """Reconciles the local and remote snapshot at session start."""

    def __init__(
        self,
        local: SnapshotStore,
        remote: RemoteStore,
        migrator: LegacyMigrator,
    ):
        self.local = local
        self.remote = remote
        self.migrator = migrator

    def run(
        self,
        user_id: str,
        make_empty: Callable[[], Snapshot],
        identity: object = SAME_AS_USER,
    ) -> BootstrapResult:
        """Run the reconciliation for ``user_id``.

        Args:
            user_id: Scopes the local snapshot key.
            make_empty: Builds the fresh snapshot used when no data
                exists anywhere.
            identity: Remote identity. Defaults to ``user_id``; ``None``
                means no one is signed in and the cloud is skipped.

        Returns:
            BootstrapResult holding the authoritative snapshot.
        """
        uid: Optional[str] = user_id if identity is SAME_AS_USER else identity
        logger.info("Bootstrap sync started for user %s", user_id)

        migrated = False
        local_written = False
        remote_pushed = False

        local = _guarded("Local read", None, lambda: self.local.get(user_id))

        if local is None:
            logger.info("No local snapshot; checking legacy data")
            local = _guarded("Legacy migration", None, self.migrator.migrate)
            if local is not None:
                migrated = True
                # Legacy keys are gone now; persist before anything else.
                local_written = self._put_local(user_id, local)

        cloud = _guarded("Cloud pull", None, lambda: self.remote.pull(uid))

        if local is None and cloud is None:
            logger.info("No data anywhere; creating fresh state")
            final = make_empty()
            resolution = Resolution.CREATED_EMPTY
            local_written = self._put_local(user_id, final)
            remote_pushed = self._push(uid, final)
        elif local is None:
            logger.info("Only cloud data found; downloading")
            final = cloud
            resolution = Resolution.CLOUD_ONLY
            local_written = self._put_local(user_id, final)
        elif cloud is None:
            logger.info("Only local data found; uploading")
            final = local
            resolution = Resolution.LOCAL_ONLY
            remote_pushed = self._push(uid, final)
        else:
            logger.info(
                "Conflict resolution: local=%d cloud=%d",
                local.updated_at, cloud.updated_at,
            )
            if cloud.updated_at > local.updated_at:
                final = cloud
                resolution = Resolution.CLOUD_NEWER
                local_written = self._put_local(user_id, final)
            elif local.updated_at > cloud.updated_at:
                final = local
                resolution = Resolution.LOCAL_NEWER
                remote_pushed = self._push(uid, final)
            else:
                final = local
                resolution = Resolution.IN_SYNC

        logger.info("Bootstrap sync resolved: %s", resolution.value)
        return BootstrapResult(
            snapshot=final,
            resolution=resolution,
            migrated=migrated,
            local_written=local_written,
            remote_pushed=remote_pushed,
        )

    def _put_local(self, user_id: str, snapshot: Snapshot) -> bool:
        return _guarded(
            "Local write", False, lambda: self.local.put(user_id, snapshot)
        )

    def _push(self, uid: Optional[str], snapshot: Snapshot) -> bool:
        return _guarded("Cloud push", False, lambda: self.remote.push(uid, snapshot))


def bootstrap_sync(
    bootstrapper: SyncBootstrapper,
    user_id: str,
    make_empty: Callable[[], Snapshot],
) -> Snapshot:
    """Run a bootstrap and return only the authoritative snapshot."""
    return bootstrapper.run(user_id, make_empty).snapshot
