"""
Sync Engine -- wires storage, backends and the bootstrapper for a home.

This is the command center. It reads the sync config, builds the local
and remote stores, runs the session bootstrap and records what happened.

    foodsnap sync bootstrap  ->  local -> migrate -> pull -> reconcile
    foodsnap sync push       ->  local snapshot -> cloud
    foodsnap sync pull       ->  cloud snapshot -> local
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import yaml

from .. import FOODSNAP_HOME
from ..defaults import make_empty_snapshot
from .backends import create_backend
from .bootstrap import SAME_AS_USER, SyncBootstrapper
from .kvstore import KeyValueStore
from .local import SnapshotStore
from .migrate import LegacyMigrator
from .models import (
    BootstrapResult,
    RemoteBackendConfig,
    Snapshot,
    SyncConfig,
    SyncState,
    now_ms,
)
from .remote import RemoteStore

logger = logging.getLogger("foodsnap.sync.engine")


class SyncEngine:
    """Owns the sync configuration, stores and state for one home."""

    def __init__(
        self,
        home: Optional[Path] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the sync engine.

        Args:
            home: FoodSnap home directory. Defaults to $FOODSNAP_HOME
                or ~/.foodsnap.
            clock: Millisecond clock used for every timestamp written.
        """
        self.home = Path(home or FOODSNAP_HOME).expanduser()
        self.sync_dir = self.home / "sync"
        self.sync_dir.mkdir(parents=True, exist_ok=True)
        self.clock = clock

        self.config = self._load_config()
        self.state = self._load_state()
        self._build_stores()

    def _build_stores(self) -> None:
        storage_file = self.config.storage_file
        if not storage_file.is_absolute():
            storage_file = self.home / storage_file
        self.storage = KeyValueStore(storage_file)
        self.backend = create_backend(self.config.remote, self.home)
        self.local = SnapshotStore(self.storage, self.config.local_key_prefix)
        self.remote = RemoteStore(self.backend, clock=self.clock)
        self.migrator = LegacyMigrator(self.storage, clock=self.clock)
        self.bootstrapper = SyncBootstrapper(self.local, self.remote, self.migrator)

    def _load_config(self) -> SyncConfig:
        """Load sync configuration from disk."""
        config_file = self.sync_dir / "config.yaml"
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text()) or {}
                return SyncConfig(**data)
            except (yaml.YAMLError, ValueError, TypeError) as exc:
                logger.warning("Failed to load sync config: %s", exc)
        return SyncConfig()

    def _load_state(self) -> SyncState:
        """Load sync state from disk."""
        state_file = self.sync_dir / "state.json"
        if state_file.exists():
            try:
                data = json.loads(state_file.read_text())
                return SyncState(**data)
            except (json.JSONDecodeError, ValueError, TypeError) as exc:
                logger.warning("Failed to load sync state: %s", exc)
        return SyncState()

    def _save_state(self) -> None:
        """Persist sync state to disk."""
        state_file = self.sync_dir / "state.json"
        try:
            state_file.write_text(self.state.model_dump_json(indent=2))
        except OSError as exc:
            logger.warning("Failed to save sync state: %s", exc)

    def save_config(self) -> None:
        """Persist sync configuration to disk."""
        config_file = self.sync_dir / "config.yaml"
        data = self.config.model_dump(mode="json")
        config_file.write_text(yaml.dump(data, default_flow_style=False))

    def set_remote(self, config: RemoteBackendConfig) -> None:
        """Replace the remote backend configuration.

        Args:
            config: Backend configuration to use from now on.
        """
        self.config.remote = config
        self.save_config()
        self._build_stores()
        logger.info("Remote backend set: %s", config.backend_type.value)

    def bootstrap(
        self,
        user_id: str,
        make_empty: Optional[Callable[[], Snapshot]] = None,
        identity: object = SAME_AS_USER,
    ) -> BootstrapResult:
        """Run the session-start reconciliation for ``user_id``.

        Args:
            user_id: Local user id.
            make_empty: Fresh-state factory. Defaults to the standard
                empty snapshot stamped with the engine clock.
            identity: Remote identity; None for a signed-out session.

        Returns:
            BootstrapResult with the authoritative snapshot.
        """
        factory = make_empty or (lambda: make_empty_snapshot(self.clock))
        result = self.bootstrapper.run(user_id, factory, identity=identity)

        now = datetime.now(timezone.utc)
        self.state.last_bootstrap = now
        self.state.last_user = user_id
        self.state.last_resolution = result.resolution
        self.state.bootstrap_count += 1
        if result.remote_pushed:
            self.state.last_push = now
            self.state.push_count += 1
        self._save_state()
        return result

    def save(
        self,
        user_id: str,
        snapshot: Snapshot,
        identity: object = SAME_AS_USER,
    ) -> dict[str, bool]:
        """Persist an edited snapshot locally and to the cloud.

        Used for the app's ordinary edits between bootstraps. The
        snapshot is stamped with the current time before writing.

        Returns:
            Dict with ``local`` and ``remote`` success booleans.
        """
        uid = user_id if identity is SAME_AS_USER else identity
        snapshot.touch(self.clock())
        results = {
            "local": self.local.put(user_id, snapshot),
            "remote": self.remote.push(uid, snapshot),
        }
        self._record_push(uid, results["remote"])
        return results

    def push(self, user_id: str, identity: object = SAME_AS_USER) -> bool:
        """Upload the local snapshot as-is.

        Returns:
            True if a local snapshot existed and was written remotely.
        """
        uid = user_id if identity is SAME_AS_USER else identity
        snapshot = self.local.get(user_id)
        if snapshot is None:
            logger.info("Nothing to push for %s: no local snapshot", user_id)
            return False
        pushed = self.remote.push(uid, snapshot)
        self._record_push(uid, pushed)
        return pushed

    def pull(
        self, user_id: str, identity: object = SAME_AS_USER
    ) -> Optional[Snapshot]:
        """Download the cloud snapshot and overwrite the local one.

        Returns:
            The downloaded snapshot, or None if the cloud had nothing.
        """
        uid = user_id if identity is SAME_AS_USER else identity
        snapshot = self.remote.pull(uid)
        if snapshot is None:
            logger.info("No cloud snapshot available for %s", user_id)
            return None
        if not self.local.put(user_id, snapshot):
            self.state.last_error = f"local write failed after pull for {user_id}"
        self.state.last_pull = datetime.now(timezone.utc)
        self.state.pull_count += 1
        self._save_state()
        return snapshot

    def _record_push(self, uid: Optional[str], pushed: bool) -> None:
        if pushed:
            self.state.last_push = datetime.now(timezone.utc)
            self.state.push_count += 1
        elif uid:
            self.state.last_error = f"push to {self.backend.name} did not complete"
        self._save_state()

    def status(self) -> dict:
        """Get current sync status.

        Returns:
            Dict with state, backend and storage info.
        """
        return {
            "state": self.state.model_dump(mode="json"),
            "backend": {
                "type": self.config.remote.backend_type.value,
                "name": self.backend.name,
                "enabled": self.config.remote.enabled,
                "available": self.backend.available(),
            },
            "storage": str(self.storage.path),
            "legacy_data": self.migrator.has_legacy_data(),
        }
