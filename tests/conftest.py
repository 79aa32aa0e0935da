"""Shared test fixtures for foodsnap."""

from __future__ import annotations

from pathlib import Path

import pytest

from foodsnap.sync.backends import FilesystemBackend
from foodsnap.sync.bootstrap import SyncBootstrapper
from foodsnap.sync.kvstore import KeyValueStore
from foodsnap.sync.local import SnapshotStore
from foodsnap.sync.migrate import LegacyMigrator
from foodsnap.sync.models import RemoteBackendConfig, RemoteBackendType, Snapshot
from foodsnap.sync.remote import RemoteStore


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 5_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1_000) -> int:
        self.now += ms
        return self.now


def make_snapshot(updated_at: int = 1_000, **sections) -> Snapshot:
    """Snapshot with a small profile and whatever sections are given."""
    sections.setdefault("profile", {"name": "Ada", "age": 36})
    return Snapshot(updated_at=updated_at, **sections)


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary FoodSnap home directory."""
    home = tmp_path / ".foodsnap"
    home.mkdir()
    return home


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_home: Path) -> KeyValueStore:
    return KeyValueStore(tmp_home / "storage.json")


@pytest.fixture
def local_store(storage: KeyValueStore) -> SnapshotStore:
    return SnapshotStore(storage)


@pytest.fixture
def backend(tmp_home: Path) -> FilesystemBackend:
    config = RemoteBackendConfig(
        backend_type=RemoteBackendType.FILESYSTEM,
        local_path=tmp_home / "cloud",
    )
    (tmp_home / "cloud").mkdir()
    return FilesystemBackend(config, tmp_home)


@pytest.fixture
def remote_store(backend: FilesystemBackend, clock: FakeClock) -> RemoteStore:
    return RemoteStore(backend, clock=clock)


@pytest.fixture
def migrator(storage: KeyValueStore, clock: FakeClock) -> LegacyMigrator:
    return LegacyMigrator(storage, clock=clock)


@pytest.fixture
def bootstrapper(
    local_store: SnapshotStore,
    remote_store: RemoteStore,
    migrator: LegacyMigrator,
) -> SyncBootstrapper:
    return SyncBootstrapper(local_store, remote_store, migrator)
