"""Tests for remote backends and the remote snapshot store."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import FakeClock, make_snapshot
from foodsnap.sync.backends import (
    FilesystemBackend,
    HttpBackend,
    NullBackend,
    RemoteError,
    create_backend,
    document_path,
)
from foodsnap.sync.models import RemoteBackendConfig, RemoteBackendType
from foodsnap.sync.remote import RemoteStore


def _response(status: int, payload=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = json.dumps(payload) if payload is not None else ""
    if payload is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = payload
    return resp


class TestCreateBackend:
    """Tests for the backend factory."""

    def test_none_backend(self, tmp_home: Path):
        backend = create_backend(RemoteBackendConfig(), tmp_home)
        assert isinstance(backend, NullBackend)
        assert backend.available() is False

    def test_disabled_backend_is_null(self, tmp_home: Path):
        config = RemoteBackendConfig(
            backend_type=RemoteBackendType.FILESYSTEM, enabled=False
        )
        assert isinstance(create_backend(config, tmp_home), NullBackend)

    def test_filesystem_backend(self, tmp_home: Path):
        config = RemoteBackendConfig(backend_type=RemoteBackendType.FILESYSTEM)
        backend = create_backend(config, tmp_home)
        assert isinstance(backend, FilesystemBackend)
        assert backend.root == tmp_home / "sync" / "remote"

    def test_http_backend(self, tmp_home: Path):
        config = RemoteBackendConfig(
            backend_type=RemoteBackendType.HTTP, base_url="https://sync.example"
        )
        backend = create_backend(config, tmp_home)
        assert isinstance(backend, HttpBackend)
        assert backend.available() is True


class TestFilesystemBackend:
    """Tests for FilesystemBackend document storage."""

    def test_document_path(self):
        assert document_path("u1") == "users/u1/app/data"

    def test_missing_document(self, backend: FilesystemBackend):
        assert backend.read("u1") is None

    def test_write_then_read(self, backend: FilesystemBackend):
        backend.write("u1", {"updatedAt": 1})
        assert backend.read("u1") == {"updatedAt": 1}
        assert (backend.root / "users" / "u1" / "app" / "data.json").exists()

    def test_corrupt_document_raises(self, backend: FilesystemBackend):
        path = backend.root / "users" / "u1" / "app" / "data.json"
        path.parent.mkdir(parents=True)
        path.write_text("{nope")
        with pytest.raises(RemoteError):
            backend.read("u1")

    def test_undecodable_document_raises(self, backend: FilesystemBackend):
        path = backend.root / "users" / "u1" / "app" / "data.json"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\xff\xfe\x00{")
        with pytest.raises(RemoteError):
            backend.read("u1")

    @pytest.mark.parametrize("uid", ["../x", "a/b", "a\\b", "..", ""])
    def test_document_path_rejects_escaping_ids(self, uid):
        with pytest.raises(RemoteError, match="Invalid user id"):
            document_path(uid)

    def test_escaping_id_never_touches_disk(self, backend: FilesystemBackend):
        with pytest.raises(RemoteError):
            backend.write("../../outside", {"updatedAt": 1})
        assert not (backend.root.parent / "outside").exists()
        assert list(backend.root.iterdir()) == []

    def test_failed_write_leaves_no_temp_file(self, backend: FilesystemBackend):
        with patch("foodsnap.sync.backends.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(RemoteError, match="disk full"):
                backend.write("u1", {"updatedAt": 1})
        app_dir = backend.root / "users" / "u1" / "app"
        assert [p for p in app_dir.iterdir() if p.suffix == ".tmp"] == []
        assert not (app_dir / "data.json").exists()

    def test_unmounted_path_unavailable(self, tmp_home: Path):
        config = RemoteBackendConfig(
            backend_type=RemoteBackendType.FILESYSTEM,
            local_path=tmp_home / "not-mounted",
        )
        assert FilesystemBackend(config, tmp_home).available() is False


class TestHttpBackend:
    """Tests for HttpBackend with requests mocked out."""

    @pytest.fixture
    def http(self) -> HttpBackend:
        return HttpBackend(RemoteBackendConfig(
            backend_type=RemoteBackendType.HTTP,
            base_url="https://sync.example/v1/",
            token_env_var="FOODSNAP_TEST_TOKEN",
            timeout_seconds=3,
        ))

    @patch("foodsnap.sync.backends.requests.get")
    def test_read_document(self, mock_get, http: HttpBackend, monkeypatch):
        monkeypatch.setenv("FOODSNAP_TEST_TOKEN", "secret")
        mock_get.return_value = _response(200, {"updatedAt": 9})

        assert http.read("u1") == {"updatedAt": 9}
        args, kwargs = mock_get.call_args
        assert args[0] == "https://sync.example/v1/users/u1/app/data"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 3

    @patch("foodsnap.sync.backends.requests.get")
    def test_read_404_is_absent(self, mock_get, http: HttpBackend):
        mock_get.return_value = _response(404)
        assert http.read("u1") is None

    @patch("foodsnap.sync.backends.requests.get")
    def test_read_server_error_raises(self, mock_get, http: HttpBackend):
        mock_get.return_value = _response(503, {"error": "down"})
        with pytest.raises(RemoteError, match="503"):
            http.read("u1")

    @patch("foodsnap.sync.backends.requests.get")
    def test_read_connection_error_raises(self, mock_get, http: HttpBackend):
        mock_get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(RemoteError):
            http.read("u1")

    @patch("foodsnap.sync.backends.requests.get")
    def test_read_non_object_raises(self, mock_get, http: HttpBackend):
        mock_get.return_value = _response(200, [1, 2])
        with pytest.raises(RemoteError):
            http.read("u1")

    @patch("foodsnap.sync.backends.requests.put")
    def test_write_puts_json(self, mock_put, http: HttpBackend):
        mock_put.return_value = _response(200, {})
        http.write("u1", {"updatedAt": 1})
        _, kwargs = mock_put.call_args
        assert kwargs["json"] == {"updatedAt": 1}

    @patch("foodsnap.sync.backends.requests.put")
    def test_write_forbidden_raises(self, mock_put, http: HttpBackend):
        mock_put.return_value = _response(403, {"error": "denied"})
        with pytest.raises(RemoteError, match="403"):
            http.write("u1", {})


class TestRemoteStore:
    """Tests for RemoteStore pull/push semantics."""

    def test_pull_without_identity(self, remote_store: RemoteStore, backend):
        backend.write("u1", make_snapshot().to_json())
        assert remote_store.pull(None) is None

    def test_push_without_identity_is_noop(self, remote_store: RemoteStore, backend):
        assert remote_store.push(None, make_snapshot()) is False
        assert not (backend.root / "users").exists()

    def test_pull_missing_document(self, remote_store: RemoteStore):
        assert remote_store.pull("u1") is None

    def test_push_stamps_push_time(self, remote_store: RemoteStore, clock: FakeClock, backend):
        """The stored updatedAt is the push-time clock, not the snapshot's."""
        clock.now = 99_999
        snap = make_snapshot(updated_at=10)

        assert remote_store.push("u1", snap) is True

        stored = backend.read("u1")
        assert stored["updatedAt"] == 99_999
        assert stored["schemaVersion"] == 1
        assert snap.updated_at == 10
        assert remote_store.pull("u1").updated_at == 99_999

    def test_push_replaces_whole_document(self, remote_store: RemoteStore, backend):
        backend.write("u1", {"schemaVersion": 1, "updatedAt": 1, "extra": "stale"})
        remote_store.push("u1", make_snapshot())
        assert "extra" not in backend.read("u1")

    def test_pull_round_trip_content(self, remote_store: RemoteStore):
        snap = make_snapshot(logs={"2024-02-02": {"water_ml": 250}})
        remote_store.push("u1", snap)
        pulled = remote_store.pull("u1")
        assert pulled.logs == snap.logs
        assert pulled.profile == snap.profile

    def test_pull_corrupt_document_is_absent(self, remote_store: RemoteStore, backend):
        path = backend.root / "users" / "u1" / "app" / "data.json"
        path.parent.mkdir(parents=True)
        path.write_text("garbage")
        assert remote_store.pull("u1") is None

    def test_pull_undecodable_document_is_absent(self, remote_store: RemoteStore, backend):
        path = backend.root / "users" / "u1" / "app" / "data.json"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"\xff\xfe")
        assert remote_store.pull("u1") is None

    def test_escaping_id_degrades_to_absent(self, remote_store: RemoteStore, backend):
        assert remote_store.pull("../x") is None
        assert remote_store.push("../x", make_snapshot()) is False
        assert list(backend.root.iterdir()) == []

    def test_pull_unknown_schema_is_absent(self, remote_store: RemoteStore, backend):
        backend.write("u1", {"schemaVersion": 3, "updatedAt": 1})
        assert remote_store.pull("u1") is None

    def test_push_failure_returns_false(self, clock):
        backend = MagicMock()
        backend.available.return_value = True
        backend.name = "mock"
        backend.write.side_effect = RemoteError("permission denied")
        assert RemoteStore(backend, clock=clock).push("u1", make_snapshot()) is False

    def test_unavailable_backend_skips(self, clock):
        store = RemoteStore(NullBackend(), clock=clock)
        assert store.pull("u1") is None
        assert store.push("u1", make_snapshot()) is False
