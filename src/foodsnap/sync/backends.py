"""
Remote document backends -- where the cloud copy of a snapshot lives.

Each backend stores one JSON document per user at ``users/<uid>/app/data``
and knows how to read and replace it. The remote store picks one based
on config.

Filesystem: a mounted drive, NAS or shared folder.
HTTP: a REST document endpoint (GET to read, PUT to replace).
None: no remote configured; the app runs local-only.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests

from .models import RemoteBackendConfig, RemoteBackendType

logger = logging.getLogger("foodsnap.sync.backends")


class RemoteError(Exception):
    """Raised by a backend when the remote document cannot be read or written."""


def document_path(uid: str) -> str:
    """Remote path of a user's snapshot document.

    Raises:
        RemoteError: If ``uid`` is empty or could leave the ``users/`` tree.
    """
    if not uid or "/" in uid or "\\" in uid or ".." in uid:
        raise RemoteError(f"Invalid user id for remote path: {uid!r}")
    return f"users/{uid}/app/data"


class RemoteBackend(ABC):
    """Abstract remote document backend."""

    @abstractmethod
    def read(self, uid: str) -> Optional[dict]:
        """Fetch the user's document.

        Args:
            uid: Authenticated user id.

        Returns:
            The stored document, or None if it does not exist.

        Raises:
            RemoteError: If the backend could not be reached or the
                document is not a JSON object.
        """

    @abstractmethod
    def write(self, uid: str, document: dict) -> None:
        """Replace the user's document.

        Raises:
            RemoteError: If the write did not complete.
        """

    @abstractmethod
    def available(self) -> bool:
        """Check if this backend is currently usable."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


class NullBackend(RemoteBackend):
    """Placeholder used when no remote is configured."""

    def __init__(self, config: Optional[RemoteBackendConfig] = None):
        self.config = config or RemoteBackendConfig()

    @property
    def name(self) -> str:
        return "none"

    def read(self, uid: str) -> Optional[dict]:
        return None

    def write(self, uid: str, document: dict) -> None:
        raise RemoteError("No remote backend configured")

    def available(self) -> bool:
        return False


class FilesystemBackend(RemoteBackend):
    """Documents as JSON files under a shared directory."""

    def __init__(self, config: RemoteBackendConfig, home: Path):
        self.config = config
        self.root = (
            config.local_path.expanduser()
            if config.local_path
            else home / "sync" / "remote"
        )

    @property
    def name(self) -> str:
        return "filesystem"

    def _file(self, uid: str) -> Path:
        return self.root / (document_path(uid) + ".json")

    def read(self, uid: str) -> Optional[dict]:
        path = self._file(uid)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RemoteError(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise RemoteError(f"{path} is not a JSON object")
        return data

    def write(self, uid: str, document: dict) -> None:
        path = self._file(uid)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(document, fh, indent=2)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise RemoteError(f"Cannot write {path}: {exc}") from exc
        logger.info("Snapshot written to %s", path)

    def available(self) -> bool:
        return self.root.exists() or self.config.local_path is None


class HttpBackend(RemoteBackend):
    """REST document endpoint: ``GET``/``PUT <base_url>/users/<uid>/app/data``."""

    def __init__(self, config: RemoteBackendConfig):
        self.config = config

    @property
    def name(self) -> str:
        return "http"

    def _url(self, uid: str) -> str:
        return f"{(self.config.base_url or '').rstrip('/')}/{document_path(uid)}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.token_env_var:
            token = os.environ.get(self.config.token_env_var, "")
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def read(self, uid: str) -> Optional[dict]:
        try:
            resp = requests.get(
                self._url(uid),
                headers=self._headers(),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RemoteError(f"GET {self._url(uid)} failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise RemoteError(
                f"GET {self._url(uid)} returned {resp.status_code}: {resp.text[:200]}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteError(f"GET {self._url(uid)} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RemoteError(f"GET {self._url(uid)} did not return an object")
        return data

    def write(self, uid: str, document: dict) -> None:
        try:
            resp = requests.put(
                self._url(uid),
                json=document,
                headers=self._headers(),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RemoteError(f"PUT {self._url(uid)} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise RemoteError(
                f"PUT {self._url(uid)} returned {resp.status_code}: {resp.text[:200]}"
            )
        logger.info("Snapshot written to %s", self._url(uid))

    def available(self) -> bool:
        return bool(self.config.base_url)


def create_backend(config: RemoteBackendConfig, home: Path) -> RemoteBackend:
    """Factory function to create the configured backend.

    Args:
        config: Remote backend configuration.
        home: FoodSnap home directory.

    Returns:
        Instantiated RemoteBackend. Disabled configs yield a NullBackend.

    Raises:
        ValueError: If backend type is not supported.
    """
    if not config.enabled or config.backend_type == RemoteBackendType.NONE:
        return NullBackend(config)
    if config.backend_type == RemoteBackendType.FILESYSTEM:
        return FilesystemBackend(config, home)
    if config.backend_type == RemoteBackendType.HTTP:
        return HttpBackend(config)
    raise ValueError(f"Unsupported backend: {config.backend_type}")
