"""
Sync data models -- the snapshot, configuration and state for the sync system.
"""

from __future__ import annotations

import time
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import DayLog, FoodResult, WeightEntry

SCHEMA_VERSION = 1
RECENT_SCANS_LIMIT = 10


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class Snapshot(BaseModel):
    """The unit of synchronization: all of one user's app state.

    Written as a whole, never patched. ``updated_at`` is stamped at write
    time and is the only signal used to resolve conflicts.
    """

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    updated_at: int = Field(0, alias="updatedAt")
    profile: dict[str, Any] = Field(default_factory=dict)
    goals: dict[str, Any] = Field(default_factory=dict)
    logs: dict[str, Any] = Field(default_factory=dict)
    weight_history: list[Any] = Field(default_factory=list, alias="weightHistory")
    recent_scans: list[Any] = Field(default_factory=list, alias="recentScans")

    @field_validator("schema_version")
    @classmethod
    def _known_version(cls, value: int) -> int:
        if value != SCHEMA_VERSION:
            raise ValueError(
                f"unsupported schemaVersion {value} (expected {SCHEMA_VERSION})"
            )
        return value

    @field_validator("updated_at", mode="before")
    @classmethod
    def _missing_timestamp(cls, value: Any) -> Any:
        return 0 if value is None else value

    def to_json(self) -> dict:
        """Wire/disk representation with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    def dumps(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def loads(cls, raw: Union[str, bytes]) -> "Snapshot":
        """Parse a serialized snapshot.

        Raises:
            pydantic.ValidationError: On malformed JSON, wrong shapes or an
                unsupported schema version.
        """
        return cls.model_validate_json(raw)

    def touch(self, now: Optional[int] = None) -> "Snapshot":
        self.updated_at = now_ms() if now is None else now
        return self

    def record_weight(self, date: str, weight: float) -> None:
        """Record the weight for ``date``, replacing any sample for that day."""
        entry = WeightEntry(date=date, weight=weight)
        history = [
            h for h in self.weight_history
            if not (isinstance(h, dict) and h.get("date") == date)
        ]
        history.append(entry.to_json())
        history.sort(key=lambda h: h.get("date", "") if isinstance(h, dict) else "")
        self.weight_history = history

    def add_recent_scan(
        self, scan: FoodResult, limit: int = RECENT_SCANS_LIMIT
    ) -> None:
        """Put ``scan`` first, dropping older scans of the same meal name."""
        name = scan.meal_name.lower()
        kept = [
            s for s in self.recent_scans
            if not (
                isinstance(s, dict)
                and str(s.get("meal_name", "")).lower() == name
            )
        ]
        self.recent_scans = [scan.to_json(), *kept][:limit]

    def day_log(self, date: str) -> DayLog:
        """Typed record for ``date``; an empty day when nothing was logged."""
        raw = self.logs.get(date)
        if not raw or not isinstance(raw, dict):
            return DayLog(date=date)
        return DayLog.model_validate({**raw, "date": date})


class Resolution(str, Enum):
    """Which branch of the reconciliation policy produced the result."""

    CREATED_EMPTY = "created_empty"
    CLOUD_ONLY = "cloud_only"
    LOCAL_ONLY = "local_only"
    CLOUD_NEWER = "cloud_newer"
    LOCAL_NEWER = "local_newer"
    IN_SYNC = "in_sync"


class BootstrapResult(BaseModel):
    """Outcome of one bootstrap run."""

    snapshot: Snapshot
    resolution: Resolution
    migrated: bool = False
    local_written: bool = False
    remote_pushed: bool = False


class RemoteBackendType(str, Enum):
    """Supported remote document backends."""

    NONE = "none"
    FILESYSTEM = "filesystem"
    HTTP = "http"


class RemoteBackendConfig(BaseModel):
    """Configuration for the remote snapshot backend."""

    backend_type: RemoteBackendType = RemoteBackendType.NONE
    enabled: bool = True

    # Filesystem (mounted drive, NAS, shared folder)
    local_path: Optional[Path] = None

    # HTTP document endpoint
    base_url: Optional[str] = None
    token_env_var: Optional[str] = None
    timeout_seconds: float = 10.0


class SyncConfig(BaseModel):
    """Complete sync configuration for a FoodSnap home."""

    storage_file: Path = Path("storage.json")
    local_key_prefix: str = "foodsnap_local_v1_"
    remote: RemoteBackendConfig = Field(default_factory=RemoteBackendConfig)


class SyncState(BaseModel):
    """Current sync state persisted to disk."""

    last_bootstrap: Optional[datetime] = None
    last_user: Optional[str] = None
    last_resolution: Optional[Resolution] = None
    last_push: Optional[datetime] = None
    last_pull: Optional[datetime] = None
    bootstrap_count: int = 0
    push_count: int = 0
    pull_count: int = 0
    last_error: Optional[str] = None
