"""Default state for a user with no data anywhere."""

from __future__ import annotations

from typing import Callable

from .models import Goals, Profile
from .sync.models import Snapshot, now_ms

DEFAULT_PROFILE = Profile()
DEFAULT_GOALS = Goals()


def make_empty_snapshot(clock: Callable[[], int] = now_ms) -> Snapshot:
    """Fresh snapshot: default profile and goals, nothing logged."""
    return Snapshot(
        updated_at=clock(),
        profile={**DEFAULT_PROFILE.to_json(), "unlockedBadges": []},
        goals=DEFAULT_GOALS.to_json(),
    )
