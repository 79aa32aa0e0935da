"""
FoodSnap Sync -- offline-first snapshot synchronization.

The device keeps a full copy of the user's state. So does the cloud.
At session start the bootstrapper picks one, last write wins, and
brings the other side in line.

Backends: filesystem (shared folder, NAS), HTTP document endpoint.
"""

from .bootstrap import SyncBootstrapper, bootstrap_sync
from .engine import SyncEngine
from .models import Snapshot

__all__ = ["Snapshot", "SyncBootstrapper", "SyncEngine", "bootstrap_sync"]
