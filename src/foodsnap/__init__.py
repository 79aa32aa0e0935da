"""
FoodSnap Sync -- offline-first state synchronization for FoodSnap.

One versioned snapshot per user, kept on the device and in the cloud.
Reconciled once per session. Last write wins.
"""

import os

__version__ = "0.1.0"
__author__ = "FoodSnap"

FOODSNAP_HOME = os.environ.get("FOODSNAP_HOME", "~/.foodsnap")
