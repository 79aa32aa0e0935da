"""Shared utilities for the CLI command modules.

Provides the Rich console instance and the resolution formatting helper.
"""

from __future__ import annotations

import logging

from rich.console import Console

from .. import FOODSNAP_HOME
from ..sync.models import Resolution

console = Console()
logger = logging.getLogger("foodsnap.cli")

__all__ = ["FOODSNAP_HOME", "console", "logger", "resolution_label"]


def resolution_label(resolution: Resolution) -> str:
    """Map a bootstrap resolution to a Rich-formatted description.

    Args:
        resolution: Which reconciliation branch was taken.

    Returns:
        str: Rich markup string.
    """
    return {
        Resolution.CREATED_EMPTY: "[bold cyan]CREATED[/] fresh state",
        Resolution.CLOUD_ONLY: "[bold green]DOWNLOADED[/] from cloud",
        Resolution.LOCAL_ONLY: "[bold green]UPLOADED[/] local data",
        Resolution.CLOUD_NEWER: "[bold yellow]CLOUD WINS[/] local overwritten",
        Resolution.LOCAL_NEWER: "[bold yellow]LOCAL WINS[/] cloud updated",
        Resolution.IN_SYNC: "[bold green]IN SYNC[/]",
    }.get(resolution, "[dim]UNKNOWN[/]")
