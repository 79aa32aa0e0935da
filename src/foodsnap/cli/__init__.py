"""
FoodSnap CLI -- inspect and drive snapshot sync from a terminal.

Each command group lives in its own module and is registered on the
main Click group here.

Entry point: foodsnap.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="foodsnap")
@click.option("--verbose", "-v", is_flag=True, help="Log sync activity to stderr.")
def main(verbose):
    """FoodSnap -- offline-first nutrition data sync."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .sync_cmd import register_sync_commands

register_sync_commands(main)
