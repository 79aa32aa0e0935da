"""Sync commands: setup, bootstrap, push, pull, status, show, weight, scan."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from ..models import FoodResult, MealType
from ..sync.engine import SyncEngine
from ..sync.models import RemoteBackendConfig, RemoteBackendType
from ._common import FOODSNAP_HOME, console, resolution_label


def _format_ms(value: int) -> str:
    if not value:
        return "[dim]never[/]"
    stamp = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return stamp.isoformat(timespec="seconds")


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Offline-first snapshot sync.

        One snapshot per user on the device, one in the cloud.
        Reconciled at session start. Last write wins.
        """

    @sync.command("setup")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option(
        "--backend", "backend_type", required=True,
        type=click.Choice([t.value for t in RemoteBackendType]),
        help="Remote backend to use.",
    )
    @click.option("--path", "local_path", default=None, type=click.Path(),
                  help="Shared directory (filesystem backend).")
    @click.option("--url", "base_url", default=None, help="Document endpoint (http backend).")
    @click.option("--token-env", default=None, help="Env var holding a bearer token.")
    @click.option("--timeout", default=10.0, type=float, show_default=True,
                  help="HTTP timeout in seconds.")
    def sync_setup(home, backend_type, local_path, base_url, token_env, timeout):
        """Configure where the cloud copy of each snapshot lives."""
        if backend_type == RemoteBackendType.HTTP.value and not base_url:
            console.print("[bold red]--url is required for the http backend.[/]")
            sys.exit(1)

        engine = SyncEngine(Path(home))
        engine.set_remote(RemoteBackendConfig(
            backend_type=RemoteBackendType(backend_type),
            local_path=Path(local_path) if local_path else None,
            base_url=base_url,
            token_env_var=token_env,
            timeout_seconds=timeout,
        ))
        available = engine.backend.available()
        console.print(
            f"\n  Remote backend: [cyan]{engine.backend.name}[/] "
            + ("[green]available[/]" if available else "[yellow]not available[/]")
        )
        console.print(f"  [dim]Config: {engine.sync_dir / 'config.yaml'}[/]\n")

    @sync.command("bootstrap")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True, help="User id to bootstrap.")
    @click.option("--offline", is_flag=True, help="Run without a signed-in identity.")
    def sync_bootstrap(home, user_id, offline):
        """Reconcile local and cloud snapshots for a user."""
        engine = SyncEngine(Path(home))
        if offline:
            result = engine.bootstrap(user_id, identity=None)
        else:
            result = engine.bootstrap(user_id)

        snap = result.snapshot
        console.print()
        console.print(
            Panel(
                f"Resolution: {resolution_label(result.resolution)}\n"
                f"Migrated legacy data: {'[green]yes[/]' if result.migrated else 'no'}\n"
                f"Local written: {'yes' if result.local_written else 'no'}\n"
                f"Cloud pushed: {'yes' if result.remote_pushed else 'no'}\n"
                f"Updated at: {_format_ms(snap.updated_at)}\n"
                f"Days logged: [bold]{len(snap.logs)}[/]",
                title=f"Bootstrap: {user_id}",
                border_style="cyan",
            )
        )
        console.print()

    @sync.command("push")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True)
    def sync_push(home, user_id):
        """Upload the local snapshot to the cloud."""
        engine = SyncEngine(Path(home))
        console.print(f"\n  Pushing snapshot for [cyan]{user_id}[/]...", end=" ")
        if engine.push(user_id):
            console.print("[green]done[/]\n")
        else:
            console.print("[red]failed[/]\n")
            sys.exit(1)

    @sync.command("pull")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True)
    def sync_pull(home, user_id):
        """Replace the local snapshot with the cloud copy."""
        engine = SyncEngine(Path(home))
        console.print(f"\n  Pulling snapshot for [cyan]{user_id}[/]...", end=" ")
        snap = engine.pull(user_id)
        if snap is None:
            console.print("[yellow]nothing in the cloud[/]\n")
            return
        console.print(f"[green]done[/] [dim]({_format_ms(snap.updated_at)})[/]\n")

    @sync.command("status")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    def sync_status(home):
        """Show sync configuration and recent activity."""
        engine = SyncEngine(Path(home))
        info = engine.status()
        state = info["state"]
        backend = info["backend"]

        console.print()
        console.print(
            Panel(
                f"Backend: [cyan]{backend['name']}[/] "
                + ("[green]available[/]" if backend["available"] else "[yellow]unavailable[/]")
                + "\n"
                f"Storage: {info['storage']}\n"
                f"Legacy data pending: {'[yellow]yes[/]' if info['legacy_data'] else 'no'}\n"
                f"Last bootstrap: {state['last_bootstrap'] or '[dim]never[/]'}"
                f" ({state['last_resolution'] or '-'})\n"
                f"Last push: {state['last_push'] or '[dim]never[/]'}\n"
                f"Last pull: {state['last_pull'] or '[dim]never[/]'}\n"
                f"Bootstraps: {state['bootstrap_count']}  "
                f"Pushes: {state['push_count']}  Pulls: {state['pull_count']}\n"
                f"Last error: {state['last_error'] or '[dim]none[/]'}",
                title="FoodSnap Sync",
                border_style="magenta",
            )
        )
        console.print()

    @sync.command("show")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True)
    @click.option("--date", "day", default=None, help="Summarise one day (YYYY-MM-DD).")
    def sync_show(home, user_id, day: Optional[str]):
        """Summarise a user's local snapshot."""
        engine = SyncEngine(Path(home))
        snap = engine.local.get(user_id)
        if snap is None:
            console.print(f"[yellow]No local snapshot for {user_id}.[/]")
            sys.exit(1)

        table = Table(title=f"Snapshot: {user_id}", show_header=False)
        table.add_column("field", style="cyan")
        table.add_column("value")
        table.add_row("Updated at", _format_ms(snap.updated_at))
        table.add_row("Profile", str(snap.profile.get("name", "-")))
        table.add_row("Calorie goal", str(snap.goals.get("calories", "-")))
        table.add_row("Days logged", str(len(snap.logs)))
        table.add_row("Weight samples", str(len(snap.weight_history)))
        table.add_row("Recent scans", str(len(snap.recent_scans)))

        if day:
            try:
                log = snap.day_log(day)
            except ValidationError:
                table.add_row(day, "[yellow]unreadable day record[/]")
            else:
                table.add_row(f"{day} entries", str(log.entry_count))
                table.add_row(f"{day} kcal in", f"{log.calories_in:.0f}")
                table.add_row(f"{day} kcal out", f"{log.calories_out:.0f}")
                table.add_row(f"{day} water", f"{log.water_ml:.0f} ml")

        console.print(table)

    @sync.command("weight")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True)
    @click.option("--date", "day", required=True, help="Sample date (YYYY-MM-DD).")
    @click.argument("weight", type=float)
    def sync_weight(home, user_id, day, weight):
        """Record a weight sample and save it locally and to the cloud."""
        engine = SyncEngine(Path(home))
        snap = engine.local.get(user_id)
        if snap is None:
            console.print(
                f"[yellow]No local snapshot for {user_id}.[/] "
                "Run [cyan]foodsnap sync bootstrap[/cyan] first."
            )
            sys.exit(1)

        snap.record_weight(day, weight)
        snap.profile["weightKg"] = weight
        results = engine.save(user_id, snap)
        console.print(
            f"\n  Recorded [bold]{weight:g}[/] kg on {day}: "
            f"local {'[green]saved[/]' if results['local'] else '[red]failed[/]'}, "
            f"cloud {'[green]saved[/]' if results['remote'] else '[yellow]skipped[/]'}\n"
        )

    @sync.command("scan")
    @click.option("--home", default=FOODSNAP_HOME, type=click.Path())
    @click.option("--user", "user_id", required=True)
    @click.option("--name", "meal_name", required=True, help="Recognised food name.")
    @click.option("--kcal", default=0.0, type=float, help="Calories of the item.")
    @click.option(
        "--category",
        type=click.Choice([m.value for m in MealType]),
        default=MealType.SNACK.value,
        show_default=True,
    )
    def sync_scan(home, user_id, meal_name, kcal, category):
        """Add a scanned food to the recent-scans list and save it."""
        engine = SyncEngine(Path(home))
        snap = engine.local.get(user_id)
        if snap is None:
            console.print(
                f"[yellow]No local snapshot for {user_id}.[/] "
                "Run [cyan]foodsnap sync bootstrap[/cyan] first."
            )
            sys.exit(1)

        snap.add_recent_scan(
            FoodResult(
                meal_name=meal_name,
                calories_kcal=kcal,
                category=MealType(category),
            )
        )
        results = engine.save(user_id, snap)
        console.print(
            f"\n  Scanned [bold]{meal_name}[/] ({len(snap.recent_scans)} recent): "
            f"local {'[green]saved[/]' if results['local'] else '[red]failed[/]'}, "
            f"cloud {'[green]saved[/]' if results['remote'] else '[yellow]skipped[/]'}\n"
        )
