"""CLI for catalog synchronization.

Usage:
    schema-sync instances
    schema-sync ping --instance orders-prod
    schema-sync init-catalog
    schema-sync sync --instance orders-prod --dry-run
    SYNC_INSTANCE=orders-prod schema-sync sync
    schema-sync status --instance orders-prod

Commands:
    instances     - List configured instances
    ping          - Test the connection to an instance
    init-catalog  - Create the catalog tables
    sync          - Reconcile the catalog with an instance's live schema
    status        - Show catalog databases of an instance
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from schema_sync.catalog.models import SyncStatus
from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import Instance, SyncConfig
from schema_sync.errors import SyncError
from schema_sync.factory import InstanceNotFoundError, get_catalog, get_instance
from schema_sync.schema.introspector import ping_instance
from schema_sync.sync.models import SyncPlan
from schema_sync.sync.reconciler import load_catalog_databases, plan_instance, synchronize

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_config(args: argparse.Namespace) -> SyncConfig | None:
    """Load sync.toml, printing the error and returning None on failure."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_sync_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _resolve_instance(args: argparse.Namespace, config: SyncConfig) -> Instance | None:
    """Resolve the target instance, printing the error on failure."""
    try:
        return get_instance(
            config,
            name=getattr(args, "instance", None),
            env_prefix=getattr(args, "env_prefix", ""),
        )
    except InstanceNotFoundError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return None


def _format_ts(ts: int) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_init_catalog(args: argparse.Namespace) -> int:
    """Async implementation for init-catalog command.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1

    catalog = get_catalog(config)
    try:
        await catalog.ensure_schema()
    except SyncError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await catalog.close()

    console.print("[bold green]v[/bold green] Catalog tables ready")
    return 0


async def _async_sync(args: argparse.Namespace) -> int:
    """Async implementation for sync command.

    With ``--dry-run`` only the database-level plan is shown.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1
    instance = _resolve_instance(args, config)
    if instance is None:
        return 1

    console.print(
        f"Syncing instance [bold cyan]{instance.name}[/bold cyan] "
        f"({instance.engine.value} {instance.host})",
        style="dim",
    )

    catalog = get_catalog(config)
    try:
        if args.dry_run:
            try:
                plan = await plan_instance(instance, catalog)
            except SyncError as e:
                console.print(f"\n[bold red]x[/bold red] {e}")
                return 1
            _print_plan(plan)
            console.print()
            console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
            return 0

        result = await synchronize(
            instance,
            catalog,
            actor_id=config.sync.actor_id,
            project_id=config.sync.project_id,
        )
    finally:
        await catalog.close()

    stats_table = Table(title="Catalog Changes", show_header=True, header_style="bold")
    stats_table.add_column("", style="dim")
    stats_table.add_column("Databases", justify="right")
    stats_table.add_column("Tables", justify="right")
    stats_table.add_row(
        "Created",
        str(result.stats.databases_created),
        str(result.stats.tables_created),
    )
    stats_table.add_row(
        "Refreshed",
        str(result.stats.databases_refreshed),
        str(result.stats.tables_refreshed),
    )
    stats_table.add_row(
        "Not found",
        str(result.stats.databases_marked_not_found),
        "-",
    )
    console.print()
    console.print(stats_table)

    if result.success:
        console.print("[bold green]v[/bold green] Sync complete.")
        return 0

    console.print(f"[bold red]x[/bold red] {result.error}")
    return 1


def _print_plan(plan: SyncPlan) -> None:
    """Render a ``SyncPlan`` as a table."""
    console.print()
    plan_table = Table(title="Sync Plan", show_header=True, header_style="bold")
    plan_table.add_column("Database")
    plan_table.add_column("Action")
    plan_table.add_column("Tables", justify="right")

    for name in plan.create:
        plan_table.add_row(name, "[green]CREATE[/green]", str(plan.table_counts.get(name, 0)))
    for name in plan.refresh:
        plan_table.add_row(name, "REFRESH", str(plan.table_counts.get(name, 0)))
    for name in plan.mark_not_found:
        plan_table.add_row(name, "[yellow]NOT FOUND[/yellow]", "-")
    for name in plan.skipped:
        plan_table.add_row(f"[dim]{name}[/dim]", "[dim]SKIP (internal)[/dim]", "-")

    console.print(plan_table)


async def _async_status(args: argparse.Namespace) -> int:
    """Async implementation for status command.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1
    instance = _resolve_instance(args, config)
    if instance is None:
        return 1

    catalog = get_catalog(config)
    try:
        databases = await load_catalog_databases(catalog, instance)
    except SyncError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await catalog.close()

    if not databases:
        console.print(f"[yellow]No catalog records for {instance.name}.[/yellow]")
        console.print(
            "[dim]Run[/dim] [cyan]schema-sync sync[/cyan] [dim]first.[/dim]"
        )
        return 0

    table = Table(
        title=f"Catalog: {instance.name}", show_header=True, header_style="bold"
    )
    table.add_column("Database")
    table.add_column("Charset")
    table.add_column("Collation")
    table.add_column("Status")
    table.add_column("Last synced")

    for database in databases:
        status = (
            "[green]OK[/green]"
            if database.sync_status is SyncStatus.OK
            else "[yellow]NOT FOUND[/yellow]"
        )
        table.add_row(
            database.name,
            database.character_set,
            database.collation,
            status,
            _format_ts(database.last_successful_sync_ts),
        )

    console.print(table)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_instances(args: argparse.Namespace) -> int:
    """List configured instances.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if sync.toml not found.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Instances", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("ID", justify="right")
    table.add_column("Engine")
    table.add_column("Host")
    table.add_column("Description")

    for name, instance in config.instances.items():
        host = f"{instance.host}:{instance.port}" if instance.port else instance.host
        table.add_row(
            f"[bold cyan]{name}[/bold cyan]",
            str(instance.id),
            instance.engine.value,
            host,
            instance.description,
        )

    console.print(table)
    return 0


def cmd_ping(args: argparse.Namespace) -> int:
    """Test the connection to an instance.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1
    instance = _resolve_instance(args, config)
    if instance is None:
        return 1

    error = ping_instance(instance.connection_info())
    if error:
        console.print(f"[bold red]x[/bold red] {error}")
        return 1

    console.print(
        f"[bold green]v[/bold green] Connected to [bold cyan]{instance.name}[/bold cyan]"
    )
    return 0


def cmd_init_catalog(args: argparse.Namespace) -> int:
    """Create the catalog tables.  Wraps the async implementation."""
    return asyncio.run(_async_init_catalog(args))


def cmd_sync(args: argparse.Namespace) -> int:
    """Reconcile the catalog.  Wraps the async implementation."""
    return asyncio.run(_async_sync(args))


def cmd_status(args: argparse.Namespace) -> int:
    """Show catalog databases.  Wraps the async implementation."""
    return asyncio.run(_async_status(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="schema-sync",
        description="Synchronize the schema catalog with live database instances",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to sync.toml (default: ./sync.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_SYNC_INSTANCE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_instances = subparsers.add_parser("instances", help="List configured instances")
    p_instances.set_defaults(func=cmd_instances)

    p_ping = subparsers.add_parser("ping", help="Test the connection to an instance")
    p_ping.add_argument("--instance", "-i", help="Instance name from sync.toml")
    p_ping.set_defaults(func=cmd_ping)

    p_init = subparsers.add_parser("init-catalog", help="Create the catalog tables")
    p_init.set_defaults(func=cmd_init_catalog)

    p_sync = subparsers.add_parser(
        "sync",
        help="Reconcile the catalog with an instance's live schema",
    )
    p_sync.add_argument("--instance", "-i", help="Instance name from sync.toml")
    p_sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be synced without making changes",
    )
    p_sync.set_defaults(func=cmd_sync)

    p_status = subparsers.add_parser("status", help="Show catalog databases of an instance")
    p_status.add_argument("--instance", "-i", help="Instance name from sync.toml")
    p_status.set_defaults(func=cmd_status)

    return parser


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
