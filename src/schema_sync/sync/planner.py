"""Database-level diff between a live snapshot and catalog records.

Pure logic -- no I/O, no database connections.  The reconciler uses the
same matching rules when it applies a run.

Usage:
    from schema_sync.sync.planner import plan_sync

    plan = plan_sync(snapshot, existing_databases)
    print(plan.format_report())
"""

from schema_sync.catalog.models import CatalogDatabase
from schema_sync.schema.models import LiveSchemaSnapshot
from schema_sync.sync.models import SyncPlan

# The tool's own metadata database; never reconciled
INTERNAL_DATABASE_NAME = "schema_sync"


def is_internal_database(name: str) -> bool:
    """Whether ``name`` is the internal database (case-insensitive).

    Examples:
        >>> is_internal_database("Schema_Sync")
        True
        >>> is_internal_database("orders")
        False
    """
    return name.casefold() == INTERNAL_DATABASE_NAME.casefold()


def match_database(
    name: str,
    existing: list[CatalogDatabase],
) -> CatalogDatabase | None:
    """Return the first catalog record whose name equals ``name`` exactly."""
    for database in existing:
        if database.name == name:
            return database
    return None


def missing_databases(
    snapshot: LiveSchemaSnapshot,
    existing: list[CatalogDatabase],
) -> list[CatalogDatabase]:
    """Catalog records with no live database of the same name.

    Internal databases are never reported.
    """
    live_names = set(snapshot.database_names)
    return [
        database
        for database in existing
        if database.name not in live_names and not is_internal_database(database.name)
    ]


def plan_sync(
    snapshot: LiveSchemaSnapshot,
    existing: list[CatalogDatabase],
) -> SyncPlan:
    """Compute the database-level changes a run would apply.

    Args:
        snapshot: Live schema of the instance.
        existing: Catalog database records of the same instance.

    Returns:
        ``SyncPlan`` listing databases to create, refresh and mark not found,
        in snapshot order then catalog order.

    Examples:
        >>> from schema_sync.schema.models import LiveDatabase
        >>> plan = plan_sync(LiveSchemaSnapshot(databases=[LiveDatabase(name="orders")]), [])
        >>> plan.create
        ['orders']
    """
    plan = SyncPlan()

    for live_database in snapshot.databases:
        if is_internal_database(live_database.name):
            plan.skipped.append(live_database.name)
            continue

        if match_database(live_database.name, existing) is not None:
            plan.refresh.append(live_database.name)
        else:
            plan.create.append(live_database.name)
        plan.table_counts[live_database.name] = len(live_database.tables)

    plan.mark_not_found = [
        database.name for database in missing_databases(snapshot, existing)
    ]
    return plan
