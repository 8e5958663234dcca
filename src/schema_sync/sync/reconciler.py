"""Reconcile an instance's live schema with the catalog (async).

Compares the stored database records with the just-introspected schema:

1. **Matched**: a live database with a catalog record of the same name
   is patched to ``OK``.  Its live tables are created when missing from
   the catalog, otherwise patched to ``OK``.  Structural drift on existing
   tables is not corrected.
2. **New**: a live database with no catalog record is created, along
   with all of its tables.
3. **Missing**: a catalog database absent from the live schema is patched
   to ``NOT_FOUND``.  Its tables are left untouched.  Records are never
   deleted: they may be referenced by other entities, and a disappearance
   may be a mistake that a human should review.

The first failure halts the run.  Writes applied before the failure are
kept, and their counts are reported in ``SyncResult.stats``.

Callers must serialize runs for the same instance; concurrent runs
against one instance can race on creates.

Usage:
    from schema_sync.sync.reconciler import synchronize

    result = await synchronize(instance, catalog)
    if not result.success:
        print(result.error)
"""

import asyncio
import logging
import time
from collections.abc import Callable

from schema_sync.catalog.models import (
    CatalogDatabase,
    DatabaseCreate,
    DatabaseFind,
    DatabasePatch,
    SyncStatus,
    TableCreate,
    TableFind,
    TablePatch,
)
from schema_sync.catalog.store import Catalog
from schema_sync.config.models import DEFAULT_PROJECT_ID, SYSTEM_ACTOR_ID, Instance
from schema_sync.errors import (
    CatalogNotFoundError,
    ConflictError,
    ErrorKind,
    InstanceConnectionError,
    IntrospectionError,
    PersistenceError,
    SyncError,
)
from schema_sync.schema.introspector import (
    IntrospectorFactory,
    open_introspector,
    read_live_schema,
)
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable
from schema_sync.sync.models import SyncPlan, SyncResult, SyncStats
from schema_sync.sync.planner import (
    is_internal_database,
    match_database,
    missing_databases,
    plan_sync,
)

logger = logging.getLogger(__name__)

_ERROR_TYPES: dict[ErrorKind, type[SyncError]] = {
    ErrorKind.CONNECTION: InstanceConnectionError,
    ErrorKind.INTROSPECTION: IntrospectionError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.NOT_FOUND: CatalogNotFoundError,
    ErrorKind.PERSISTENCE: PersistenceError,
}


def _unix_now() -> int:
    return int(time.time())


def _contextual_error(
    error: Exception,
    generic: str,
    *,
    instance: str,
    database: str | None = None,
    table: str | None = None,
    conflict: str | None = None,
    not_found: str | None = None,
) -> SyncError:
    """Wrap a catalog failure with instance/database/table context.

    Conflicts and vanished records get their dedicated message when one
    is given; anything else keeps its kind and gets ``generic`` with the
    cause appended.  Exceptions that are not ``SyncError`` are treated as
    persistence failures.
    """
    kind = error.kind if isinstance(error, SyncError) else ErrorKind.PERSISTENCE
    context = {"instance": instance, "database": database, "table": table}

    if kind is ErrorKind.CONFLICT and conflict is not None:
        return ConflictError(conflict, **context)
    if kind is ErrorKind.NOT_FOUND and not_found is not None:
        return CatalogNotFoundError(not_found, **context)
    return _ERROR_TYPES[kind](f"{generic}. Error {error}", **context)


class Reconciler:
    """Applies one snapshot to the catalog records of one instance.

    Args:
        catalog: Catalog store to write to.
        instance: Instance the snapshot was read from.
        actor_id: Identity recorded as creator/updater of every write.
        project_id: Project assigned to newly discovered databases.
        now: Unix timestamp of this run.
    """

    def __init__(
        self,
        catalog: Catalog,
        instance: Instance,
        *,
        actor_id: int,
        project_id: int,
        now: int,
    ) -> None:
        self._catalog = catalog
        self._instance = instance
        self._actor_id = actor_id
        self._project_id = project_id
        self._now = now
        self.stats = SyncStats()

    async def apply(
        self,
        snapshot: LiveSchemaSnapshot,
        existing: list[CatalogDatabase],
    ) -> SyncStats:
        """Drive the catalog toward ``snapshot``.

        Args:
            snapshot: Live schema of the instance.
            existing: Catalog database records of the instance, loaded
                before any write.

        Returns:
            Counts of the writes applied.

        Raises:
            SyncError: On the first failed catalog operation.
        """
        for live_database in snapshot.databases:
            if is_internal_database(live_database.name):
                logger.debug(f"Skipping internal database {live_database.name}")
                continue

            matched = match_database(live_database.name, existing)
            if matched is not None:
                database = await self._patch_database(matched, SyncStatus.OK)
                self.stats.databases_refreshed += 1
                for live_table in live_database.tables:
                    await self._sync_table(database, live_table)
            else:
                database = await self._create_database(live_database)
                for live_table in live_database.tables:
                    await self._create_table(database, live_table)

        for missing in missing_databases(snapshot, existing):
            await self._patch_database(missing, SyncStatus.NOT_FOUND)
            self.stats.databases_marked_not_found += 1

        return self.stats

    def _advance(self, previous: int) -> int:
        """Sync timestamp for a patch; never earlier than the stored one."""
        return max(self._now, previous)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def _patch_database(
        self,
        database: CatalogDatabase,
        status: SyncStatus,
    ) -> CatalogDatabase:
        patch = DatabasePatch(
            id=database.id,
            updater_id=self._actor_id,
            sync_status=status,
            last_successful_sync_ts=self._advance(database.last_successful_sync_ts),
        )
        prefix = f"failed to sync database for instance: {self._instance.name}"
        try:
            patched = await self._catalog.patch_database(patch)
        except Exception as e:
            raise _contextual_error(
                e,
                f"{prefix}. Failed to update database: {database.name}",
                instance=self._instance.name,
                database=database.name,
                not_found=f"{prefix}. Database not found: {database.name}",
            ) from e

        logger.debug(f"Marked database {database.name} as {status.value}")
        return patched

    async def _create_database(self, live_database: LiveDatabase) -> CatalogDatabase:
        create = DatabaseCreate(
            creator_id=self._actor_id,
            instance_id=self._instance.id,
            project_id=self._project_id,
            name=live_database.name,
            character_set=live_database.character_set,
            collation=live_database.collation,
            sync_status=SyncStatus.OK,
            last_successful_sync_ts=self._now,
        )
        prefix = f"failed to sync database for instance: {self._instance.name}"
        try:
            database = await self._catalog.create_database(create)
        except Exception as e:
            raise _contextual_error(
                e,
                f"{prefix}. Failed to import new database: {live_database.name}",
                instance=self._instance.name,
                database=live_database.name,
                conflict=f"{prefix}. Database name already exists: {live_database.name}",
            ) from e

        self.stats.databases_created += 1
        logger.debug(f"Imported new database {live_database.name}")
        return database

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def _sync_table(self, database: CatalogDatabase, live_table: LiveTable) -> None:
        prefix = (
            f"failed to sync table for instance: {self._instance.name}, "
            f"database: {database.name}"
        )
        try:
            stored = await self._catalog.find_table(
                TableFind(database_id=database.id, name=live_table.name)
            )
        except Exception as e:
            raise _contextual_error(
                e,
                prefix,
                instance=self._instance.name,
                database=database.name,
                table=live_table.name,
            ) from e

        if stored is None:
            await self._create_table(database, live_table)
            return

        patch = TablePatch(
            id=stored.id,
            updater_id=self._actor_id,
            sync_status=SyncStatus.OK,
            last_successful_sync_ts=self._advance(stored.last_successful_sync_ts),
        )
        try:
            await self._catalog.patch_table(patch)
        except Exception as e:
            raise _contextual_error(
                e,
                f"{prefix}. Failed to update table: {stored.name}",
                instance=self._instance.name,
                database=database.name,
                table=stored.name,
                not_found=f"{prefix}. Table not found: {stored.name}",
            ) from e

        self.stats.tables_refreshed += 1

    async def _create_table(self, database: CatalogDatabase, live_table: LiveTable) -> None:
        create = TableCreate(
            creator_id=self._actor_id,
            database_id=database.id,
            sync_status=SyncStatus.OK,
            last_successful_sync_ts=self._now,
            **live_table.model_dump(),
        )
        try:
            await self._catalog.create_table(create)
        except Exception as e:
            raise _contextual_error(
                e,
                f"failed to sync database for instance: {self._instance.name}, "
                f"database: {database.name}. Failed to import new table: {live_table.name}",
                instance=self._instance.name,
                database=database.name,
                table=live_table.name,
                conflict=(
                    f"failed to sync table for instance: {self._instance.name}, "
                    f"database: {database.name}. Table name already exists: {live_table.name}"
                ),
            ) from e

        self.stats.tables_created += 1
        logger.debug(f"Imported new table {database.name}.{live_table.name}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def load_catalog_databases(
    catalog: Catalog,
    instance: Instance,
) -> list[CatalogDatabase]:
    """Load every catalog database record of ``instance``.

    Raises:
        SyncError: If the catalog query fails.
    """
    try:
        return await catalog.find_databases(DatabaseFind(instance_id=instance.id))
    except Exception as e:
        raise _contextual_error(
            e,
            f"failed to sync database for instance: {instance.name}. "
            f"Failed to find database list",
            instance=instance.name,
        ) from e


async def synchronize(
    instance: Instance,
    catalog: Catalog,
    *,
    actor_id: int = SYSTEM_ACTOR_ID,
    project_id: int = DEFAULT_PROJECT_ID,
    introspector_factory: IntrospectorFactory = open_introspector,
    clock: Callable[[], int] = _unix_now,
) -> SyncResult:
    """Synchronize the catalog with the live schema of ``instance``.

    Introspects the instance once, loads its catalog records once, then
    applies the diff.  Connection and introspection failures leave the
    catalog untouched.

    Args:
        instance: Instance to synchronize.
        catalog: Catalog store to reconcile.
        actor_id: Identity recorded on every write.
        project_id: Project assigned to newly discovered databases.
        introspector_factory: Builds an introspector from connection info.
        clock: Returns the current Unix time in seconds.

    Returns:
        ``SyncResult`` with ``success``, the first error (if any) and the
        counts of applied writes.

    Example:
        >>> result = await synchronize(instance, catalog)
        >>> result.stats.databases_created
        3
    """
    result = SyncResult(instance_name=instance.name)
    reconciler = Reconciler(
        catalog,
        instance,
        actor_id=actor_id,
        project_id=project_id,
        now=clock(),
    )

    try:
        snapshot = await asyncio.to_thread(
            read_live_schema, instance, introspector_factory
        )
        existing = await load_catalog_databases(catalog, instance)
        await reconciler.apply(snapshot, existing)
    except SyncError as e:
        logger.warning(f"Sync of instance {instance.name} failed: {e}")
        result.error = str(e)
        result.error_kind = e.kind
    else:
        result.success = True
        logger.info(
            f"Synced instance {instance.name}: "
            f"{reconciler.stats.creates} created, {reconciler.stats.patches} patched"
        )

    result.stats = reconciler.stats
    return result


async def plan_instance(
    instance: Instance,
    catalog: Catalog,
    *,
    introspector_factory: IntrospectorFactory = open_introspector,
) -> SyncPlan:
    """Compute what ``synchronize()`` would do, without writing.

    Raises:
        SyncError: If the instance cannot be introspected or the catalog
            cannot be read.
    """
    snapshot = await asyncio.to_thread(
        read_live_schema, instance, introspector_factory
    )
    existing = await load_catalog_databases(catalog, instance)
    return plan_sync(snapshot, existing)
