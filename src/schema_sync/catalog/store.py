"""Catalog store on top of the ``DatabaseClient`` protocol.

Each method is a single-entity operation; no transaction spans calls.
The store stamps ``created_ts``/``updated_ts`` and translates rows into
``CatalogDatabase``/``CatalogTable`` models.

Usage:
    from schema_sync.catalog.store import Catalog
    from schema_sync.catalog.models import DatabaseFind

    catalog = Catalog(adapter)
    await catalog.ensure_schema()
    databases = await catalog.find_databases(DatabaseFind(instance_id=7))
"""

import time
from collections.abc import Callable

from schema_sync.adapters.base import DatabaseClient
from schema_sync.catalog.models import (
    CatalogDatabase,
    CatalogTable,
    DatabaseCreate,
    DatabaseFind,
    DatabasePatch,
    TableCreate,
    TableFind,
    TablePatch,
)

DATABASE_TABLE = "catalog_database"
TABLE_TABLE = "catalog_table"

# Bootstrap DDL for the catalog's own storage (PostgreSQL).
CATALOG_DDL: list[str] = [
    f"""
    CREATE TABLE IF NOT EXISTS {DATABASE_TABLE} (
        id SERIAL PRIMARY KEY,
        creator_id INTEGER NOT NULL,
        created_ts BIGINT NOT NULL,
        updater_id INTEGER NOT NULL,
        updated_ts BIGINT NOT NULL,
        instance_id INTEGER NOT NULL,
        project_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        character_set TEXT NOT NULL DEFAULT '',
        "collation" TEXT NOT NULL DEFAULT '',
        sync_status TEXT NOT NULL DEFAULT 'OK'
            CHECK (sync_status IN ('OK', 'NOT_FOUND')),
        last_successful_sync_ts BIGINT NOT NULL DEFAULT 0,
        UNIQUE (instance_id, name)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_TABLE} (
        id SERIAL PRIMARY KEY,
        creator_id INTEGER NOT NULL,
        created_ts BIGINT NOT NULL,
        updater_id INTEGER NOT NULL,
        updated_ts BIGINT NOT NULL,
        database_id INTEGER NOT NULL REFERENCES {DATABASE_TABLE} (id),
        name TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT '',
        engine TEXT NOT NULL DEFAULT '',
        "collation" TEXT NOT NULL DEFAULT '',
        row_count BIGINT NOT NULL DEFAULT 0,
        data_size BIGINT NOT NULL DEFAULT 0,
        index_size BIGINT NOT NULL DEFAULT 0,
        data_free BIGINT NOT NULL DEFAULT 0,
        create_options TEXT NOT NULL DEFAULT '',
        comment TEXT NOT NULL DEFAULT '',
        sync_status TEXT NOT NULL DEFAULT 'OK'
            CHECK (sync_status IN ('OK', 'NOT_FOUND')),
        last_successful_sync_ts BIGINT NOT NULL DEFAULT 0,
        UNIQUE (database_id, name)
    )
    """,
]


def _unix_now() -> int:
    return int(time.time())


class Catalog:
    """Persisted record of databases and tables tracked per instance.

    Errors raised by the underlying client (``ConflictError``,
    ``CatalogNotFoundError``, ``PersistenceError``) propagate unchanged.

    Args:
        client: Storage backend implementing ``DatabaseClient``.
        clock: Returns the current Unix time in seconds.  Used for the
            ``created_ts``/``updated_ts`` bookkeeping columns.
    """

    def __init__(
        self,
        client: DatabaseClient,
        clock: Callable[[], int] = _unix_now,
    ) -> None:
        self._client = client
        self._clock = clock

    async def ensure_schema(self) -> None:
        """Create the catalog tables if they do not exist."""
        for statement in CATALOG_DDL:
            await self._client.execute(statement)

    async def close(self) -> None:
        await self._client.close()

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def find_databases(self, find: DatabaseFind) -> list[CatalogDatabase]:
        """Return every database record matching the set fields of ``find``."""
        rows = await self._client.select(
            DATABASE_TABLE,
            "*",
            filters=find.model_dump(exclude_none=True),
            order_by="id",
        )
        return [CatalogDatabase.model_validate(row) for row in rows]

    async def create_database(self, create: DatabaseCreate) -> CatalogDatabase:
        """Insert a database record.

        Raises:
            ConflictError: If the instance already has a database with this name.
        """
        row = await self._client.insert(DATABASE_TABLE, self._creation_row(create))
        return CatalogDatabase.model_validate(row)

    async def patch_database(self, patch: DatabasePatch) -> CatalogDatabase:
        """Apply a partial update to a database record.

        Raises:
            CatalogNotFoundError: If no record has ``patch.id``.
        """
        row = await self._client.update(
            DATABASE_TABLE, self._patch_row(patch), {"id": patch.id}
        )
        return CatalogDatabase.model_validate(row)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def find_tables(self, find: TableFind) -> list[CatalogTable]:
        """Return every table record matching the set fields of ``find``."""
        rows = await self._client.select(
            TABLE_TABLE,
            "*",
            filters=find.model_dump(exclude_none=True),
            order_by="id",
        )
        return [CatalogTable.model_validate(row) for row in rows]

    async def find_table(self, find: TableFind) -> CatalogTable | None:
        """Return the first table record matching ``find``, or ``None``."""
        tables = await self.find_tables(find)
        return tables[0] if tables else None

    async def create_table(self, create: TableCreate) -> CatalogTable:
        """Insert a table record.

        Raises:
            ConflictError: If the database already has a table with this name.
        """
        row = await self._client.insert(TABLE_TABLE, self._creation_row(create))
        return CatalogTable.model_validate(row)

    async def patch_table(self, patch: TablePatch) -> CatalogTable:
        """Apply a partial update to a table record.

        Raises:
            CatalogNotFoundError: If no record has ``patch.id``.
        """
        row = await self._client.update(
            TABLE_TABLE, self._patch_row(patch), {"id": patch.id}
        )
        return CatalogTable.model_validate(row)

    # ------------------------------------------------------------------
    # Row builders
    # ------------------------------------------------------------------

    def _creation_row(self, create: DatabaseCreate | TableCreate) -> dict:
        now = self._clock()
        row = create.model_dump(mode="json")
        row.update(
            updater_id=create.creator_id,
            created_ts=now,
            updated_ts=now,
        )
        return row

    def _patch_row(self, patch: DatabasePatch | TablePatch) -> dict:
        row = patch.model_dump(mode="json", exclude={"id"}, exclude_none=True)
        row["updated_ts"] = self._clock()
        return row
