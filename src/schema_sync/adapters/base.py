"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that catalog backends implement.
All methods are ``async def``.  Catalog records are never deleted, so the
protocol has no ``delete``.

Usage:
    from schema_sync.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("catalog_database", "*", {"instance_id": 7})
        await client.update("catalog_database", {"sync_status": "OK"}, {"id": 1})
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that catalog backends must implement.

    Failures are reported through ``schema_sync.errors``:
    ``ConflictError`` for unique-key violations on insert,
    ``CatalogNotFoundError`` when an update matches nothing, and
    ``PersistenceError`` for everything else.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names, or ``"*"``.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.

        Returns:
            List of dicts, one per row.  Empty list if no matches.
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row.

        Raises:
            ConflictError: If a unique key already exists.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update rows in table and return the first updated row.

        Raises:
            CatalogNotFoundError: If no rows match filters.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (catalog bootstrap DDL)."""
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
