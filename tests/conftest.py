"""Shared fixtures: in-memory catalog client and scripted introspectors."""

from typing import Any

import pytest

from schema_sync.catalog.store import DATABASE_TABLE, TABLE_TABLE, Catalog
from schema_sync.config.models import ConnectionInfo, Instance
from schema_sync.errors import CatalogNotFoundError, ConflictError, PersistenceError
from schema_sync.schema.models import LiveSchemaSnapshot

# Unique keys enforced per catalog table
_UNIQUE_KEYS = {
    DATABASE_TABLE: ("instance_id", "name"),
    TABLE_TABLE: ("database_id", "name"),
}


class InMemoryClient:
    """``DatabaseClient`` backed by dicts.

    Enforces the catalog's unique keys and auto-increments ids.  Set
    ``fail_on`` to ``(method, table)`` to make that call raise
    ``PersistenceError``; ``calls`` records every call in order.
    """

    def __init__(self) -> None:
        self.rows: dict[str, list[dict]] = {DATABASE_TABLE: [], TABLE_TABLE: []}
        self.calls: list[tuple[str, str]] = []
        self.executed: list[str] = []
        self.fail_on: tuple[str, str] | None = None
        self.closed = False
        self._next_id = 1

    def _check_failure(self, method: str, table: str) -> None:
        self.calls.append((method, table))
        if self.fail_on == (method, table):
            raise PersistenceError(f"{method} on {table} failed: connection reset")

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        self._check_failure("select", table)
        filters = filters or {}
        rows = [
            dict(row)
            for row in self.rows[table]
            if all(row.get(k) == v for k, v in filters.items())
        ]
        if order_by:
            rows.sort(key=lambda row: row[order_by])
        return rows

    async def insert(self, table: str, data: dict) -> dict:
        self._check_failure("insert", table)
        key = tuple(data[k] for k in _UNIQUE_KEYS[table])
        for row in self.rows[table]:
            if tuple(row[k] for k in _UNIQUE_KEYS[table]) == key:
                raise ConflictError(f"insert into {table} violates a unique key: {key}")
        row = {"id": self._next_id, **data}
        self._next_id += 1
        self.rows[table].append(row)
        return dict(row)

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        self._check_failure("update", table)
        matched = [
            row
            for row in self.rows[table]
            if all(row.get(k) == v for k, v in filters.items())
        ]
        if not matched:
            raise CatalogNotFoundError(f"No rows in {table} matched filters: {filters}")
        for row in matched:
            row.update(data)
        return dict(matched[0])

    async def execute(self, sql: str, params: dict | None = None) -> None:
        self.executed.append(sql)

    async def close(self) -> None:
        self.closed = True

    # Test helpers

    def database(self, name: str, instance_id: int = 7) -> dict:
        """Return the stored database row named ``name``."""
        for row in self.rows[DATABASE_TABLE]:
            if row["name"] == name and row["instance_id"] == instance_id:
                return row
        raise KeyError(name)

    def tables_of(self, database_name: str, instance_id: int = 7) -> dict[str, dict]:
        """Stored table rows of a database, keyed by table name."""
        database_id = self.database(database_name, instance_id)["id"]
        return {
            row["name"]: row
            for row in self.rows[TABLE_TABLE]
            if row["database_id"] == database_id
        }

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("insert", "update")]


class ScriptedIntrospector:
    """Introspector returning a fixed snapshot or raising on demand."""

    def __init__(
        self,
        snapshot: LiveSchemaSnapshot | None = None,
        enter_error: Exception | None = None,
        introspect_error: Exception | None = None,
    ) -> None:
        self.snapshot = snapshot or LiveSchemaSnapshot()
        self.enter_error = enter_error
        self.introspect_error = introspect_error
        self.connections: list[ConnectionInfo] = []
        self.exited = False

    def __call__(self, connection: ConnectionInfo) -> "ScriptedIntrospector":
        self.connections.append(connection)
        return self

    def __enter__(self) -> "ScriptedIntrospector":
        if self.enter_error is not None:
            raise self.enter_error
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited = True

    def introspect(self) -> LiveSchemaSnapshot:
        if self.introspect_error is not None:
            raise self.introspect_error
        return self.snapshot

    def test_connection(self) -> None:
        if self.introspect_error is not None:
            raise self.introspect_error


class FixedClock:
    """Clock returning a settable Unix timestamp."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def client() -> InMemoryClient:
    return InMemoryClient()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(1_700_000_000)


@pytest.fixture
def catalog(client: InMemoryClient, clock: FixedClock) -> Catalog:
    return Catalog(client, clock=clock)


@pytest.fixture
def instance() -> Instance:
    return Instance(
        id=7,
        name="orders-prod",
        host="10.0.0.5",
        port=3306,
        username="root",
        password="secret",
    )
