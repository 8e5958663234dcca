"""Tests for the catalog reconciler.

Verifies ``synchronize()`` against an in-memory catalog:
- New databases and their tables are imported
- Matched databases are refreshed and their new tables imported
- Vanished databases are marked NOT_FOUND and never deleted
- The internal database is never reconciled
- The first failure halts the run, keeps earlier writes, and is reported
  with a typed error kind and a contextual message
"""

import ast
from pathlib import Path

import pytest

from conftest import FixedClock, InMemoryClient, ScriptedIntrospector
from schema_sync.catalog.models import (
    DatabaseCreate,
    SyncStatus,
    TableCreate,
)
from schema_sync.catalog.store import DATABASE_TABLE, TABLE_TABLE, Catalog
from schema_sync.config.models import Instance
from schema_sync.errors import (
    ErrorKind,
    InstanceConnectionError,
    IntrospectionError,
)
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable
from schema_sync.sync.reconciler import plan_instance, synchronize

RECONCILER_PY = (
    Path(__file__).parent.parent / "src" / "schema_sync" / "sync" / "reconciler.py"
)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _snapshot(**databases: list[str]) -> LiveSchemaSnapshot:
    """Snapshot with one database per keyword, listing its table names."""
    return LiveSchemaSnapshot(
        databases=[
            LiveDatabase(
                name=name,
                character_set="utf8mb4",
                collation="utf8mb4_general_ci",
                tables=[
                    LiveTable(name=table, type="BASE TABLE", engine="InnoDB", row_count=10)
                    for table in tables
                ],
            )
            for name, tables in databases.items()
        ]
    )


async def _seed(
    catalog: Catalog,
    instance: Instance,
    name: str,
    tables: list[str] = (),
    sync_ts: int = 1_600_000_000,
) -> None:
    """Insert a prior database record and its tables."""
    database = await catalog.create_database(
        DatabaseCreate(
            creator_id=1,
            instance_id=instance.id,
            project_id=1,
            name=name,
            last_successful_sync_ts=sync_ts,
        )
    )
    for table in tables:
        await catalog.create_table(
            TableCreate(
                creator_id=1,
                database_id=database.id,
                name=table,
                last_successful_sync_ts=sync_ts,
            )
        )


async def _run(
    catalog: Catalog,
    instance: Instance,
    snapshot: LiveSchemaSnapshot,
    clock: FixedClock,
    **kwargs,
):
    return await synchronize(
        instance,
        catalog,
        introspector_factory=ScriptedIntrospector(snapshot),
        clock=clock,
        **kwargs,
    )


# ==================================================================
# Reconciliation cases
# ==================================================================


class TestNewDatabases:
    """Live databases with no catalog record are imported."""

    @pytest.mark.asyncio
    async def test_creates_database_and_tables(self, catalog, client, instance, clock) -> None:
        """Empty catalog + one database with one table creates both records."""
        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.success is True
        assert result.error is None
        database = client.database("orders")
        assert database["sync_status"] == "OK"
        assert database["character_set"] == "utf8mb4"
        assert database["collation"] == "utf8mb4_general_ci"
        assert database["last_successful_sync_ts"] == clock.now

        tables = client.tables_of("orders")
        assert list(tables) == ["items"]
        assert tables["items"]["sync_status"] == "OK"
        assert tables["items"]["engine"] == "InnoDB"
        assert tables["items"]["row_count"] == 10

    @pytest.mark.asyncio
    async def test_attribution_and_project(self, catalog, client, instance, clock) -> None:
        """Creates carry the actor identity and the default project."""
        await _run(
            catalog, instance, _snapshot(orders=["items"]), clock, actor_id=42, project_id=3
        )

        database = client.database("orders")
        assert database["creator_id"] == 42
        assert database["updater_id"] == 42
        assert database["project_id"] == 3
        assert database["instance_id"] == instance.id
        assert client.tables_of("orders")["items"]["creator_id"] == 42

    @pytest.mark.asyncio
    async def test_stats_count_creates(self, catalog, instance, clock) -> None:
        """Stats report every created record."""
        result = await _run(
            catalog, instance, _snapshot(orders=["items", "refunds"], billing=[]), clock
        )

        assert result.stats.databases_created == 2
        assert result.stats.tables_created == 2
        assert result.stats.patches == 0

    @pytest.mark.asyncio
    async def test_same_name_on_other_instance_is_not_a_conflict(
        self, catalog, client, instance, clock
    ) -> None:
        """Database names are unique per instance only."""
        other = Instance(id=8, name="orders-replica", host="10.0.0.6", username="root")
        await _seed(catalog, other, "orders", ["items"])

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.success is True
        assert result.stats.databases_created == 1
        assert client.database("orders", instance_id=7)["id"] != client.database(
            "orders", instance_id=8
        )["id"]


class TestMatchedDatabases:
    """Live databases with a catalog record are refreshed."""

    @pytest.mark.asyncio
    async def test_refresh_and_import_new_table(self, catalog, client, instance, clock) -> None:
        """Existing database is patched OK and the new table is created."""
        await _seed(catalog, instance, "orders", ["items"])

        result = await _run(
            catalog, instance, _snapshot(orders=["items", "refunds"]), clock
        )

        assert result.success is True
        database = client.database("orders")
        assert database["sync_status"] == "OK"
        assert database["last_successful_sync_ts"] == clock.now
        tables = client.tables_of("orders")
        assert set(tables) == {"items", "refunds"}
        assert tables["items"]["last_successful_sync_ts"] == clock.now
        assert result.stats.databases_refreshed == 1
        assert result.stats.tables_refreshed == 1
        assert result.stats.tables_created == 1

    @pytest.mark.asyncio
    async def test_refresh_restores_not_found(self, catalog, client, instance, clock) -> None:
        """A database that reappears is patched back to OK."""
        await _seed(catalog, instance, "orders")
        await _run(catalog, instance, _snapshot(), clock)
        assert client.database("orders")["sync_status"] == "NOT_FOUND"

        await _run(catalog, instance, _snapshot(orders=[]), clock)

        assert client.database("orders")["sync_status"] == "OK"

    @pytest.mark.asyncio
    async def test_matching_is_case_sensitive(self, catalog, client, instance, clock) -> None:
        """'Orders' does not match a catalog record named 'orders'."""
        await _seed(catalog, instance, "orders")

        result = await _run(catalog, instance, _snapshot(Orders=[]), clock)

        assert result.stats.databases_created == 1
        assert result.stats.databases_marked_not_found == 1
        assert client.database("orders")["sync_status"] == "NOT_FOUND"
        assert client.database("Orders")["sync_status"] == "OK"

    @pytest.mark.asyncio
    async def test_table_drift_is_not_corrected(self, catalog, client, instance, clock) -> None:
        """Existing tables only get status and timestamp updates."""
        await _seed(catalog, instance, "orders", ["items"])

        await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        items = client.tables_of("orders")["items"]
        assert items["engine"] == ""
        assert items["row_count"] == 0

    @pytest.mark.asyncio
    async def test_vanished_table_is_left_alone(self, catalog, client, instance, clock) -> None:
        """A catalog table missing from a matched database is not patched."""
        await _seed(catalog, instance, "orders", ["items", "legacy"])

        await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        legacy = client.tables_of("orders")["legacy"]
        assert legacy["sync_status"] == "OK"
        assert legacy["last_successful_sync_ts"] == 1_600_000_000

    @pytest.mark.asyncio
    async def test_timestamp_never_moves_backwards(self, catalog, client, instance, clock) -> None:
        """A clock behind the stored timestamp keeps the stored value."""
        await _seed(catalog, instance, "orders", ["items"], sync_ts=1_800_000_000)

        await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert client.database("orders")["last_successful_sync_ts"] == 1_800_000_000
        assert client.tables_of("orders")["items"]["last_successful_sync_ts"] == 1_800_000_000


class TestMissingDatabases:
    """Catalog databases absent from the live schema."""

    @pytest.mark.asyncio
    async def test_marked_not_found(self, catalog, client, instance, clock) -> None:
        """Empty snapshot marks the database NOT_FOUND and keeps its tables."""
        await _seed(catalog, instance, "orders", ["items"])

        result = await _run(catalog, instance, _snapshot(), clock)

        assert result.success is True
        assert client.database("orders")["sync_status"] == "NOT_FOUND"
        items = client.tables_of("orders")["items"]
        assert items["sync_status"] == "OK"
        assert items["last_successful_sync_ts"] == 1_600_000_000
        assert result.stats.databases_marked_not_found == 1

    @pytest.mark.asyncio
    async def test_records_are_never_deleted(self, catalog, client, instance, clock) -> None:
        """Row counts never shrink across runs."""
        await _seed(catalog, instance, "orders", ["items"])
        await _seed(catalog, instance, "billing", ["invoices"])

        await _run(catalog, instance, _snapshot(), clock)

        assert len(client.rows[DATABASE_TABLE]) == 2
        assert len(client.rows[TABLE_TABLE]) == 2

    def test_reconciler_has_no_delete_calls(self) -> None:
        """reconciler.py never calls a delete method."""
        tree = ast.parse(RECONCILER_PY.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.Attribute):
                assert "delete" not in node.attr.lower(), (
                    f"Found delete call at line {node.lineno}"
                )

    @pytest.mark.asyncio
    async def test_other_instances_untouched(self, catalog, client, instance, clock) -> None:
        """Only the synchronized instance's records are marked."""
        other = Instance(id=8, name="orders-replica", host="10.0.0.6", username="root")
        await _seed(catalog, other, "orders")

        await _run(catalog, instance, _snapshot(), clock)

        assert client.database("orders", instance_id=8)["sync_status"] == "OK"


class TestInternalDatabase:
    """The tool's own database is never reconciled."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["schema_sync", "SCHEMA_SYNC", "Schema_Sync"])
    async def test_live_internal_database_skipped(self, catalog, client, instance, clock, name) -> None:
        """No record is created for the internal database in any casing."""
        snapshot = _snapshot(**{name: ["meta"], "orders": []})

        result = await _run(catalog, instance, snapshot, clock)

        assert result.success is True
        assert [row["name"] for row in client.rows[DATABASE_TABLE]] == ["orders"]
        assert client.rows[TABLE_TABLE] == []

    @pytest.mark.asyncio
    async def test_catalog_internal_database_not_marked(self, catalog, client, instance, clock) -> None:
        """An internal database already in the catalog is not marked NOT_FOUND."""
        await _seed(catalog, instance, "schema_sync")

        result = await _run(catalog, instance, _snapshot(), clock)

        assert result.stats.databases_marked_not_found == 0
        assert client.database("schema_sync")["sync_status"] == "OK"


class TestIdempotence:
    """A second run over the same snapshot creates nothing."""

    @pytest.mark.asyncio
    async def test_second_run_only_patches(self, catalog, client, instance, clock) -> None:
        snapshot = _snapshot(orders=["items", "refunds"], billing=["invoices"])
        await _run(catalog, instance, snapshot, clock)
        rows_before = {table: len(rows) for table, rows in client.rows.items()}

        clock.now += 60
        result = await _run(catalog, instance, snapshot, clock)

        assert result.success is True
        assert result.stats.creates == 0
        assert result.stats.databases_refreshed == 2
        assert result.stats.tables_refreshed == 3
        assert {table: len(rows) for table, rows in client.rows.items()} == rows_before
        assert client.database("orders")["last_successful_sync_ts"] == clock.now


# ==================================================================
# Failures
# ==================================================================


class TestIntrospectionFailures:
    """Instance failures leave the catalog untouched."""

    @pytest.mark.asyncio
    async def test_connection_failure(self, catalog, client, instance, clock) -> None:
        """Unreachable instance reports a CONNECTION error and writes nothing."""
        await _seed(catalog, instance, "orders")
        client.calls.clear()
        introspector = ScriptedIntrospector(
            enter_error=InstanceConnectionError("Can't connect to MySQL server")
        )

        result = await synchronize(
            instance, catalog, introspector_factory=introspector, clock=clock
        )

        assert result.success is False
        assert result.error_kind is ErrorKind.CONNECTION
        assert result.error == (
            "failed to connect instance: orders-prod with user: root. "
            "Error Can't connect to MySQL server"
        )
        assert client.calls == []
        assert client.database("orders")["sync_status"] == "OK"

    @pytest.mark.asyncio
    async def test_introspection_failure(self, catalog, client, instance, clock) -> None:
        """A failed schema read reports INTROSPECTION and writes nothing."""
        introspector = ScriptedIntrospector(
            introspect_error=IntrospectionError("failed to read schema: denied")
        )

        result = await synchronize(
            instance, catalog, introspector_factory=introspector, clock=clock
        )

        assert result.error_kind is ErrorKind.INTROSPECTION
        assert result.error == "failed to read schema: denied"
        assert client.writes == []
        assert introspector.exited is True

    @pytest.mark.asyncio
    async def test_catalog_list_failure(self, catalog, client, instance, clock) -> None:
        """Loading the prior catalog list failing aborts before any write."""
        client.fail_on = ("select", DATABASE_TABLE)

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.error_kind is ErrorKind.PERSISTENCE
        assert result.error.startswith(
            "failed to sync database for instance: orders-prod. Failed to find database list"
        )
        assert client.writes == []


class TestCatalogFailures:
    """The first catalog failure halts the run without rollback."""

    @pytest.mark.asyncio
    async def test_create_database_failure_halts(self, catalog, client, instance, clock) -> None:
        """Generic insert failure carries database context."""
        client.fail_on = ("insert", DATABASE_TABLE)

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.success is False
        assert result.error_kind is ErrorKind.PERSISTENCE
        assert result.error.startswith(
            "failed to sync database for instance: orders-prod. "
            "Failed to import new database: orders. Error "
        )
        assert client.rows[TABLE_TABLE] == []

    @pytest.mark.asyncio
    async def test_create_table_failure_keeps_earlier_writes(
        self, catalog, client, instance, clock
    ) -> None:
        """Database created before the failed table insert stays in place."""
        client.fail_on = ("insert", TABLE_TABLE)

        result = await _run(
            catalog, instance, _snapshot(orders=["items"], billing=["invoices"]), clock
        )

        assert result.success is False
        assert result.error.startswith(
            "failed to sync database for instance: orders-prod, database: orders. "
            "Failed to import new table: items"
        )
        assert client.database("orders")["sync_status"] == "OK"
        with pytest.raises(KeyError):
            client.database("billing")
        assert result.stats.databases_created == 1
        assert result.stats.tables_created == 0

    @pytest.mark.asyncio
    async def test_patch_database_failure(self, catalog, client, instance, clock) -> None:
        """Generic update failure names the database."""
        await _seed(catalog, instance, "orders")
        client.fail_on = ("update", DATABASE_TABLE)

        result = await _run(catalog, instance, _snapshot(orders=[]), clock)

        assert result.error_kind is ErrorKind.PERSISTENCE
        assert result.error.startswith(
            "failed to sync database for instance: orders-prod. "
            "Failed to update database: orders"
        )

    @pytest.mark.asyncio
    async def test_table_lookup_failure(self, catalog, client, instance, clock) -> None:
        """A failed table lookup reports the instance and database."""
        await _seed(catalog, instance, "orders", ["items"])
        client.fail_on = ("select", TABLE_TABLE)

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.error_kind is ErrorKind.PERSISTENCE
        assert result.error.startswith(
            "failed to sync table for instance: orders-prod, database: orders. Error "
        )
        assert result.stats.databases_refreshed == 1

    @pytest.mark.asyncio
    async def test_patch_table_failure(self, catalog, client, instance, clock) -> None:
        await _seed(catalog, instance, "orders", ["items"])
        client.fail_on = ("update", TABLE_TABLE)

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.error.startswith(
            "failed to sync table for instance: orders-prod, database: orders. "
            "Failed to update table: items"
        )

    @pytest.mark.asyncio
    async def test_database_conflict(self, catalog, client, instance, clock) -> None:
        """A concurrent create surfaces as CONFLICT with a dedicated message."""
        original_select = client.select

        async def _stale_select(table, columns="*", filters=None, order_by=None):
            if table == DATABASE_TABLE:
                return []
            return await original_select(table, columns, filters, order_by)

        await _seed(catalog, instance, "orders")
        client.select = _stale_select

        result = await _run(catalog, instance, _snapshot(orders=[]), clock)

        assert result.error_kind is ErrorKind.CONFLICT
        assert result.error == (
            "failed to sync database for instance: orders-prod. "
            "Database name already exists: orders"
        )

    @pytest.mark.asyncio
    async def test_table_conflict(self, catalog, client, instance, clock) -> None:
        """Duplicate table names in one live database conflict on the second create."""
        result = await _run(catalog, instance, _snapshot(orders=["items", "items"]), clock)

        assert result.error_kind is ErrorKind.CONFLICT
        assert result.error == (
            "failed to sync table for instance: orders-prod, database: orders. "
            "Table name already exists: items"
        )
        assert result.stats.tables_created == 1

    @pytest.mark.asyncio
    async def test_patch_target_vanished(self, catalog, client, instance, clock) -> None:
        """A database deleted between read and patch surfaces as NOT_FOUND."""
        await _seed(catalog, instance, "orders")
        original_select = client.select

        async def _select_then_vanish(table, columns="*", filters=None, order_by=None):
            rows = await original_select(table, columns, filters, order_by)
            client.rows[DATABASE_TABLE].clear()
            return rows

        client.select = _select_then_vanish

        result = await _run(catalog, instance, _snapshot(), clock)

        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.error == (
            "failed to sync database for instance: orders-prod. "
            "Database not found: orders"
        )

    @pytest.mark.asyncio
    async def test_table_patch_target_vanished(self, catalog, client, instance, clock) -> None:
        """A table deleted between lookup and patch surfaces as NOT_FOUND."""
        await _seed(catalog, instance, "orders", ["items"])
        original_update = client.update

        async def _vanish_then_update(table, data, filters):
            if table == TABLE_TABLE:
                client.rows[TABLE_TABLE].clear()
            return await original_update(table, data, filters)

        client.update = _vanish_then_update

        result = await _run(catalog, instance, _snapshot(orders=["items"]), clock)

        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.error == (
            "failed to sync table for instance: orders-prod, database: orders. "
            "Table not found: items"
        )
        assert result.stats.databases_refreshed == 1
        assert result.stats.tables_refreshed == 0

    @pytest.mark.asyncio
    async def test_single_error_reported(self, catalog, client, instance, clock) -> None:
        """Exactly one error string per failed run."""
        client.fail_on = ("insert", DATABASE_TABLE)

        result = await _run(catalog, instance, _snapshot(a=[], b=[], c=[]), clock)

        assert isinstance(result.error, str)
        assert client.calls.count(("insert", DATABASE_TABLE)) == 1


# ==================================================================
# Dry run
# ==================================================================


class TestPlanInstance:
    """plan_instance() reads but never writes."""

    @pytest.mark.asyncio
    async def test_plan_without_writes(self, catalog, client, instance, clock) -> None:
        await _seed(catalog, instance, "orders", ["items"])
        await _seed(catalog, instance, "legacy")
        client.calls.clear()

        plan = await plan_instance(
            instance,
            catalog,
            introspector_factory=ScriptedIntrospector(
                _snapshot(orders=["items", "refunds"], billing=["invoices"], schema_sync=[])
            ),
        )

        assert plan.create == ["billing"]
        assert plan.refresh == ["orders"]
        assert plan.mark_not_found == ["legacy"]
        assert plan.skipped == ["schema_sync"]
        assert plan.table_counts == {"orders": 2, "billing": 1}
        assert client.writes == []

    @pytest.mark.asyncio
    async def test_plan_propagates_connection_error(self, catalog, instance) -> None:
        introspector = ScriptedIntrospector(enter_error=InstanceConnectionError("refused"))

        with pytest.raises(InstanceConnectionError) as exc_info:
            await plan_instance(instance, catalog, introspector_factory=introspector)

        assert exc_info.value.kind is ErrorKind.CONNECTION
