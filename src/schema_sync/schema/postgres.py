"""PostgreSQL schema introspection via pg_catalog.

PostgreSQL has no cross-database catalog, so the introspector lists
databases over a maintenance connection and then opens one short-lived
connection per database to read its relations.

Mapping onto the live snapshot:
- character set: ``pg_encoding_to_char(encoding)``
- collation: ``datcollate`` (database level only)
- engine: table access method (``heap`` for ordinary tables)
- row count: planner estimate ``reltuples``
- create options: ``reloptions`` joined with commas
- free space: not tracked, always 0

Uses psycopg (v3) for PostgreSQL connections.
"""

import logging
from typing import Any

import psycopg
from psycopg import Connection

from schema_sync.config.models import ConnectionInfo
from schema_sync.errors import InstanceConnectionError, IntrospectionError
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable

logger = logging.getLogger(__name__)


class PostgresIntrospector:
    """Introspects the schema of a PostgreSQL instance.

    Usage:
        with PostgresIntrospector(connection) as introspector:
            snapshot = introspector.introspect()
    """

    MAINTENANCE_DATABASE = "postgres"

    # Schemas whose relations are never reported
    EXCLUDED_SCHEMAS = ("pg_catalog", "information_schema")

    def __init__(
        self,
        connection: ConnectionInfo,
        excluded_databases: set[str] | None = None,
    ) -> None:
        """Initialize with connection parameters.

        Args:
            connection: Host, port and credentials of the instance.
            excluded_databases: Database names to skip (default: none).
        """
        self._connection = connection
        self._excluded_databases = set(excluded_databases or ())
        self._conn: Connection | None = None

    def _connect(self, dbname: str) -> Connection:
        params: dict[str, Any] = {
            "host": self._connection.host,
            "user": self._connection.username,
            "password": self._connection.password,
            "dbname": dbname,
            "connect_timeout": self._connection.connect_timeout,
        }
        if self._connection.port:
            params["port"] = self._connection.port
        return psycopg.connect(**params)

    def __enter__(self) -> "PostgresIntrospector":
        """Context manager entry - opens maintenance connection."""
        try:
            self._conn = self._connect(self.MAINTENANCE_DATABASE)
        except psycopg.Error as e:
            raise InstanceConnectionError(str(e)) from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def test_connection(self) -> None:
        """Ping the instance with ``SELECT 1``.

        Raises:
            InstanceConnectionError: If the query fails.
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")
        try:
            with self._conn.cursor() as cur:
                cur.execute("SELECT 1")
        except psycopg.Error as e:
            raise InstanceConnectionError(str(e)) from e

    def introspect(self) -> LiveSchemaSnapshot:
        """Introspect every connectable, non-template database.

        Raises:
            IntrospectionError: If listing databases or reading any
                database's relations fails.
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")

        try:
            databases = self._get_databases()
            for database in databases:
                with self._connect(database.name) as db_conn:
                    database.tables = self._get_tables(db_conn)
        except psycopg.Error as e:
            raise IntrospectionError(f"failed to read schema: {e}") from e

        logger.debug(f"Introspected {len(databases)} databases from {self._connection.host_port}")
        return LiveSchemaSnapshot(databases=databases)

    def _get_databases(self) -> list[LiveDatabase]:
        """Get databases the user may connect to, with encoding and collation.

        Databases without CONNECT privilege (e.g. ``rdsadmin``) are skipped.
        """
        query = """
            SELECT
                datname,
                pg_encoding_to_char(encoding),
                datcollate
            FROM pg_database
            WHERE NOT datistemplate
              AND datallowconn
              AND has_database_privilege(datname, 'CONNECT')
            ORDER BY datname
        """
        with self._conn.cursor() as cur:
            cur.execute(query)
            return [
                LiveDatabase(name=name, character_set=encoding or "", collation=collate or "")
                for name, encoding, collate in cur.fetchall()
                if name not in self._excluded_databases
            ]

    def _get_tables(self, conn: Connection) -> list[LiveTable]:
        """Get tables, views and materialized views of one database."""
        query = """
            SELECT
                n.nspname,
                c.relname,
                CASE c.relkind
                    WHEN 'r' THEN 'BASE TABLE'
                    WHEN 'p' THEN 'PARTITIONED TABLE'
                    WHEN 'v' THEN 'VIEW'
                    WHEN 'm' THEN 'MATERIALIZED VIEW'
                END AS table_type,
                COALESCE(am.amname, '') AS engine,
                GREATEST(c.reltuples, 0)::bigint AS row_count,
                pg_table_size(c.oid) AS data_size,
                pg_indexes_size(c.oid) AS index_size,
                COALESCE(array_to_string(c.reloptions, ','), '') AS create_options,
                COALESCE(obj_description(c.oid, 'pg_class'), '') AS comment
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_am am ON am.oid = c.relam
            WHERE c.relkind IN ('r', 'p', 'v', 'm')
              AND n.nspname <> ALL(%s)
              AND n.nspname NOT LIKE 'pg_toast%%'
              AND n.nspname NOT LIKE 'pg_temp%%'
            ORDER BY n.nspname, c.relname
        """
        with conn.cursor() as cur:
            cur.execute(query, (list(self.EXCLUDED_SCHEMAS),))
            tables = []
            for row in cur.fetchall():
                (
                    schema_name,
                    rel_name,
                    table_type,
                    engine,
                    row_count,
                    data_size,
                    index_size,
                    create_options,
                    comment,
                ) = row
                tables.append(
                    LiveTable(
                        name=self._qualified_name(schema_name, rel_name),
                        type=table_type,
                        engine=engine,
                        row_count=row_count,
                        data_size=data_size,
                        index_size=index_size,
                        create_options=create_options,
                        comment=comment,
                    )
                )
            return tables

    @staticmethod
    def _qualified_name(schema_name: str, rel_name: str) -> str:
        """Table name unique within its database (``public`` stays bare)."""
        if schema_name == "public":
            return rel_name
        return f"{schema_name}.{rel_name}"
