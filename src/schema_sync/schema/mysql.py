"""MySQL schema introspection via information_schema.

This module queries the live instance to extract:
- Databases (schemata), with default character set and collation
- Tables, with type, engine, collation, row count, data/index size,
  free space, create options, and comment

Uses PyMySQL for MySQL connections.
"""

import logging

import pymysql
import pymysql.cursors
from pymysql.connections import Connection

from schema_sync.config.models import ConnectionInfo
from schema_sync.errors import InstanceConnectionError, IntrospectionError
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306


class MySQLIntrospector:
    """Introspects the schema of a MySQL instance.

    Usage:
        with MySQLIntrospector(connection) as introspector:
            snapshot = introspector.introspect()
    """

    # System schemas excluded from introspection
    EXCLUDED_DATABASES_DEFAULT = frozenset({
        "mysql",
        "information_schema",
        "performance_schema",
        "sys",
    })

    def __init__(
        self,
        connection: ConnectionInfo,
        excluded_databases: set[str] | None = None,
    ) -> None:
        """Initialize with connection parameters.

        Args:
            connection: Host, port and credentials of the instance.
            excluded_databases: Schema names to skip.  Defaults to
                ``EXCLUDED_DATABASES_DEFAULT`` when None.
        """
        self._connection = connection
        if excluded_databases is None:
            excluded_databases = self.EXCLUDED_DATABASES_DEFAULT
        self._excluded_databases = {name.lower() for name in excluded_databases}
        self._conn: Connection | None = None

    def __enter__(self) -> "MySQLIntrospector":
        """Context manager entry - opens connection."""
        try:
            self._conn = pymysql.connect(
                host=self._connection.host,
                port=self._connection.port or DEFAULT_PORT,
                user=self._connection.username,
                password=self._connection.password,
                connect_timeout=self._connection.connect_timeout,
                charset="utf8mb4",
                cursorclass=pymysql.cursors.DictCursor,
            )
        except pymysql.MySQLError as e:
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
        try:
            self._fetch_all("SELECT 1 AS ok")
        except pymysql.MySQLError as e:
            raise InstanceConnectionError(str(e)) from e

    def introspect(self) -> LiveSchemaSnapshot:
        """Introspect every non-system database and its tables.

        Returns:
            LiveSchemaSnapshot with databases ordered by name.

        Raises:
            IntrospectionError: If any information_schema query fails.
        """
        try:
            databases = self._get_databases()
            tables = self._get_tables()
        except pymysql.MySQLError as e:
            raise IntrospectionError(f"failed to read schema: {e}") from e

        for database in databases:
            database.tables = tables.get(database.name, [])

        logger.debug(f"Introspected {len(databases)} databases from {self._connection.host_port}")
        return LiveSchemaSnapshot(databases=databases)

    def _fetch_all(self, query: str) -> list[dict]:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")
        with self._conn.cursor() as cur:
            cur.execute(query)
            return list(cur.fetchall())

    def _get_databases(self) -> list[LiveDatabase]:
        """Get all schemata with their default character set and collation."""
        query = """
            SELECT
                SCHEMA_NAME AS name,
                DEFAULT_CHARACTER_SET_NAME AS character_set,
                DEFAULT_COLLATION_NAME AS collation
            FROM information_schema.SCHEMATA
            ORDER BY SCHEMA_NAME
        """
        return [
            LiveDatabase(
                name=row["name"],
                character_set=row["character_set"] or "",
                collation=row["collation"] or "",
            )
            for row in self._fetch_all(query)
            if row["name"].lower() not in self._excluded_databases
        ]

    def _get_tables(self) -> dict[str, list[LiveTable]]:
        """Get all tables grouped by database name."""
        query = """
            SELECT
                TABLE_SCHEMA AS database_name,
                TABLE_NAME AS name,
                TABLE_TYPE AS type,
                IFNULL(ENGINE, '') AS engine,
                IFNULL(TABLE_COLLATION, '') AS collation,
                IFNULL(TABLE_ROWS, 0) AS row_count,
                IFNULL(DATA_LENGTH, 0) AS data_size,
                IFNULL(INDEX_LENGTH, 0) AS index_size,
                IFNULL(DATA_FREE, 0) AS data_free,
                IFNULL(CREATE_OPTIONS, '') AS create_options,
                IFNULL(TABLE_COMMENT, '') AS comment
            FROM information_schema.TABLES
            ORDER BY TABLE_SCHEMA, TABLE_NAME
        """
        tables: dict[str, list[LiveTable]] = {}
        for row in self._fetch_all(query):
            database_name = row.pop("database_name")
            tables.setdefault(database_name, []).append(LiveTable(**row))
        return tables
