"""Live schema introspection entry points.

``open_introspector()`` picks the engine-specific introspector,
``read_live_schema()`` produces one snapshot for an instance, and
``ping_instance()`` checks that an instance accepts connections.

Usage:
    from schema_sync.schema.introspector import read_live_schema

    snapshot = read_live_schema(instance)
    for database in snapshot.databases:
        print(database.name, len(database.tables))
"""

import logging
from collections.abc import Callable
from typing import Protocol

from schema_sync.config.models import ConnectionInfo, Engine, Instance
from schema_sync.errors import InstanceConnectionError
from schema_sync.schema.models import LiveSchemaSnapshot
from schema_sync.schema.mysql import MySQLIntrospector
from schema_sync.schema.postgres import PostgresIntrospector

logger = logging.getLogger(__name__)


class SchemaIntrospector(Protocol):
    """Interface shared by the engine-specific introspectors.

    Entering the context opens the connection and raises
    ``InstanceConnectionError`` on failure.
    """

    def __enter__(self) -> "SchemaIntrospector": ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...

    def introspect(self) -> LiveSchemaSnapshot: ...

    def test_connection(self) -> None: ...


IntrospectorFactory = Callable[[ConnectionInfo], SchemaIntrospector]


def open_introspector(connection: ConnectionInfo) -> SchemaIntrospector:
    """Create the introspector for ``connection.engine``.

    Raises:
        ValueError: If the engine is not supported.
    """
    if connection.engine is Engine.MYSQL:
        return MySQLIntrospector(connection)
    if connection.engine is Engine.POSTGRES:
        return PostgresIntrospector(connection)
    raise ValueError(f"Unsupported engine: {connection.engine}")


def read_live_schema(
    instance: Instance,
    introspector_factory: IntrospectorFactory = open_introspector,
) -> LiveSchemaSnapshot:
    """Connect to ``instance`` and return its live schema.

    Args:
        instance: Instance to introspect.
        introspector_factory: Builds an introspector from connection info.

    Returns:
        The live snapshot.

    Raises:
        InstanceConnectionError: If the instance is unreachable or rejects
            the credentials.
        IntrospectionError: If the schema could not be read.
    """
    introspector = introspector_factory(instance.connection_info())
    try:
        with introspector:
            return introspector.introspect()
    except InstanceConnectionError as e:
        raise InstanceConnectionError(
            f"failed to connect instance: {instance.name} with user: "
            f"{instance.username}. Error {e}",
            instance=instance.name,
        ) from e


def ping_instance(
    connection: ConnectionInfo,
    introspector_factory: IntrospectorFactory = open_introspector,
) -> str | None:
    """Check that an instance accepts connections.

    Returns:
        ``None`` on success, otherwise a human-readable error message.

    Example:
        >>> error = ping_instance(instance.connection_info())
        >>> error is None
        True
    """
    introspector = introspector_factory(connection)
    connected = False
    try:
        with introspector:
            connected = True
            introspector.test_connection()
    except InstanceConnectionError as e:
        logger.debug(f"Ping of {connection.host_port} failed: {e}")
        if connected:
            return str(e)
        use_password = "YES" if connection.password else "NO"
        return (
            f"failed to connect '{connection.host_port}' for user "
            f"'{connection.username}' (using password: {use_password}), {e}"
        )
    return None
