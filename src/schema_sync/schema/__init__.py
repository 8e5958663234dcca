"""Live schema introspection.

Provides the live snapshot models, the MySQL and PostgreSQL
introspectors, and the ``read_live_schema``/``ping_instance`` entry points.

Usage:
    from schema_sync.schema import read_live_schema, ping_instance
"""

from schema_sync.schema.introspector import (
    SchemaIntrospector,
    open_introspector,
    ping_instance,
    read_live_schema,
)
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable
from schema_sync.schema.mysql import MySQLIntrospector
from schema_sync.schema.postgres import PostgresIntrospector

__all__ = [
    "SchemaIntrospector",
    "MySQLIntrospector",
    "PostgresIntrospector",
    "open_introspector",
    "read_live_schema",
    "ping_instance",
    "LiveSchemaSnapshot",
    "LiveDatabase",
    "LiveTable",
]
