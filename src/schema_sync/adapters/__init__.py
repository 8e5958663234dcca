"""Catalog storage adapters.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter
the catalog is stored with.

Usage:
    from schema_sync.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from schema_sync.adapters.base import DatabaseClient
from schema_sync.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
