"""schema-sync: Keep a schema catalog in step with live database instances.

Introspects MySQL and PostgreSQL instances and reconciles the persisted
catalog of databases and tables: new databases are imported, matched ones
refreshed, and vanished ones marked ``NOT_FOUND`` (never deleted).

Usage:
    from schema_sync import synchronize, get_catalog, load_sync_config
    from schema_sync import Instance, SyncResult, ErrorKind
"""

__version__ = "0.1.0"

# Adapters
from schema_sync.adapters.base import DatabaseClient
from schema_sync.adapters.postgres import AsyncPostgresAdapter

# Catalog
from schema_sync.catalog.models import CatalogDatabase, CatalogTable, SyncStatus
from schema_sync.catalog.store import Catalog

# Config
from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import ConnectionInfo, Engine, Instance, SyncConfig

# Errors
from schema_sync.errors import ErrorKind, SyncError

# Factory
from schema_sync.factory import (
    InstanceNotFoundError,
    get_catalog,
    get_instance,
    resolve_url,
)

# Live schema
from schema_sync.schema.introspector import ping_instance, read_live_schema
from schema_sync.schema.models import LiveDatabase, LiveSchemaSnapshot, LiveTable

# Sync
from schema_sync.sync.models import SyncPlan, SyncResult, SyncStats
from schema_sync.sync.reconciler import plan_instance, synchronize

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Catalog
    "Catalog",
    "CatalogDatabase",
    "CatalogTable",
    "SyncStatus",
    # Config
    "load_sync_config",
    "SyncConfig",
    "Instance",
    "ConnectionInfo",
    "Engine",
    # Errors
    "SyncError",
    "ErrorKind",
    # Factory
    "get_catalog",
    "get_instance",
    "resolve_url",
    "InstanceNotFoundError",
    # Live schema
    "read_live_schema",
    "ping_instance",
    "LiveSchemaSnapshot",
    "LiveDatabase",
    "LiveTable",
    # Sync
    "synchronize",
    "plan_instance",
    "SyncResult",
    "SyncStats",
    "SyncPlan",
]
