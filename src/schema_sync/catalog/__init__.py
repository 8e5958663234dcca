"""Persisted catalog of databases and tables tracked per instance.

Usage:
    from schema_sync.catalog import Catalog, DatabaseFind, SyncStatus
"""

from schema_sync.catalog.models import (
    CatalogDatabase,
    CatalogTable,
    DatabaseCreate,
    DatabaseFind,
    DatabasePatch,
    SyncStatus,
    TableCreate,
    TableFind,
    TablePatch,
)
from schema_sync.catalog.store import CATALOG_DDL, Catalog

__all__ = [
    "Catalog",
    "CATALOG_DDL",
    "SyncStatus",
    "CatalogDatabase",
    "CatalogTable",
    "DatabaseFind",
    "DatabaseCreate",
    "DatabasePatch",
    "TableFind",
    "TableCreate",
    "TablePatch",
]
