"""Pydantic models for catalog records and their write payloads.

This module contains catalog-domain models:
- Records: CatalogDatabase, CatalogTable
- Payloads: DatabaseFind, DatabaseCreate, DatabasePatch,
  TableFind, TableCreate, TablePatch
- SyncStatus enum

Live (introspected) models live in schema_sync.schema.models.
"""

from enum import Enum

from pydantic import BaseModel


class SyncStatus(str, Enum):
    """Whether a record was present in the most recent live snapshot."""

    OK = "OK"
    NOT_FOUND = "NOT_FOUND"


# ============================================================================
# Records
# ============================================================================


class CatalogDatabase(BaseModel):
    """A database recorded in the catalog.

    Example:
        >>> db = CatalogDatabase(id=1, instance_id=7, project_id=1, name="orders")
        >>> db.sync_status
        <SyncStatus.OK: 'OK'>
    """

    id: int
    creator_id: int = 0
    created_ts: int = 0
    updater_id: int = 0
    updated_ts: int = 0
    instance_id: int
    project_id: int
    name: str
    character_set: str = ""
    collation: str = ""
    sync_status: SyncStatus = SyncStatus.OK
    last_successful_sync_ts: int = 0


class CatalogTable(BaseModel):
    """A table recorded in the catalog, scoped to one ``CatalogDatabase``."""

    id: int
    creator_id: int = 0
    created_ts: int = 0
    updater_id: int = 0
    updated_ts: int = 0
    database_id: int
    name: str
    type: str = ""
    engine: str = ""
    collation: str = ""
    row_count: int = 0
    data_size: int = 0
    index_size: int = 0
    data_free: int = 0
    create_options: str = ""
    comment: str = ""
    sync_status: SyncStatus = SyncStatus.OK
    last_successful_sync_ts: int = 0


# ============================================================================
# Database payloads
# ============================================================================


class DatabaseFind(BaseModel):
    """Filter for ``Catalog.find_databases()``.  Unset fields are ignored."""

    id: int | None = None
    instance_id: int | None = None
    name: str | None = None


class DatabaseCreate(BaseModel):
    """Attributes for a newly discovered database."""

    creator_id: int
    instance_id: int
    project_id: int
    name: str
    character_set: str = ""
    collation: str = ""
    sync_status: SyncStatus = SyncStatus.OK
    last_successful_sync_ts: int = 0


class DatabasePatch(BaseModel):
    """Partial update of a database record.  Unset fields are left alone."""

    id: int
    updater_id: int
    sync_status: SyncStatus | None = None
    last_successful_sync_ts: int | None = None


# ============================================================================
# Table payloads
# ============================================================================


class TableFind(BaseModel):
    """Filter for ``Catalog.find_table()`` / ``find_tables()``."""

    id: int | None = None
    database_id: int | None = None
    name: str | None = None


class TableCreate(BaseModel):
    """Attributes for a newly discovered table."""

    creator_id: int
    database_id: int
    name: str
    type: str = ""
    engine: str = ""
    collation: str = ""
    row_count: int = 0
    data_size: int = 0
    index_size: int = 0
    data_free: int = 0
    create_options: str = ""
    comment: str = ""
    sync_status: SyncStatus = SyncStatus.OK
    last_successful_sync_ts: int = 0


class TablePatch(BaseModel):
    """Partial update of a table record."""

    id: int
    updater_id: int
    sync_status: SyncStatus | None = None
    last_successful_sync_ts: int | None = None
