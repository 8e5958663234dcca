"""Catalog reconciliation against the live schema.

Usage:
    from schema_sync.sync import synchronize, plan_instance, SyncResult
"""

from schema_sync.sync.models import SyncPlan, SyncResult, SyncStats
from schema_sync.sync.planner import (
    INTERNAL_DATABASE_NAME,
    is_internal_database,
    plan_sync,
)
from schema_sync.sync.reconciler import (
    Reconciler,
    load_catalog_databases,
    plan_instance,
    synchronize,
)

__all__ = [
    "synchronize",
    "plan_instance",
    "load_catalog_databases",
    "Reconciler",
    "plan_sync",
    "is_internal_database",
    "INTERNAL_DATABASE_NAME",
    "SyncResult",
    "SyncStats",
    "SyncPlan",
]
