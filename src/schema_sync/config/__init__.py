"""Configuration management: instances, catalog connection, TOML loading.

Usage:
    >>> from schema_sync.config import load_sync_config, Instance, SyncConfig
"""

from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import (
    DEFAULT_PROJECT_ID,
    SYSTEM_ACTOR_ID,
    CatalogSettings,
    ConnectionInfo,
    Engine,
    Instance,
    SyncConfig,
    SyncSettings,
)

__all__ = [
    "load_sync_config",
    "SyncConfig",
    "CatalogSettings",
    "SyncSettings",
    "Instance",
    "ConnectionInfo",
    "Engine",
    "SYSTEM_ACTOR_ID",
    "DEFAULT_PROJECT_ID",
]
