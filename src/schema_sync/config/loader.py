"""TOML loader for sync.toml."""

import tomllib
from pathlib import Path

from schema_sync.config.models import CatalogSettings, Instance, SyncConfig, SyncSettings


def load_sync_config(config_path: Path | None = None) -> SyncConfig:
    """Load sync configuration from TOML file.

    Args:
        config_path: Path to sync.toml (default: ./sync.toml)

    Returns:
        SyncConfig with catalog settings and all instances

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "sync.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Sync config not found: {config_path}\n"
            f"Copy sync.toml.example to sync.toml and configure your instances."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    if "catalog" not in data:
        raise ValueError(f"Missing [catalog] table in {config_path.name}")

    # Parse instances (the table key doubles as the instance name)
    instances = {}
    for name, instance_data in data.get("instances", {}).items():
        instance_data = {"name": name, **instance_data}
        instances[name] = Instance(**instance_data)

    return SyncConfig(
        catalog=CatalogSettings(**data["catalog"]),
        sync=SyncSettings(**data.get("sync", {})),
        instances=instances,
    )
