"""Instance resolution and catalog construction.

Instance selection priority:
1. ``--instance`` argument (explicit name)
2. ``{env_prefix}SYNC_INSTANCE`` environment variable
3. Raise ``InstanceNotFoundError``
"""

import logging
import os
from urllib.parse import quote

from schema_sync.adapters.postgres import AsyncPostgresAdapter
from schema_sync.catalog.store import Catalog
from schema_sync.config.models import CatalogSettings, Instance, SyncConfig

logger = logging.getLogger(__name__)


class InstanceNotFoundError(Exception):
    """Raised when no instance is selected or the name is unknown."""

    pass


def get_active_instance_name(env_prefix: str = "") -> str:
    """Get the instance name from the environment.

    Args:
        env_prefix: Prefix for environment variable lookup
            (e.g., ``"APP_"`` reads ``APP_SYNC_INSTANCE``).

    Returns:
        Instance name

    Raises:
        InstanceNotFoundError: If the variable is unset
    """
    env_var = f"{env_prefix}SYNC_INSTANCE"
    env_instance = os.environ.get(env_var)
    if env_instance:
        return env_instance

    raise InstanceNotFoundError(
        "No instance selected.\n"
        f"Pass --instance <name> or set {env_var}=<name>"
    )


def get_instance(
    config: SyncConfig,
    name: str | None = None,
    env_prefix: str = "",
) -> Instance:
    """Resolve an instance from config.

    Args:
        config: Loaded sync configuration.
        name: Instance name.  If None, uses ``{env_prefix}SYNC_INSTANCE``.
        env_prefix: Prefix for environment variable lookup.

    Raises:
        InstanceNotFoundError: If no instance is selected or the name is
            not configured.
    """
    if name is None:
        name = get_active_instance_name(env_prefix)

    if name not in config.instances:
        available = ", ".join(config.instances.keys()) or "(none)"
        raise InstanceNotFoundError(
            f"Instance '{name}' not found in sync.toml. Available: {available}"
        )
    return config.instances[name]


def resolve_url(catalog: CatalogSettings) -> str:
    """Resolve catalog URL with password substitution.

    Example:
        >>> resolve_url(CatalogSettings(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = catalog.url
    if catalog.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(catalog.db_password, safe=""))
    return url


def get_catalog(config: SyncConfig) -> Catalog:
    """Create a ``Catalog`` backed by ``AsyncPostgresAdapter``.

    Callers own the returned catalog and must ``await catalog.close()``.
    """
    adapter = AsyncPostgresAdapter(database_url=resolve_url(config.catalog))
    logger.debug("Created catalog adapter")
    return Catalog(adapter)
