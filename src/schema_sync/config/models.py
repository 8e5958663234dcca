"""Pydantic models for sync configuration (sync.toml)."""

from enum import Enum

from pydantic import BaseModel, Field


# ============================================================================
# Constants
# ============================================================================

# Identity attributed to every catalog mutation made by the reconciler
SYSTEM_ACTOR_ID = 1

# Project that newly discovered databases are assigned to
DEFAULT_PROJECT_ID = 1


# ============================================================================
# Configuration Models
# ============================================================================


class Engine(str, Enum):
    """Live database engine of an instance."""

    MYSQL = "mysql"
    POSTGRES = "postgres"


class ConnectionInfo(BaseModel):
    """Connection parameters for one live instance."""

    engine: Engine = Engine.MYSQL
    host: str
    port: int | None = None
    username: str
    password: str = ""
    connect_timeout: int = 10

    @property
    def host_port(self) -> str:
        """``host`` or ``host:port`` when a port is set."""
        if self.port:
            return f"{self.host}:{self.port}"
        return self.host


class Instance(BaseModel):
    """Instance profile from sync.toml.

    Example:
        >>> instance = Instance(id=7, name="orders-prod", host="10.0.0.5", username="root")
        >>> instance.engine
        <Engine.MYSQL: 'mysql'>
    """

    id: int
    name: str
    engine: Engine = Engine.MYSQL
    host: str
    port: int | None = None
    username: str
    password: str = ""
    description: str = ""

    def connection_info(self) -> ConnectionInfo:
        """Connection parameters for the introspector."""
        return ConnectionInfo(
            engine=self.engine,
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
        )


class CatalogSettings(BaseModel):
    """Catalog database connection from the ``[catalog]`` table."""

    url: str
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class SyncSettings(BaseModel):
    """Attribution settings from the ``[sync]`` table."""

    actor_id: int = SYSTEM_ACTOR_ID
    project_id: int = DEFAULT_PROJECT_ID


class SyncConfig(BaseModel):
    """Complete configuration from sync.toml."""

    catalog: CatalogSettings
    sync: SyncSettings = Field(default_factory=SyncSettings)
    instances: dict[str, Instance] = Field(default_factory=dict)
