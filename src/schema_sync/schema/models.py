"""Pydantic models for the live schema snapshot.

A snapshot is produced fresh on every run by an introspector and is
never persisted:
- LiveTable: structural and statistical attributes of one table
- LiveDatabase: one logical database and its tables
- LiveSchemaSnapshot: every database on the instance, in server order
"""

from pydantic import BaseModel, ConfigDict, Field


class LiveTable(BaseModel):
    """Schema for a live table.

    Example:
        >>> table = LiveTable(name="items", engine="InnoDB", row_count=42)
        >>> table.data_free
        0
    """

    model_config = ConfigDict(frozen=True)

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


class LiveDatabase(BaseModel):
    """Schema for a live database."""

    name: str
    character_set: str = ""
    collation: str = ""
    tables: list[LiveTable] = Field(default_factory=list)


class LiveSchemaSnapshot(BaseModel):
    """Complete live schema of one instance."""

    databases: list[LiveDatabase] = Field(default_factory=list)

    @property
    def database_names(self) -> list[str]:
        """Database names in snapshot order."""
        return [database.name for database in self.databases]
