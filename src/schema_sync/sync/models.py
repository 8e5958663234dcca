"""Result and plan models for instance synchronization."""

from pydantic import BaseModel, Field

from schema_sync.errors import ErrorKind


class SyncStats(BaseModel):
    """Catalog operations applied during one run.

    On a failed run the counts describe the writes that were applied
    before the failure; nothing is rolled back.
    """

    databases_created: int = 0
    databases_refreshed: int = 0
    databases_marked_not_found: int = 0
    tables_created: int = 0
    tables_refreshed: int = 0

    @property
    def creates(self) -> int:
        """Total records created."""
        return self.databases_created + self.tables_created

    @property
    def patches(self) -> int:
        """Total records patched."""
        return (
            self.databases_refreshed
            + self.databases_marked_not_found
            + self.tables_refreshed
        )


class SyncResult(BaseModel):
    """Outcome of ``synchronize()``.

    Exactly one error message is reported per failed run.

    Example:
        >>> result = SyncResult(success=True, instance_name="orders-prod")
        >>> result.error is None
        True
    """

    success: bool = False
    instance_name: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    stats: SyncStats = Field(default_factory=SyncStats)


class SyncPlan(BaseModel):
    """Database-level changes a run would apply.

    Attributes:
        create: Live databases with no catalog record.
        refresh: Live databases matched to a catalog record.
        mark_not_found: Catalog databases absent from the live schema.
        skipped: Internal databases excluded from reconciliation.
        table_counts: Live table count per database in ``create``/``refresh``.
    """

    create: list[str] = Field(default_factory=list)
    refresh: list[str] = Field(default_factory=list)
    mark_not_found: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    table_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        """True if a run would create or mark anything."""
        return bool(self.create or self.mark_not_found)

    def format_report(self) -> str:
        """Format the plan as a human-readable report."""
        if not (self.create or self.refresh or self.mark_not_found):
            return "Nothing to sync"

        lines = ["Sync plan:"]

        if self.create:
            lines.append(f"\n  New databases ({len(self.create)}):")
            for name in self.create:
                lines.append(f"    + {name} ({self.table_counts.get(name, 0)} tables)")

        if self.refresh:
            lines.append(f"\n  Refreshed databases ({len(self.refresh)}):")
            for name in self.refresh:
                lines.append(f"    ~ {name} ({self.table_counts.get(name, 0)} tables)")

        if self.mark_not_found:
            lines.append(f"\n  Not found ({len(self.mark_not_found)}):")
            for name in self.mark_not_found:
                lines.append(f"    - {name}")

        return "\n".join(lines)
