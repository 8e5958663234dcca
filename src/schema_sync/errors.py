"""Typed errors raised while synchronizing an instance's schema.

Every failure carries an ``ErrorKind`` tag so callers can branch on the
kind of failure instead of inspecting message strings.  Context fields
(``instance``, ``database``, ``table``) are filled in by the reconciler
when it re-raises a lower-level error.

Usage:
    from schema_sync.errors import ErrorKind, SyncError

    try:
        await catalog.create_database(create)
    except SyncError as e:
        if e.kind is ErrorKind.CONFLICT:
            ...
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a synchronization failure."""

    CONNECTION = "CONNECTION"
    INTROSPECTION = "INTROSPECTION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    PERSISTENCE = "PERSISTENCE"


class SyncError(Exception):
    """Base class for all synchronization failures.

    Args:
        message: Human-readable description, returned verbatim to callers.
        instance: Name of the instance being synchronized.
        database: Database name, when the failure concerns one.
        table: Table name, when the failure concerns one.
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(
        self,
        message: str,
        *,
        instance: str | None = None,
        database: str | None = None,
        table: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.instance = instance
        self.database = database
        self.table = table


class InstanceConnectionError(SyncError):
    """Instance unreachable or credentials rejected."""

    kind = ErrorKind.CONNECTION


class IntrospectionError(SyncError):
    """Live schema could not be read."""

    kind = ErrorKind.INTROSPECTION


class ConflictError(SyncError):
    """Create hit an existing unique key."""

    kind = ErrorKind.CONFLICT


class CatalogNotFoundError(SyncError):
    """Patch target vanished between read and write."""

    kind = ErrorKind.NOT_FOUND


class PersistenceError(SyncError):
    """Catalog operation failed for infrastructure reasons."""

    kind = ErrorKind.PERSISTENCE
