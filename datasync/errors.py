from __future__ import annotations


class SyncPlanError(Exception):
    """Base class for failures raised while compiling a sync plan."""


class ConstraintMetadataError(SyncPlanError):
    """Raised when constraint rows reported by the database are internally inconsistent."""


class SchemaDriftError(SyncPlanError):
    """Raised when the live schema has diverged from the configured job mappings."""

    def __init__(self, message: str, *, unknown_columns=None, unmapped_columns=None) -> None:
        super().__init__(message)
        self.unknown_columns = list(unknown_columns or [])
        self.unmapped_columns = list(unmapped_columns or [])


class CircularDependencyError(SyncPlanError):
    """Raised when a table cycle cannot be broken by deferring a nullable foreign key."""

    def __init__(self, message: str, *, tables=None) -> None:
        super().__init__(message)
        self.tables = list(tables or [])


class TransformerConfigError(SyncPlanError):
    """Raised when a column transformer is missing or carries a mismatched configuration."""


class TransformerResolutionError(SyncPlanError):
    """Raised when a user defined transformer cannot be looked up."""


class CacheBridgeError(SyncPlanError):
    """Raised when circular references require a cache and none is configured."""


class CompilationCancelledError(SyncPlanError):
    """Raised when plan compilation is cancelled between tables."""
