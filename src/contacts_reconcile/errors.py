from __future__ import annotations


class ReconcileError(Exception):
    """Base class for errors raised by the reconciliation engine."""


class SourceUnavailableError(ReconcileError):
    """The contact source could not be read (permission revoked, file missing, ...)."""


class StoreWriteError(ReconcileError):
    """A person store rejected a create or update."""


class ConfigError(ReconcileError):
    """Configuration values are missing or invalid."""


class StoreReadError(ReconcileError):
    """The persisted people could not be loaded from the store."""
