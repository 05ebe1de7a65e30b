"""Custom exception hierarchy for PRGuard."""


class PRGuardError(Exception):
    """Base exception for all PRGuard errors."""


class StorageError(PRGuardError):
    """Raised on storage backend failures (DB connection, constraint, disk I/O, etc.)."""


class ConfigError(PRGuardError):
    """Raised when a configuration value is out of range or inconsistent."""
