"""
Error kinds raised by the RBAC tools
"""
import sqlite3


class RbacToolError(Exception):
    """Base exception for RBAC tools."""

    def __init__(self, message="An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(RbacToolError):
    """Raised when a required artifact does not exist."""
    pass


class ValidationError(RbacToolError):
    """Raised when command input is missing or malformed."""
    pass


class SnapshotIOError(RbacToolError):
    """Raised when the snapshot file cannot be written or read."""

    def __init__(self, message, path=None):
        self.path = path
        super().__init__(message)


# Storage failures are propagated as raised by the driver
StorageError = sqlite3.Error
DuplicateKeyError = sqlite3.IntegrityError
