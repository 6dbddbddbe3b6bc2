"""Common exceptions used across the mongolock library.

Store and infrastructure errors (pymongo's ``PyMongoError`` family) are
never wrapped by these classes; they reach the caller unchanged.
"""


class MongoLockError(Exception):
    """Base exception for all mongolock errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the exception with message and optional original error."""
        super().__init__(message)
        self.original_error = original_error
        self.message = message


class LockAcquisitionTimeoutError(MongoLockError):
    """Raised when a lock could not be acquired within the attempt budget."""

    def __init__(self, resource_id: str, attempts: int) -> None:
        """Initialize with the contended resource and the attempts spent."""
        self.resource_id = resource_id
        self.attempts = attempts
        super().__init__(
            f"Could not acquire lock for {resource_id} within {attempts} attempts.",
        )


class LockReleasedError(MongoLockError):
    """Raised when acquisition is attempted on a lock that was already released."""


class LockConfigError(MongoLockError):
    """Raised when lock or store configuration is invalid."""
