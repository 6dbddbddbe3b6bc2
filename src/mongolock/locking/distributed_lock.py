"""Single-attempt distributed lock backed by a lock store."""

from __future__ import annotations

import logging
import types
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum

from mongolock.exceptions import LockReleasedError
from mongolock.logging import get_logger
from mongolock.store.base import LockStore, PriorState


class LockState(Enum):
    """Lifecycle of a DistributedLock: UNACQUIRED -> ACQUIRED -> RELEASED."""

    UNACQUIRED = "unacquired"
    ACQUIRED = "acquired"
    RELEASED = "released"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DistributedLock:
    """One lock record's lifecycle: acquisition attempts, ownership and release.

    The lock is not renewed. A holder that runs longer than
    ``expiration_delay`` can have its record removed by the store's expiry
    sweep and taken by another client while it still believes it holds it.
    """

    def __init__(
        self,
        store: LockStore,
        lock_id: str,
        expiration_delay: timedelta,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the lock without touching the store.

        Args:
            store: Backing store providing the atomic conditional write
            lock_id: Unique key of the lock record
            expiration_delay: How long the record lives if never released
            logger: Logger instance for logging operations
            clock: Source of the current UTC time

        """
        self.store = store
        self.lock_id = lock_id
        self.expiration_delay = expiration_delay
        self.logger = logger or get_logger(__name__)
        self._clock = clock or _utcnow
        self._state = LockState.UNACQUIRED
        self.expire_at: datetime | None = None

    @property
    def state(self) -> LockState:
        return self._state

    @property
    def acquired(self) -> bool:
        return self._state is LockState.ACQUIRED

    def __enter__(self) -> DistributedLock:
        """Context manager entry point; the lock is expected to be acquired."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Context manager exit point."""
        self.release()

    def try_acquire(self) -> bool:
        """Make one acquisition attempt.

        Returns:
            True if this lock now owns the record, False if another holder does.

        Raises:
            LockReleasedError: If the lock was already released
            Exception: Any store failure other than insert-race contention,
                propagated unchanged

        """
        if self._state is LockState.ACQUIRED:
            return True
        if self._state is LockState.RELEASED:
            error_msg = f"Lock {self.lock_id} was already released."
            raise LockReleasedError(error_msg)

        expire_at = self._clock() + self.expiration_delay
        try:
            prior_state = self.store.conditional_create_or_report(
                self.lock_id,
                expire_at,
            )
        except Exception as e:
            if self.store.is_contention_error(e):
                self.logger.debug(
                    "Lost insert race for %s; another client created it first.",
                    self.lock_id,
                )
                return False
            raise

        if prior_state is PriorState.ALREADY_EXISTED:
            self.logger.debug("Lock %s is held by another client.", self.lock_id)
            return False

        self._state = LockState.ACQUIRED
        self.expire_at = expire_at
        self.logger.info(
            "Lock %s acquired (expires at %s).",
            self.lock_id,
            expire_at.isoformat(),
        )
        return True

    def release(self) -> None:
        """Delete the record if, and only if, this lock created it.

        Safe to call repeatedly and on a lock that never acquired.
        """
        if self._state is not LockState.ACQUIRED:
            return
        self.store.delete_if_exists(self.lock_id)
        self._state = LockState.RELEASED
        self.logger.info("Lock %s released.", self.lock_id)
