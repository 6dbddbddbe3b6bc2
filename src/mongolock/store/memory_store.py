"""Deterministic in-memory lock store for tests and single-host tooling."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime

from mongolock.store.base import LockRecord, LockStore, PriorState


class UniqueConstraintViolation(Exception):  # noqa: N818
    """Raised when an insert collides with a record created by a concurrent insert."""

    def __init__(self, lock_id: str) -> None:
        """Initialize with the id whose unique constraint was violated."""
        super().__init__(f"duplicate key: {lock_id}")
        self.lock_id = lock_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryLockStore(LockStore):
    """Dictionary-backed store with Mongo-like conditional create semantics.

    Records are only removed by ``delete_if_exists`` or by ``sweep``, which
    plays the role of the store's expiry monitor; nothing expires implicitly
    on read, just as with a TTL index.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._records: dict[str, LockRecord] = {}
        self._mutex = threading.Lock()
        self._armed_races: set[str] = set()
        self._pending_failures: list[BaseException] = []
        self.expiry_index_created = False

    def conditional_create_or_report(
        self,
        lock_id: str,
        expire_at: datetime,
    ) -> PriorState:
        with self._mutex:
            self._raise_pending_failure()
            if lock_id in self._records:
                return PriorState.ALREADY_EXISTED
            if lock_id in self._armed_races:
                # A competitor's insert lands between our read and our insert.
                self._armed_races.discard(lock_id)
                self._records[lock_id] = LockRecord(id=lock_id, expire_at=expire_at)
                raise UniqueConstraintViolation(lock_id)
            self._records[lock_id] = LockRecord(id=lock_id, expire_at=expire_at)
            return PriorState.DID_NOT_EXIST

    def delete_if_exists(self, lock_id: str) -> None:
        with self._mutex:
            self._raise_pending_failure()
            self._records.pop(lock_id, None)

    def is_contention_error(self, error: BaseException) -> bool:
        return isinstance(error, UniqueConstraintViolation)

    def ensure_expiry_index(self) -> None:
        self.expiry_index_created = True

    def sweep(self) -> int:
        """Remove every record whose ``expire_at`` has passed.

        Returns:
            Number of records removed.

        """
        now = self._clock()
        with self._mutex:
            expired = [
                lock_id
                for lock_id, record in self._records.items()
                if record.is_expired(now)
            ]
            for lock_id in expired:
                del self._records[lock_id]
        return len(expired)

    def arm_insert_race(self, lock_id: str) -> None:
        """Make the next create of ``lock_id`` lose an insert race to a competitor."""
        with self._mutex:
            self._armed_races.add(lock_id)

    def fail_next(self, error: BaseException) -> None:
        """Make the next store operation raise ``error``."""
        with self._mutex:
            self._pending_failures.append(error)

    def get(self, lock_id: str) -> LockRecord | None:
        with self._mutex:
            return self._records.get(lock_id)

    def _raise_pending_failure(self) -> None:
        if self._pending_failures:
            raise self._pending_failures.pop(0)

    def __contains__(self, lock_id: object) -> bool:
        with self._mutex:
            return lock_id in self._records

    def __len__(self) -> int:
        with self._mutex:
            return len(self._records)
