"""Backing store contract for the distributed lock.

The lock never coordinates in-process: all mutual exclusion comes from the
store's atomic conditional write. A store implementation provides:

- ``conditional_create_or_report``: create the record if absent and report
  whether it existed *before* the write, in one indivisible operation.
- ``delete_if_exists``: idempotent removal.
- ``is_contention_error``: the store's narrow predicate for the
  "uniqueness constraint violated" signal raised when two inserts race.
- ``ensure_expiry_index``: bootstrap step provisioning autonomous expiry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

ID_FIELD = "_id"
EXPIRE_AT_FIELD = "expireAt"


class PriorState(Enum):
    """State of a lock record as observed immediately before a conditional write."""

    DID_NOT_EXIST = "did_not_exist"
    ALREADY_EXISTED = "already_existed"


@dataclass(frozen=True)
class LockRecord:
    """Persisted state meaning "resource is held until ``expire_at``"."""

    id: str
    expire_at: datetime

    def to_document(self) -> dict[str, Any]:
        return {ID_FIELD: self.id, EXPIRE_AT_FIELD: self.expire_at}

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> LockRecord:
        expire_at = document[EXPIRE_AT_FIELD]
        # BSON dates come back naive unless the client is tz_aware.
        if expire_at.tzinfo is None:
            expire_at = expire_at.replace(tzinfo=UTC)
        return cls(id=str(document[ID_FIELD]), expire_at=expire_at)

    def is_expired(self, now: datetime) -> bool:
        return self.expire_at <= now


class LockStore(ABC):
    """Abstract capability the lock protocol depends on."""

    @abstractmethod
    def conditional_create_or_report(
        self,
        lock_id: str,
        expire_at: datetime,
    ) -> PriorState:
        """Atomically create the record for ``lock_id`` unless one exists.

        Args:
            lock_id: Unique key of the lock record.
            expire_at: Absolute time after which the store may delete the record.

        Returns:
            ``PriorState.DID_NOT_EXIST`` if this call created the record,
            ``PriorState.ALREADY_EXISTED`` if it was left untouched.

        Raises:
            Exception: The store's uniqueness-violation signal when a concurrent
                insert wins the race (see ``is_contention_error``), or any
                infrastructure failure.

        """

    @abstractmethod
    def delete_if_exists(self, lock_id: str) -> None:
        """Remove the record for ``lock_id``; no error if it is absent."""

    @abstractmethod
    def is_contention_error(self, error: BaseException) -> bool:
        """Return True only if ``error`` means another client won an insert race."""

    def ensure_expiry_index(self) -> None:  # noqa: B027
        """Provision autonomous expiry of records past their ``expireAt``.

        Stores that expire records on their own need nothing here.
        """

    def close(self) -> None:  # noqa: B027
        """Release connections held by the store."""
