"""Backing stores for distributed locks."""

from .base import LockRecord, LockStore, PriorState
from .memory_store import InMemoryLockStore, UniqueConstraintViolation
from .mongo_store import MongoLockStore

__all__ = [
    "InMemoryLockStore",
    "LockRecord",
    "LockStore",
    "MongoLockStore",
    "PriorState",
    "UniqueConstraintViolation",
]
