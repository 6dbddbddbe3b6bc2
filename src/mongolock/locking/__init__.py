"""Distributed lock acquisition and release."""

from .distributed_lock import DistributedLock, LockState
from .lock_provider import LockProvider, create_mongo_lock_provider

__all__ = [
    "DistributedLock",
    "LockProvider",
    "LockState",
    "create_mongo_lock_provider",
]
