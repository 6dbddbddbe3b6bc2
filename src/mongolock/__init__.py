"""mongolock - distributed mutual exclusion through a shared MongoDB collection.

Clients on any host serialize access to a named resource by racing to create
a single lock document; no lock manager process is involved.
"""

__version__ = "0.1.0"

from . import exceptions, logging
from .config import AppConfig, LockProviderConfig, MongoStoreConfig, load_config
from .exceptions import LockAcquisitionTimeoutError, MongoLockError
from .locking import DistributedLock, LockProvider, create_mongo_lock_provider

__all__ = [
    "AppConfig",
    "DistributedLock",
    "LockAcquisitionTimeoutError",
    "LockProvider",
    "LockProviderConfig",
    "MongoLockError",
    "MongoStoreConfig",
    "create_mongo_lock_provider",
    "exceptions",
    "load_config",
    "logging",
]
