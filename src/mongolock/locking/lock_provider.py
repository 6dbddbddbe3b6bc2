"""Lock provider turning single acquisition attempts into a bounded blocking wait."""

from __future__ import annotations

import logging
import time
import types
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from mongolock.config import AppConfig, LockProviderConfig
from mongolock.exceptions import LockAcquisitionTimeoutError
from mongolock.locking.distributed_lock import DistributedLock
from mongolock.logging import get_logger
from mongolock.store.base import LockStore
from mongolock.store.mongo_store import MongoLockStore


class LockProvider:
    """Hands out distributed locks for named resources.

    Waiters are not queued: whichever client's attempt lands first after a
    release wins, regardless of how long the others have been retrying.
    """

    def __init__(
        self,
        store: LockStore,
        config: LockProviderConfig | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the LockProvider.

        Args:
            store: Backing store shared by every client of the lock
            config: Expiration, retry and key policy
            logger: Logger instance for logging operations
            sleep: Function used to wait between attempts
            clock: Source of the current UTC time for record expiry

        """
        self.store = store
        self.config = config or LockProviderConfig()
        self.logger = logger or get_logger(__name__)
        self._sleep = sleep
        self._clock = clock

    def build_lock_key(self, resource_id: str) -> str:
        """Map a resource id to its lock record id."""
        if not isinstance(resource_id, str) or not resource_id:
            error_msg = f"resource_id must be a non-empty string, got {resource_id!r}"
            raise ValueError(error_msg)
        return f"{self.config.key_prefix}{resource_id}"

    def _build_lock(
        self,
        resource_id: str,
        expiration_delay: timedelta | None,
    ) -> DistributedLock:
        return DistributedLock(
            self.store,
            self.build_lock_key(resource_id),
            self.config.default_expiration_delay
            if expiration_delay is None
            else expiration_delay,
            logger=self.logger,
            clock=self._clock,
        )

    def acquire_lock(
        self,
        resource_id: str,
        expiration_delay: timedelta | None = None,
    ) -> DistributedLock:
        """Block until the lock for ``resource_id`` is acquired.

        Args:
            resource_id: Identifier of the resource to serialize access to
            expiration_delay: Lifetime of the record if never released;
                defaults to the configured delay

        Returns:
            The acquired lock; use it as a context manager or call ``release``.

        Raises:
            LockAcquisitionTimeoutError: If ``max_attempts`` attempts all failed
            Exception: Store failures, propagated unchanged

        """
        distributed_lock = self._build_lock(resource_id, expiration_delay)
        retry_seconds = self.config.retry_delay.total_seconds()
        max_attempts = self.config.max_attempts
        attempts = 0

        while not distributed_lock.try_acquire():
            attempts += 1
            self.logger.debug(
                "Lock %s busy (attempt %d/%s); retrying in %.3fs.",
                distributed_lock.lock_id,
                attempts,
                "unbounded" if max_attempts is None else max_attempts,
                retry_seconds,
            )
            self._sleep(retry_seconds)
            if max_attempts is not None and attempts >= max_attempts:
                self.logger.warning(
                    "Giving up on lock for %s after %d attempts.",
                    resource_id,
                    attempts,
                )
                raise LockAcquisitionTimeoutError(resource_id, attempts)

        return distributed_lock

    @contextmanager
    def lock(
        self,
        resource_id: str,
        expiration_delay: timedelta | None = None,
    ) -> Iterator[DistributedLock]:
        """Acquire, yield and always release the lock for ``resource_id``."""
        distributed_lock = self.acquire_lock(resource_id, expiration_delay)
        try:
            yield distributed_lock
        finally:
            distributed_lock.release()

    def is_lock_acquired(self, resource_id: str) -> bool:
        """Probe the resource with a single zero-lifetime acquisition attempt.

        Returns True when the probe itself could take the lock, i.e. nobody
        held the resource at that instant. The probe's own record is released
        immediately either way, so the result grants no ownership.
        """
        with self._build_lock(resource_id, timedelta(0)) as probe:
            return probe.try_acquire()

    def close(self) -> None:
        """Close the backing store. Locks still held are left to expire."""
        self.store.close()

    def __enter__(self) -> LockProvider:
        """Context manager entry point."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Context manager exit point."""
        self.close()


def create_mongo_lock_provider(
    config: AppConfig,
    logger: logging.Logger | None = None,
) -> LockProvider:
    """Connect to MongoDB, provision the expiry index and build a provider."""
    store = MongoLockStore.from_config(config.mongo, logger=logger)
    try:
        store.ensure_expiry_index()
    except Exception:
        store.close()
        raise
    return LockProvider(store, config=config.lock, logger=logger)
