"""MongoDB implementation of the lock store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from mongolock.config import MongoStoreConfig
from mongolock.logging import get_logger
from mongolock.store.base import (
    EXPIRE_AT_FIELD,
    ID_FIELD,
    LockRecord,
    LockStore,
    PriorState,
)

DUPLICATE_KEY_ERROR_CODE = 11000
EXPIRY_INDEX_NAME = "expireAt_ttl"


class MongoLockStore(LockStore):
    """Lock records in a MongoDB collection, one document per held lock.

    Acquisition is a single ``findAndModify`` upsert returning the document as
    it was *before* the write: ``None`` means this call inserted it.
    """

    def __init__(
        self,
        collection: Collection,
        logger: logging.Logger | None = None,
        client: MongoClient | None = None,
    ) -> None:
        self.collection = collection
        self.logger = logger or get_logger(__name__)
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: MongoStoreConfig,
        logger: logging.Logger | None = None,
    ) -> MongoLockStore:
        """Connect to MongoDB and bind to the configured lock collection."""
        client: MongoClient = MongoClient(config.uri, tz_aware=True, appname="mongolock")
        collection = client[config.database][config.collection]
        return cls(collection, logger=logger, client=client)

    def conditional_create_or_report(
        self,
        lock_id: str,
        expire_at: datetime,
    ) -> PriorState:
        record = LockRecord(id=lock_id, expire_at=expire_at)
        previous: dict[str, Any] | None = self.collection.find_one_and_update(
            {ID_FIELD: lock_id},
            {"$setOnInsert": record.to_document()},
            upsert=True,
            return_document=ReturnDocument.BEFORE,
        )
        if previous is None:
            return PriorState.DID_NOT_EXIST
        holder = LockRecord.from_document(previous)
        self.logger.debug("Lock %s is held until %s.", holder.id, holder.expire_at)
        return PriorState.ALREADY_EXISTED

    def delete_if_exists(self, lock_id: str) -> None:
        self.collection.delete_one({ID_FIELD: lock_id})

    def is_contention_error(self, error: BaseException) -> bool:
        """Match only duplicate-key failures on the ``_id`` index.

        Two upserts racing on the same ``_id`` both miss the match and both
        insert; the loser gets error 11000. A duplicate key on any other
        unique index is a schema problem, not contention.
        """
        if not isinstance(error, OperationFailure):
            return False
        if error.code != DUPLICATE_KEY_ERROR_CODE:
            return False
        key_pattern = (error.details or {}).get("keyPattern")
        if key_pattern is None:
            return True
        return set(key_pattern) == {ID_FIELD}

    def ensure_expiry_index(self) -> None:
        """Create the TTL index that lets MongoDB delete expired lock records.

        The TTL monitor runs roughly once a minute, so records can outlive
        ``expireAt`` by that much.
        """
        self.collection.create_index(
            [(EXPIRE_AT_FIELD, ASCENDING)],
            expireAfterSeconds=0,
            name=EXPIRY_INDEX_NAME,
        )
        self.logger.info(
            "Expiry index ensured on %s.%s",
            self.collection.full_name,
            EXPIRE_AT_FIELD,
        )

    def close(self) -> None:
        """Close the client if this store opened it."""
        if self._client is not None:
            self._client.close()
