"""Typed access to the ``users`` collection."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from .database import DatabaseConnectionError, DatabaseConnector
from .models import UserRecord, utc_now


class StoreErrorKind(str, Enum):
    """Closed set of failures reported by :class:`UserStore`."""

    DUPLICATE_KEY = "duplicate_key"
    STORE_UNAVAILABLE = "store_unavailable"


class UserStoreError(Exception):
    """A persistence failure classified by :class:`StoreErrorKind`."""

    def __init__(self, kind: StoreErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class UserStore:
    """Insert and list user records, enforcing unique email addresses."""

    collection_name = "users"

    def __init__(self, database: DatabaseConnector) -> None:
        self._database = database

    @property
    def collection(self) -> AsyncIOMotorCollection[Dict[str, Any]]:
        return self._database.database[self.collection_name]

    async def ensure_indexes(self) -> None:
        """Create the unique ``email`` index if it does not already exist."""

        try:
            await self.collection.create_index([("email", ASCENDING)], unique=True, name="email_1")
        except (PyMongoError, DatabaseConnectionError) as exc:
            raise UserStoreError(StoreErrorKind.STORE_UNAVAILABLE, str(exc)) from exc

    async def create(self, name: str, email: str) -> UserRecord:
        document: Dict[str, Any] = {"name": name, "email": email, "createdAt": utc_now()}
        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as exc:
            raise UserStoreError(StoreErrorKind.DUPLICATE_KEY, str(exc)) from exc
        except (PyMongoError, DatabaseConnectionError) as exc:
            raise UserStoreError(StoreErrorKind.STORE_UNAVAILABLE, str(exc)) from exc

        document["_id"] = result.inserted_id
        return UserRecord.from_document(document)

    async def list_all(self) -> List[UserRecord]:
        """Return every record, most recently created first."""

        try:
            cursor = self.collection.find({}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            documents = await cursor.to_list(length=None)
        except (PyMongoError, DatabaseConnectionError) as exc:
            raise UserStoreError(StoreErrorKind.STORE_UNAVAILABLE, str(exc)) from exc
        return [UserRecord.from_document(document) for document in documents]


__all__ = ["StoreErrorKind", "UserStore", "UserStoreError"]
