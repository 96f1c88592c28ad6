# ==============================================
# MongoClient
# ==============================================
#
# PURPOSE:
#   Read-only access to the source MongoDB database: list
#   collections, sample, count and page through documents.
#
# CLASS: MongoClient
# ------------------
#   Holds one pymongo client per run.
#
#   Constructor:
#   ------------
#   - __init__(uri, database=None, server_timeout_ms=5000)
#       Store connection params. Don't connect yet. Without an
#       explicit database the one named in the URI is used.
#
#   Methods:
#   --------
#   - connect() -> None                  (StoreConnectionError on failure)
#   - disconnect() -> None
#   - is_connected -> bool               (property)
#   - list_collection_names() -> list[str]   (system.* excluded)
#   - sample_documents(collection_name, size) -> list[dict]   ($sample)
#   - find_one(collection_name) -> dict | None
#   - count_documents(collection_name) -> int
#   - fetch_page(collection_name, skip, limit) -> list[dict]
#       Ordered by _id so consecutive pages never overlap.
#   - list_indexes(collection_name) -> list[dict]
#
#   Every read raises NotConnectedError before connect().
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MongoClient(...) as db:` usage.
#
# ==============================================

import logging
from typing import List, Optional

from pymongo import ASCENDING
from pymongo import MongoClient as PyMongoClient
from pymongo.errors import ConfigurationError, PyMongoError

from docmigrate.exceptions import NotConnectedError, StoreConnectionError

logger = logging.getLogger(__name__)


class MongoClient:
    def __init__(self, uri: str, database: Optional[str] = None, server_timeout_ms: int = 5000):
        self.uri = uri
        self.database = database
        self.server_timeout_ms = server_timeout_ms
        self.client = None  # Will hold the actual MongoDB client connection
        self.db = None

    @classmethod
    def from_config(cls, mongo_config) -> "MongoClient":
        return cls(uri=mongo_config.connection_uri, database=mongo_config.database)

    def connect(self) -> None:
        try:
            self.client = PyMongoClient(self.uri, serverSelectionTimeoutMS=self.server_timeout_ms)
            # Test connection
            self.client.admin.command('ping')
            if self.database:
                self.db = self.client[self.database]
            else:
                self.db = self.client.get_default_database()
            logger.info(f"Connected to MongoDB database '{self.db.name}'")
        except (PyMongoError, ConfigurationError) as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            self._close()
            raise StoreConnectionError("MongoDB", str(e)) from e

    def disconnect(self) -> None:
        if self.client:
            self._close()
            logger.info("Disconnected from MongoDB")

    def _close(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self.db = None

    @property
    def is_connected(self) -> bool:
        return self.db is not None

    def _collection(self, collection_name: str):
        if self.db is None:
            raise NotConnectedError("MongoDB")
        return self.db[collection_name]

    def list_collection_names(self) -> List[str]:
        if self.db is None:
            raise NotConnectedError("MongoDB")
        names = self.db.list_collection_names()
        return sorted(name for name in names if not name.startswith("system."))

    def sample_documents(self, collection_name: str, size: int) -> List[dict]:
        collection = self._collection(collection_name)
        return list(collection.aggregate([{"$sample": {"size": size}}]))

    def find_one(self, collection_name: str) -> Optional[dict]:
        return self._collection(collection_name).find_one()

    def count_documents(self, collection_name: str) -> int:
        return self._collection(collection_name).count_documents({})

    def fetch_page(self, collection_name: str, skip: int, limit: int) -> List[dict]:
        cursor = (
            self._collection(collection_name)
            .find({})
            .sort("_id", ASCENDING)
            .skip(skip)
            .limit(limit)
        )
        return list(cursor)

    def list_indexes(self, collection_name: str) -> List[dict]:
        return [dict(index) for index in self._collection(collection_name).list_indexes()]

    def __enter__(self):
        # For `with MongoClient(...) as db:` usage.
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
