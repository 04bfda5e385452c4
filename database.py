"""
MongoDB storage context.

A single Database object is created by the application factory, connected in
the app lifespan and handed to every service. Collections are reached via
attributes (db.orders, db.reviews, ...).
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from errors import InternalFailure, InvalidInput

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, uri: str = None, name: str = "localBazarChef", client: MongoClient = None):
        self.uri = uri
        self.name = name
        self._client = client
        self._owns_client = client is None
        self._db = None

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self.uri, server_api=ServerApi("1", strict=True, deprecation_errors=True))
            self._client.admin.command("ping")
            logger.info("MongoDB connected successfully")
        self._db = self._client[self.name]
        self.ensure_indexes()

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._db = None

    def ensure_indexes(self) -> None:
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.orders.create_index([("userEmail", ASCENDING)])
        self.orders.create_index([("chefId", ASCENDING), ("orderTime", DESCENDING)])
        self.reviews.create_index([("foodId", ASCENDING), ("date", DESCENDING)])
        self.favorites.create_index([("userEmail", ASCENDING), ("mealId", ASCENDING)])

    def __getitem__(self, collection: str):
        if self._db is None:
            raise InternalFailure("Database is not connected")
        return self._db[collection]

    @property
    def meals(self):
        return self["meals"]

    @property
    def reviews(self):
        return self["reviews"]

    @property
    def favorites(self):
        return self["favorites"]

    @property
    def orders(self):
        return self["orders"]

    @property
    def users(self):
        return self["users"]


@contextmanager
def storage_errors(operation: str):
    """Re-raise driver faults as InternalFailure."""
    try:
        yield
    except PyMongoError as exc:
        logger.exception("Storage failure during %s", operation)
        raise InternalFailure(f"Failed to {operation}") from exc


# Helpers

def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidInput("Invalid id")


def sanitize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d
