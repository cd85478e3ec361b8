"""
Database Helper Functions

MongoDB access for the content API. Every content type lives in its own
collection; documents keep their MongoDB ObjectId as `_id` and are handed to
callers with a string `id` instead.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db = None


class DatabaseUnavailable(Exception):
    """Raised when DATABASE_URL / DATABASE_NAME are not configured."""


def _connect():
    """Lazy-connect to MongoDB using env vars if not already connected."""
    global _client, db
    if db is not None:
        return db
    database_url = os.getenv("DATABASE_URL")
    database_name = os.getenv("DATABASE_NAME")
    if database_url and database_name:
        _client = MongoClient(database_url)
        db = _client[database_name]
        logger.info("Connected to MongoDB database %s", database_name)
        return db
    return None


def get_db():
    """Get a live db handle or None if env vars are not set."""
    return _connect()


def collection(name: str):
    database = _connect()
    if database is None:
        raise DatabaseUnavailable(
            "Database not available. Check DATABASE_URL and DATABASE_NAME environment variables."
        )
    return database[name]


def now_utc() -> datetime:
    # naive UTC, the form pymongo hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_object_id(value: Any) -> ObjectId:
    """Parse an id coming from a URL or a filter. Raises ValueError on junk."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValueError(f"Invalid id: {value!r}")


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Swap Mongo's `_id` for a string `id` and render datetimes as ISO strings."""
    if doc is None:
        return None
    out = {"id": str(doc.get("_id", ""))}
    for key, value in doc.items():
        if key == "_id":
            continue
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.isoformat().replace("+00:00", "Z")
        elif isinstance(value, ObjectId):
            value = str(value)
        out[key] = value
    return out


# Helper functions for common database operations

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a single document with timestamps"""
    # Convert Pydantic model to dict if needed
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        # make a shallow copy to avoid mutating caller's dict
        data_dict = dict(data)

    now = now_utc()
    data_dict.setdefault("createdAt", now)
    data_dict["updatedAt"] = now

    result = collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
    skip: int = 0,
    limit: Optional[int] = None,
    projection: Optional[Dict[str, int]] = None,
) -> List[dict]:
    """Get documents from collection"""
    cursor = collection(collection_name).find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(list(sort))
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    return collection(collection_name).find_one(filter_dict)


def count_documents(collection_name: str, filter_dict: Optional[dict] = None) -> int:
    return collection(collection_name).count_documents(filter_dict or {})


def update_document(collection_name: str, doc_id: ObjectId, changes: dict) -> Optional[dict]:
    """Apply `$set` and return the updated document (or None if missing)."""
    data = dict(changes)
    data["updatedAt"] = now_utc()
    return collection(collection_name).find_one_and_update(
        {"_id": doc_id}, {"$set": data}, return_document=ReturnDocument.AFTER
    )


def increment_field(collection_name: str, doc_id: ObjectId, field: str, amount: int = 1) -> Optional[dict]:
    """Atomically bump a numeric counter and return the updated document."""
    return collection(collection_name).find_one_and_update(
        {"_id": doc_id}, {"$inc": {field: amount}}, return_document=ReturnDocument.AFTER
    )


def delete_document(collection_name: str, doc_id: ObjectId) -> Optional[dict]:
    return collection(collection_name).find_one_and_delete({"_id": doc_id})
