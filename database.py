"""
MongoDB access for the hostel API.

The connection is opened lazily from DATABASE_URL / DATABASE_NAME so importing
the app never touches the network. Route handlers receive the database through
the ``get_db`` dependency, which tests override with an in-memory database.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import settings
from errors import InvalidIdError

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def connect(url: str = None, name: str = None) -> Database:
    """Open the database and create its indexes; nothing is cached unless both succeed."""
    global _client, _db
    client = MongoClient(url or settings.DATABASE_URL)
    db = client[name or settings.DATABASE_NAME]
    try:
        ensure_indexes(db)
    except Exception:
        client.close()
        raise
    _client, _db = client, db
    logger.info("Connected to MongoDB database %s", db.name)
    return db


def get_db() -> Database:
    """FastAPI dependency returning the shared database handle."""
    if _db is None:
        return connect()
    return _db


def ensure_indexes(db: Database) -> None:
    db.user.create_index([("email", ASCENDING)], unique=True)


def to_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise InvalidIdError(id_str)


def bson_safe(value: Any) -> Any:
    """BSON has no plain date type; store dates as midnight UTC datetimes."""
    if isinstance(value, dict):
        return {k: bson_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [bson_safe(v) for v in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Replace ``_id`` with a string ``id`` and drop secrets."""
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc.pop("password", None)
    return doc


def create_document(db: Database, collection_name: str, data: Any) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=False)
    now = datetime.now(timezone.utc)
    doc = bson_safe(dict(data))
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Dict[str, Any] = None,
                  sort: List[tuple] = None, limit: int = None) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize_doc(d) for d in cursor]


def get_document(db: Database, collection_name: str, id_str: str) -> Optional[Dict[str, Any]]:
    doc = db[collection_name].find_one({"_id": to_object_id(id_str)})
    return serialize_doc(doc) if doc else None


def update_document(db: Database, collection_name: str, id_str: str, changes: Dict[str, Any],
                    unset: Sequence[str] = ()) -> Optional[Dict[str, Any]]:
    """Apply ``$set`` and ``$unset``; return the updated document, or None when it does not exist."""
    oid = to_object_id(id_str)
    changes = bson_safe(dict(changes))
    changes["updated_at"] = datetime.now(timezone.utc)
    update = {"$set": changes}
    if unset:
        update["$unset"] = {field: "" for field in unset}
    res = db[collection_name].update_one({"_id": oid}, update)
    if res.matched_count == 0:
        return None
    return serialize_doc(db[collection_name].find_one({"_id": oid}))
