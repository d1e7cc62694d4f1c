"""
MongoDB access.

A single client is created at import time (pymongo connects lazily) and shared
by every request. Route handlers receive the database through the ``get_db``
dependency so tests can swap in an in-memory database.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from errors import ValidationFailure

logger = logging.getLogger(__name__)

client = MongoClient(settings.DATABASE_URL, tz_aware=True)
db = client[settings.DATABASE_NAME]


def get_db() -> Database:
    return db


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["enrollment"].create_index([("student", ASCENDING), ("course", ASCENDING)])
    database["course"].create_index([("instructor", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)


def to_obj_id(id_str: Any) -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    if not ObjectId.is_valid(id_str):
        raise ValidationFailure(f"Invalid id: {id_str}")
    return ObjectId(id_str)


def normalize_id(id_str: Any) -> str:
    """Canonical (lower-case hex) form of an id, as stored in references."""
    return str(to_obj_id(id_str))


def sanitize(doc: Optional[Dict]) -> Optional[Dict]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def create_document(database: Database, collection: str, model: BaseModel) -> Dict:
    """Insert a schema instance and return the stored document (with ``_id``)."""
    doc = model.model_dump()
    doc.setdefault("created_at", datetime.now(timezone.utc))
    res = database[collection].insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def get_documents(database: Database, collection: str, filter_q: Optional[Dict] = None) -> List[Dict]:
    return list(database[collection].find(filter_q or {}))
