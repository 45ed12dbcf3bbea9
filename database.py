"""
Database helpers

MongoDB access for the API. The client is owned by the application (see
``main.lifespan``) and handed to route handlers through ``get_db``.

Documents are stored with snake_case keys and returned to clients through
``to_public`` which renames ``_id`` to ``id`` and camelCases the rest.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from loguru import logger
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, TEXT, MongoClient
from pymongo.database import Database

from config import Settings

USERS = "users"
PRODUCTS = "products"
EXAMPLES = "examples"

# Never leaves the database layer
PRIVATE_FIELDS = {"password_hash"}


def connect(settings: Settings) -> MongoClient:
    client: MongoClient = MongoClient(settings.mongodb_uri, tz_aware=True)
    logger.info("MongoDB client created for database {}", settings.mongodb_db)
    return client


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[PRODUCTS].create_index(
        [("name", TEXT), ("description", TEXT), ("category", TEXT)],
        name="product_text_search",
    )
    db[PRODUCTS].create_index([("created_at", ASCENDING)])
    logger.debug("MongoDB indexes ensured")


def get_db(request: Request) -> Database:
    return request.app.state.db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return ``ObjectId(value)`` or ``None`` when the string cannot be an id."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    """Insert a single document with timestamps and return it as stored."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    doc.pop("_id", None)
    doc.pop("id", None)
    now = now_utc()
    doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def create_documents(db: Database, collection_name: str, items: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    now = now_utc()
    docs = []
    for item in items:
        doc = item.model_dump()
        doc["created_at"] = now
        doc["updated_at"] = now
        docs.append(doc)
    if not docs:
        return []
    result = db[collection_name].insert_many(docs)
    for doc, inserted_id in zip(docs, result.inserted_ids):
        doc["_id"] = inserted_id
    return docs


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _public_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, list):
        return [_public_value(v) for v in value]
    if isinstance(value, dict):
        return {to_camel(k): _public_value(v) for k, v in value.items()}
    return value


def to_public(doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not doc:
        return {}
    out: Dict[str, Any] = {}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    for key, value in doc.items():
        if key == "_id" or key in PRIVATE_FIELDS:
            continue
        out[to_camel(key)] = _public_value(value)
    return out
