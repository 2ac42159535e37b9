"""
Database helpers

Thin layer over pymongo. The collection name is the lowercase of the schema
class name (Product -> "product", User -> "user", Cart -> "cart").
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)


def connect(settings: Settings) -> Optional[Database]:
    if not (settings.database_url and settings.database_name):
        logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")
        return None
    client = MongoClient(settings.database_url, tz_aware=True)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db["product"].create_index([("materialNo", ASCENDING)], unique=True)
    db["user"].create_index([("email", ASCENDING)], unique=True)
    db["user"].create_index([("tckn", ASCENDING)], unique=True)
    db["user"].create_index([("phone", ASCENDING)], unique=True)
    # one active cart per user; completed/cancelled carts may pile up
    db["cart"].create_index(
        [("userId", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": "active"},
    )
    logger.info("Indexes ensured on %s", db.name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document with timestamps and return it as stored (with `_id`)."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now
    result = db[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {}, projection)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
