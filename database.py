"""
MongoDB connection and small document helpers.

`db` is the process-wide database handle. It is None when the client could not
be built from DATABASE_URL, in which case every helper raises StoreFailure.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, TEXT, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config
from errors import StoreFailure
from logging_config import get_logger

logger = get_logger(__name__)

PRODUCTS_COLLECTION = "products"

client: Optional[MongoClient] = None
db: Optional[Database] = None

try:
    client = MongoClient(config.DATABASE_URL, tz_aware=True)
    db = client[config.DATABASE_NAME]
except PyMongoError as e:
    logger.error(f"MongoDB client could not be created: {e}")


def get_db() -> Database:
    if db is None:
        raise StoreFailure("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None,
                  skip: int = 0) -> List[Dict[str, Any]]:
    database = get_db()
    cursor = database[collection_name].find(filter_dict or {})
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_product_indexes(database: Database):
    """Weighted text index for product search plus the sku lookup index."""
    products = database[PRODUCTS_COLLECTION]
    products.create_index(
        [("name", TEXT), ("description", TEXT), ("sku", TEXT)],
        weights={"name": 5, "sku": 3, "description": 1},
        name="product_text_index",
    )
    products.create_index([("sku", ASCENDING)])
    logger.info("Product indexes ensured")


def serialize_document(value: Any) -> Any:
    """Make a stored document JSON serializable (ObjectId -> str, recursively)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_document(v) for v in value]
    return value
