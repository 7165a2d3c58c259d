"""
Product CRUD over the "products" collection.

Payloads from the admin frontend are loosely typed: numbers arrive as strings,
features as newline separated text. They are normalized here and validated with
the Product model before anything is written.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from database import PRODUCTS_COLLECTION
from errors import InvalidIdError, NotFoundError, ValidationError
from logging_config import get_logger
from schemas import Pagination, Product

logger = get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_SORT = "-createdAt"

# Managed by the service, never taken from a payload
_PROTECTED_FIELDS = ("_id", "createdAt", "updatedAt")

# Stand-ins for required fields a partial update leaves out
_UPDATE_PLACEHOLDERS = {"name": "placeholder"}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_number(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, (list, dict)):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return int(parsed) if parsed.is_integer() else parsed


def _parse_int(value: Any, default: int) -> int:
    """Leading integer of a query value ("2.5" -> 2, "10abc" -> 10), else ``default``."""
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(value) if isinstance(value, str) else None
    return int(match.group(1)) if match else default


def normalize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    data = {k: v for k, v in payload.items() if k not in _PROTECTED_FIELDS}

    features = data.get("features")
    if isinstance(features, list):
        data["features"] = [f.strip() for f in features if isinstance(f, str) and f.strip()]
    elif isinstance(features, str):
        data["features"] = [f.strip() for f in features.split("\n") if f.strip()]

    for field in ("price", "salePrice", "stock"):
        number = parse_number(data.get(field))
        if number is not None:
            data[field] = number

    if isinstance(data.get("tags"), list):
        data["tags"] = [tag for tag in data["tags"] if tag]
    return data


def _validate(data: Dict[str, Any]) -> Product:
    try:
        return Product.model_validate(data)
    except PydanticValidationError as e:
        messages = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            messages.append(f"{field}: {error['msg']}" if field else error["msg"])
        raise ValidationError("Validation failed", messages)


def _object_id(product_id: str) -> ObjectId:
    if not ObjectId.is_valid(product_id):
        raise InvalidIdError("Invalid product id")
    return ObjectId(product_id)


def parse_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    """Parse "-createdAt price" style sort strings into pymongo sort specs."""
    sort_spec = []
    for token in (sort or DEFAULT_SORT).split():
        if token.startswith("-"):
            sort_spec.append((token[1:], DESCENDING))
        else:
            sort_spec.append((token.lstrip("+"), ASCENDING))
    return sort_spec or [("createdAt", DESCENDING)]


def create_product(db: Database, payload: Any) -> Dict[str, Any]:
    name = payload.get("name") if isinstance(payload, dict) else None
    if not name or not isinstance(name, str):
        raise ValidationError("Product name is required")

    product = _validate(normalize_payload(payload))
    document = product.model_dump(exclude_none=True)
    now = datetime.now(timezone.utc)
    document["createdAt"] = now
    document["updatedAt"] = now

    result = db[PRODUCTS_COLLECTION].insert_one(document)
    document["_id"] = result.inserted_id
    logger.info(f"Created product {result.inserted_id}")
    return document


def list_products(
    db: Database,
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    search: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    sort: Optional[str] = DEFAULT_SORT,
) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    if status:
        filters["status"] = status
    if category:
        filters["category"] = category
    if search:
        filters["$text"] = {"$search": search}

    page_number = max(1, _parse_int(page, DEFAULT_PAGE) or DEFAULT_PAGE)
    limit_number = min(MAX_LIMIT, max(1, _parse_int(limit, DEFAULT_LIMIT) or DEFAULT_LIMIT))
    skip = (page_number - 1) * limit_number

    collection = db[PRODUCTS_COLLECTION]
    items = list(
        collection.find(filters).sort(parse_sort(sort)).skip(skip).limit(limit_number)
    )
    total = collection.count_documents(filters)

    pagination = Pagination(
        total=total,
        page=page_number,
        limit=limit_number,
        pages=math.ceil(total / limit_number),
    )
    return {"items": items, "pagination": pagination.model_dump()}


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    oid = _object_id(product_id)
    product = db[PRODUCTS_COLLECTION].find_one({"_id": oid})
    if not product:
        raise NotFoundError("Product not found")
    return product


def update_product(db: Database, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    oid = _object_id(product_id)
    collection = db[PRODUCTS_COLLECTION]
    existing = collection.find_one({"_id": oid})
    if not existing:
        raise NotFoundError("Product not found")

    # Only the fields being written are validated; stored fields stay as they are
    updates = normalize_payload(payload)
    validated = _validate({**_UPDATE_PLACEHOLDERS, **updates}).model_dump()

    changes = {key: validated.get(key) for key in updates}
    changes["updatedAt"] = datetime.now(timezone.utc)
    product = collection.find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundError("Product not found")
    logger.info(f"Updated product {product_id}")
    return product


def delete_product(db: Database, product_id: str):
    oid = _object_id(product_id)
    result = db[PRODUCTS_COLLECTION].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Product not found")
    logger.info(f"Deleted product {product_id}")
