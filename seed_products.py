"""
Reconcile the products collection with the website's data.json.

The website keeps its catalog as ``{"categories": {key: {"name", "products": [...]}}}``.
Every product is upserted by its legacy id and tagged ``source="seed"``; seed
records whose legacy id disappeared from the file are deleted. Products created
through the API carry no seed tag and are never touched.
"""

import json
import math
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pymongo import UpdateOne
from pymongo.database import Database
from pymongo.errors import BulkWriteError

import config
from database import PRODUCTS_COLLECTION
from errors import InvalidFormatError, SourceNotFoundError
from logging_config import get_logger
from schemas import SeedMetadata, SeedProduct, SeedResult

logger = get_logger(__name__)

SEED_SOURCE = "seed"
DEFAULT_STOCK = 50

_APOSTROPHES = re.compile(r"['’]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def resolve_data_path(candidate_paths: Optional[List[str]] = None) -> str:
    for candidate in candidate_paths or config.SEED_DATA_PATHS:
        if os.path.isfile(candidate):
            return candidate
    raise SourceNotFoundError("Unable to locate data.json. Please ensure the frontend project is available.")


def to_number(value: Any) -> float:
    """Loose numeric coercion of raw JSON values; NaN when the value is not numeric."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return math.nan
        return int(number) if number.is_integer() else number
    return math.nan


def _number_or(value: Any, default: Optional[float]) -> Optional[float]:
    number = to_number(value)
    if math.isnan(number) or math.isinf(number) or number == 0:
        return default
    return number


def slugify(value: str) -> str:
    """Lower-case, drop apostrophes, collapse other non-alphanumeric runs to '-'."""
    slug = _APOSTROPHES.sub("", value.lower())
    return _NON_ALNUM.sub("-", slug).strip("-")


def _list_or_empty(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def normalize_product(product: Dict[str, Any], category_key: str, category_name: str, index: int) -> SeedProduct:
    legacy_id = product.get("id") or product.get("slug") or f"{category_key}-{index}"
    slug_base = str(product.get("slug") or product.get("id") or product.get("name") or legacy_id or "")

    if isinstance(product.get("available_sizes"), list):
        sizes = product["available_sizes"]
    else:
        sizes = _list_or_empty(product.get("sizes"))

    stock = product.get("stock")
    return SeedProduct(
        name=product.get("name"),
        brand=product.get("brand") or "",
        price=_number_or(product.get("price"), 0),
        salePrice=_number_or(product.get("salePrice"), None),
        category=category_key,
        categoryName=category_name,
        subcategory=product.get("subcategory") or product.get("subCategory") or "",
        description=product.get("description") or "",
        features=_list_or_empty(product.get("features")),
        image_links=[link for link in _list_or_empty(product.get("image_links")) if link],
        colors=_list_or_empty(product.get("colors")),
        available_sizes=sizes,
        rating=_number_or(product.get("rating"), 0),
        stock=_number_or(DEFAULT_STOCK if stock is None else stock, DEFAULT_STOCK),
        isBestseller=bool(product.get("isBestseller")),
        source=SEED_SOURCE,
        legacyId=legacy_id,
        slug=slugify(slug_base) if slug_base else None,
        metadata=SeedMetadata(
            importedAt=datetime.now(timezone.utc),
            originalCategoryName=category_name,
        ),
    )


def _seed_fields(product: SeedProduct) -> Tuple[Dict[str, Any], datetime]:
    """Fields compared and written on every run, plus the import timestamp kept aside."""
    fields = product.model_dump(exclude_none=True)
    metadata = fields.pop("metadata")
    fields["metadata.originalCategoryName"] = metadata["originalCategoryName"]
    return fields, metadata["importedAt"]


def _matches(stored: Dict[str, Any], fields: Dict[str, Any]) -> bool:
    for path, value in fields.items():
        current: Any = stored
        for part in path.split("."):
            current = current.get(part) if isinstance(current, dict) else None
        if current != value:
            return False
    return True


def flatten_products(data: Any) -> List[SeedProduct]:
    categories = data.get("categories") if isinstance(data, dict) else None
    if not isinstance(categories, dict):
        raise InvalidFormatError("Invalid data.json format: categories object not found")

    products = []
    for category_key, category_value in categories.items():
        category_value = category_value if isinstance(category_value, dict) else {}
        category_name = category_value.get("name") or category_key
        for index, product in enumerate(_list_or_empty(category_value.get("products"))):
            products.append(normalize_product(product, category_key, category_name, index))
    return products


def seed_products(db: Database, candidate_paths: Optional[List[str]] = None) -> Optional[SeedResult]:
    """Upsert every product from data.json by legacy id and prune stale seed records.

    Returns None when the file holds no products.
    """
    data_path = resolve_data_path(candidate_paths)
    logger.info(f"Loading data from {data_path}")
    with open(data_path, "r", encoding="utf-8") as f:
        json_data = json.load(f)

    products = flatten_products(json_data)
    if not products:
        logger.warning("No products found to import.")
        return None

    logger.info(f"Preparing to sync {len(products)} products...")
    legacy_ids = [p.legacyId for p in products if p.legacyId]

    collection = db[PRODUCTS_COLLECTION]
    stored = {doc["legacyId"]: doc for doc in collection.find({"legacyId": {"$in": legacy_ids}})}

    now = datetime.now(timezone.utc)
    operations = []
    for product in products:
        fields, imported_at = _seed_fields(product)
        # Timestamps move only when the record changed
        existing = stored.get(product.legacyId)
        if existing is None or not _matches(existing, fields):
            fields["metadata.importedAt"] = imported_at
            fields["updatedAt"] = now
        operations.append(UpdateOne(
            {"legacyId": product.legacyId},
            {"$set": fields, "$setOnInsert": {"createdAt": now}},
            upsert=True,
        ))

    try:
        result = collection.bulk_write(operations, ordered=False)
    except BulkWriteError as e:
        logger.error(f"Seed bulk write finished with {len(e.details.get('writeErrors', []))} failed operations")
        raise

    deleted = 0
    if legacy_ids:
        deleted = collection.delete_many({
            "source": SEED_SOURCE,
            "legacyId": {"$nin": legacy_ids},
        }).deleted_count

    total = collection.count_documents({})
    logger.info(f"Seed completed: upserts={result.upserted_count} modified={result.modified_count} "
                f"deleted={deleted} total={total}")
    return SeedResult(
        upserted=result.upserted_count,
        modified=result.modified_count,
        deleted=deleted,
        total=total,
    )
