"""
Automatic import of the frontend data.json into an ad-hoc MongoDB collection.

The frontend ships its catalog as a JSON file. AutoDataFetcher finds that file,
infers a flat field schema from the first record, normalizes identifiers and
replaces the target collection with the file's contents in fixed-size batches.
DataWatcher re-runs the import whenever the file's modification time advances.
"""

import json
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from dateutil import parser as date_parser
from pymongo.collection import Collection
from pymongo.database import Database

import config
from errors import SourceNotFoundError
from logging_config import get_logger
from schemas import FieldKind, ImportResult

logger = get_logger(__name__)

FieldSchema = Dict[str, FieldKind]


def _looks_like_date(value: str) -> bool:
    # Short strings such as "N/A" or codes are never dates
    if len(value) <= 10:
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


def create_auto_schema(sample: Dict[str, Any]) -> FieldSchema:
    """Infer a flat dotted-path -> kind map from a single sample record."""
    schema: FieldSchema = {}

    def analyze(obj: Dict[str, Any], prefix: str = ""):
        for key, value in obj.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, str):
                schema[full_key] = FieldKind.Date if _looks_like_date(value) else FieldKind.String
            elif isinstance(value, bool):
                schema[full_key] = FieldKind.Boolean
            elif isinstance(value, (int, float)):
                schema[full_key] = FieldKind.Number
            elif isinstance(value, list):
                # A leading null counts as an embedded object
                if value and (value[0] is None or isinstance(value[0], (dict, list))):
                    schema[full_key] = FieldKind.EmbeddedObjectArray
                else:
                    schema[full_key] = FieldKind.StringArray
            elif isinstance(value, dict):
                analyze(value, full_key)

    if isinstance(sample, dict):
        analyze(sample)
    return schema


def convert_nested_ids(obj: Any):
    """Turn every 24-character string ``id`` into an ObjectId stored under ``_id``, in place."""
    if isinstance(obj, dict):
        for key in list(obj.keys()):
            value = obj[key]
            if key == "id" and isinstance(value, str) and len(value) == 24:
                obj["_id"] = ObjectId(value)
                del obj["id"]
            elif isinstance(value, (dict, list)):
                convert_nested_ids(value)
    elif isinstance(obj, list):
        for item in obj:
            if isinstance(item, (dict, list)):
                convert_nested_ids(item)


def _canonical_id(value: Any) -> Any:
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def convert_to_mongo_format(data: Any) -> List[Dict[str, Any]]:
    data_array = data if isinstance(data, list) else [data]
    now = datetime.now(timezone.utc)
    documents = []
    for item in data_array:
        doc = dict(item)
        doc["_id"] = _canonical_id(item.get("_id") or item.get("id") or ObjectId())
        doc.pop("id", None)
        doc["createdAt"] = now
        doc["updatedAt"] = now
        convert_nested_ids(doc)
        documents.append(doc)
    return documents


def _cast_value(value: Any, kind: FieldKind) -> Any:
    """Lenient cast to the inferred kind; anything that does not cast is kept as-is."""
    if value is None:
        return value
    if kind == FieldKind.Date and isinstance(value, str):
        try:
            return date_parser.parse(value)
        except (ValueError, OverflowError):
            return value
    if kind == FieldKind.Number and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    if kind == FieldKind.Boolean and value in ("true", "false"):
        return value == "true"
    if kind == FieldKind.String and isinstance(value, (bool, int, float)):
        return json.dumps(value)
    if kind == FieldKind.StringArray and isinstance(value, list):
        return [json.dumps(v) if isinstance(v, (bool, int, float)) else v for v in value]
    return value


class TypedCollection:
    """A collection handle bound to the schema inferred for it."""

    def __init__(self, collection: Collection, schema: FieldSchema):
        self.collection = collection
        self.schema = schema

    def cast(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        for path, kind in self.schema.items():
            parts = path.split(".")
            parent = doc
            for part in parts[:-1]:
                parent = parent.get(part) if isinstance(parent, dict) else None
            if isinstance(parent, dict) and parts[-1] in parent:
                parent[parts[-1]] = _cast_value(parent[parts[-1]], kind)
        return doc

    def drop(self):
        self.collection.drop()

    def insert_many(self, documents: List[Dict[str, Any]]) -> int:
        result = self.collection.insert_many([self.cast(doc) for doc in documents], ordered=True)
        return len(result.inserted_ids)


class SchemaRegistry:
    """Process-wide map of collection name -> inferred schema.

    A collection that comes back with a differently shaped sample replaces its
    schema (last schema wins).
    """

    def __init__(self):
        self._schemas: Dict[str, FieldSchema] = {}
        self._lock = threading.Lock()

    def resolve(self, db: Database, collection_name: str, schema: FieldSchema) -> TypedCollection:
        with self._lock:
            previous = self._schemas.get(collection_name)
            if previous is not None and previous != schema:
                logger.warning(f"Schema for '{collection_name}' changed since last import, replacing it")
            self._schemas[collection_name] = schema
        return TypedCollection(db[collection_name], schema)

    def get(self, collection_name: str) -> Optional[FieldSchema]:
        with self._lock:
            return self._schemas.get(collection_name)

    def __contains__(self, collection_name: str) -> bool:
        with self._lock:
            return collection_name in self._schemas


class DataWatcher:
    """Polls a file's mtime on a daemon thread and re-imports when it advances."""

    def __init__(self, fetcher: "AutoDataFetcher", path: str, collection_name: str,
                 interval: float = config.WATCH_INTERVAL):
        self.fetcher = fetcher
        self.path = path
        self.collection_name = collection_name
        self.interval = interval
        self._stop_event = threading.Event()
        self._last_mtime = self._read_mtime()
        self._thread = threading.Thread(
            target=self._poll, name=f"data-watcher-{collection_name}", daemon=True
        )

    def _read_mtime(self) -> Optional[float]:
        try:
            return os.stat(self.path).st_mtime
        except OSError:
            return None

    def start(self) -> "DataWatcher":
        self._thread.start()
        logger.info(f"Watching {self.path} for changes")
        return self

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def stop(self):
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None):
        self._thread.join(timeout)

    def _poll(self):
        while not self._stop_event.wait(self.interval):
            mtime = self._read_mtime()
            if mtime is None or (self._last_mtime is not None and mtime <= self._last_mtime):
                continue
            self._last_mtime = mtime
            logger.info(f"{self.path} updated, re-importing into '{self.collection_name}'")
            try:
                self.fetcher.auto_import_to_mongo(self.collection_name)
                logger.info("Data updated successfully")
            except Exception:
                logger.exception(f"Re-import of '{self.collection_name}' failed")
        logger.info(f"Stopped watching {self.path}")


class AutoDataFetcher:
    """Finds the frontend data.json and mirrors it into MongoDB."""

    def __init__(self, db: Database, frontend_paths: Optional[List[str]] = None,
                 batch_size: int = config.IMPORT_BATCH_SIZE, watch_interval: float = config.WATCH_INTERVAL):
        self.db = db
        self.frontend_paths = list(frontend_paths or config.FRONTEND_DATA_PATHS)
        self.batch_size = batch_size
        self.watch_interval = watch_interval
        self.registry = SchemaRegistry()
        self._watchers: Dict[str, DataWatcher] = {}
        self._watchers_lock = threading.Lock()

    def find_frontend_data(self) -> Tuple[Any, str]:
        """Return the parsed JSON and resolved path of the first candidate that exists."""
        logger.info("Searching for data.json in frontend...")
        for frontend_path in self.frontend_paths:
            full_path = os.path.abspath(frontend_path)
            if os.path.isfile(full_path):
                logger.info(f"Found data.json at: {full_path}")
                with open(full_path, "r", encoding="utf-8") as f:
                    return json.load(f), full_path
            logger.debug(f"Not found at: {frontend_path}")
        raise SourceNotFoundError("data.json not found in any frontend location")

    def auto_import_to_mongo(self, collection_name: str = config.DEFAULT_IMPORT_COLLECTION) -> ImportResult:
        logger.info("Starting automatic data import...")
        data, path = self.find_frontend_data()
        logger.info(f"Data loaded from: {path}")

        data_array = data if isinstance(data, list) else [data]
        schema = create_auto_schema(data_array[0]) if data_array else {}
        collection = self.registry.resolve(self.db, collection_name, schema)

        documents = convert_to_mongo_format(data_array)
        logger.info(f"Converting {len(documents)} documents...")

        # Full replacement; nothing is restored if a later batch fails
        collection.drop()

        inserted_count = 0
        for start in range(0, len(documents), self.batch_size):
            batch = documents[start:start + self.batch_size]
            count = collection.insert_many(batch)
            inserted_count += count
            logger.info(f"Inserted batch {start // self.batch_size + 1}: {count} documents")

        logger.info(f"Successfully imported {inserted_count} documents into '{collection_name}'")
        return ImportResult(
            success=True,
            collectionName=collection_name,
            documentCount=inserted_count,
            schema=schema,
        )

    def start_watching(self, collection_name: str = config.DEFAULT_IMPORT_COLLECTION) -> DataWatcher:
        """Start (or return the live) watcher for ``collection_name``."""
        _, path = self.find_frontend_data()
        with self._watchers_lock:
            existing = self._watchers.get(collection_name)
            if existing is not None and existing.is_running:
                logger.info(f"Already watching {existing.path} for '{collection_name}'")
                return existing
            watcher = DataWatcher(self, path, collection_name, interval=self.watch_interval)
            self._watchers[collection_name] = watcher.start()
        return watcher

    def stop_watching(self, collection_name: str) -> bool:
        with self._watchers_lock:
            watcher = self._watchers.pop(collection_name, None)
        if watcher is None:
            return False
        watcher.stop()
        return True

    def stop_all(self):
        with self._watchers_lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        for watcher in watchers:
            watcher.stop()

    def watchers(self) -> Dict[str, DataWatcher]:
        with self._watchers_lock:
            return dict(self._watchers)

    def get_collection_stats(self, collection_name: str = config.DEFAULT_IMPORT_COLLECTION) -> Dict[str, Any]:
        collection = self.db[collection_name]
        return {
            "collectionName": collection_name,
            "documentCount": collection.count_documents({}),
            "sampleDocument": collection.find_one(),
            "lastUpdated": datetime.now(timezone.utc),
        }
