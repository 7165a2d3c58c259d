"""Command-line entry points for the import pipelines."""

import argparse
import sys
from typing import List, Optional

from pymongo.errors import PyMongoError

__all__ = ["main", "parse_args"]

import config
import database
from auto_import import AutoDataFetcher
from errors import CatalogError
from logging_config import get_logger, setup_logging
from seed_products import seed_products

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import the frontend data.json into MongoDB")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Replace a collection with the frontend data.json")
    import_parser.add_argument("collection", nargs="?", default=config.DEFAULT_IMPORT_COLLECTION)

    subparsers.add_parser("seed", help="Reconcile the products collection with the website data.json")

    watch_parser = subparsers.add_parser("watch", help="Import, then re-import whenever data.json changes")
    watch_parser.add_argument("collection", nargs="?", default=config.DEFAULT_IMPORT_COLLECTION)
    watch_parser.add_argument("--interval", type=float, default=config.WATCH_INTERVAL,
                              help="Polling interval in seconds")

    return parser.parse_args(argv)


def run_import(collection: str) -> int:
    fetcher = AutoDataFetcher(database.get_db())
    result = fetcher.auto_import_to_mongo(collection)
    logger.info(f"Import completed: {result.documentCount} documents in '{result.collectionName}'")
    return 0


def run_seed() -> int:
    result = seed_products(database.get_db())
    if result is not None:
        logger.info(f"Upserts: {result.upserted}, modified: {result.modified}, "
                    f"deleted: {result.deleted}, total products: {result.total}")
    return 0


def run_watch(collection: str, interval: float) -> int:
    fetcher = AutoDataFetcher(database.get_db(), watch_interval=interval)
    logger.info("Performing initial import...")
    fetcher.auto_import_to_mongo(collection)
    watcher = fetcher.start_watching(collection)
    logger.info("Auto-sync is now active, press Ctrl+C to stop")
    try:
        while watcher.is_running:
            watcher.join(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("Stopping auto-sync...")
    finally:
        fetcher.stop_all()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging()
    try:
        if args.command == "import":
            return run_import(args.collection)
        if args.command == "seed":
            return run_seed()
        return run_watch(args.collection, args.interval)
    except (CatalogError, PyMongoError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        if database.client is not None:
            database.client.close()
            logger.info("Database connection closed")


if __name__ == "__main__":
    sys.exit(main())
