"""Centralized configuration for the catalog admin API."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_PROJECT_ROOT = Path(__file__).resolve().parent


def _split_list(value):
    return [item.strip() for item in value.split(",") if item.strip()]


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "catalog-admin")

# Server
PORT = int(os.getenv("PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "production")
PROJECT_NAME = "Catalog Admin API"
VERSION = "1.0.0"
CORS_ORIGINS = _split_list(os.getenv("CORS_ORIGINS", "*"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Auto import (frontend data.json -> ad-hoc collection)
DEFAULT_IMPORT_COLLECTION = os.getenv("DEFAULT_IMPORT_COLLECTION", "frontend-data")
IMPORT_BATCH_SIZE = int(os.getenv("IMPORT_BATCH_SIZE", "100"))
WATCH_INTERVAL = float(os.getenv("WATCH_INTERVAL", "2.0"))

# Probed in order, relative to the working directory
FRONTEND_DATA_PATHS = _split_list(os.getenv("FRONTEND_DATA_PATHS", "")) or [
    "../frontend/data.json",
    "../../frontend/data.json",
    "../../../frontend/data.json",
    "./frontend/data.json",
    "./public/data.json",
    "./data.json",
]

# Seed source ({categories: {...}}), probed in order, relative to the project root
SEED_DATA_PATHS = _split_list(os.getenv("SEED_DATA_PATHS", "")) or [
    str(_PROJECT_ROOT.parent / "website" / "src" / "data.json"),
    str(_PROJECT_ROOT / "website" / "src" / "data.json"),
    str(_PROJECT_ROOT / "public" / "data.json"),
    str(_PROJECT_ROOT / "src" / "data.json"),
]


def is_development():
    return APP_ENV.lower() == "development"
