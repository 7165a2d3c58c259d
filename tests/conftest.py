"""Shared fixtures: an in-memory MongoDB and a FastAPI test client bound to it."""

import json

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main


@pytest.fixture
def mongo_db():
    """Fresh in-memory database per test."""
    return mongomock.MongoClient()["catalog-admin-test"]


@pytest.fixture
def client(mongo_db, monkeypatch):
    """Test client whose routes talk to the in-memory database."""
    monkeypatch.setattr(database, "db", mongo_db)
    monkeypatch.setattr(main, "_fetcher", None)
    return TestClient(main.app)


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON payload under tmp_path and return its path as a string."""
    def _write(payload, name="data.json"):
        path = tmp_path / name
        path.write_text(json.dumps(payload))
        return str(path)
    return _write


@pytest.fixture
def seed_data():
    return {
        "categories": {
            "jackets": {
                "name": "Jackets",
                "products": [
                    {"id": "jacket-classic", "name": "Classic Jacket", "price": "89.99", "sizes": ["M", "L"]},
                    {"name": "Men's Security Jacket!!", "price": 120, "stock": 5,
                     "image_links": ["https://cdn.example.com/a.jpg", "", None]},
                ],
            },
            "shirts": {
                "name": "Shirts",
                "products": [
                    {"slug": "duty-shirt", "name": "Duty Shirt", "salePrice": "19.5", "rating": 4.5,
                     "isBestseller": True},
                ],
            },
        }
    }
