"""Shared fixtures: an in-memory MongoDB bound in place of the real one."""

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from appointments import COLLECTION, SLOT_FIELDS


@pytest.fixture
def mongo(monkeypatch):
    """Bind a fresh mongomock database with the slot unique index."""
    db = mongomock.MongoClient().db
    monkeypatch.setattr(database, "db", db)
    database.ensure_unique_index(COLLECTION, SLOT_FIELDS)
    return db


@pytest.fixture
def client(mongo):
    """Test client over the in-memory database."""
    from main import app

    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def booking():
    """A valid create body for a future appointment."""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "5551234",
        "date": "2099-06-01",
        "time": "14:30",
        "service": "facial",
        "specialRequests": "  quiet room please  ",
    }
