from __future__ import annotations

from datetime import datetime, timezone

import pytest
from flask import Flask
from flask.testing import FlaskClient

from tiered_interest.app import create_app
from tiered_interest.config import Settings
from tiered_interest.core.store import MemoryStore

FIXED_NOW = datetime(2024, 4, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def app(store: MemoryStore) -> Flask:
    settings = Settings(store_path=":memory:", cors_origins="http://localhost:5173")
    return create_app(settings, store=store)


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def slab_boundaries() -> list:
    return [100000, 500000, None]


@pytest.fixture()
def slab_rates() -> list:
    return [4.00, 6.25, 7.50]


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW
