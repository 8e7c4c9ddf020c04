"""
Shared test fixtures.

Provides a Flask app built from TestingConfig:
  • in-memory key-value store (fresh per test)
  • in-memory SQLite database for the audit trail
  • bcrypt cost lowered so password checks are fast
  • a fixed browser User-Agent on every test-client request
"""

from __future__ import annotations

import pytest

from app import create_app
from config import TestingConfig
from models import db
from security.services import EXTENSION_KEY
from tests.helpers import BROWSER_UA, FakeClock


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    c = app.test_client()
    c.environ_base["HTTP_USER_AGENT"] = BROWSER_UA
    return c


@pytest.fixture()
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture()
def clock():
    return FakeClock()
