"""Shared fixtures: an app on in-memory SQLite, a seeded admin and catalog,
and a controllable clock for the security components."""

from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.product import Product
from security.storage import MemoryStore
from utils.seed import ensure_admin

ADMIN_EMAIL = "admin@electro.test"
ADMIN_PASSWORD = "Correct-Horse-42"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD, full_name="Shop Admin")
        db.session.add_all([
            Product(name="USB-C Charger", category="Chargers", price=10, stock=20),
            Product(name="HDMI Cable", category="Cables", price=5, stock=50),
            Product(name="Retired Speaker", category="Audio", price=99, stock=3, is_active=False),
        ])
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def products(app):
    with app.app_context():
        return {p.name: p.id for p in Product.query.all()}


def login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def csrf_headers(client):
    return {"X-CSRF-Token": client.get_cookie("csrf_token").value}


@pytest.fixture
def admin_client(client):
    resp = login(client)
    assert resp.status_code == 200
    return client
