from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.admin import SUPER_ADMIN
from security.throttle import get_throttle
from utils.seed import create_admin

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Rightpass1!"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(app):
    fake = FakeClock()
    get_throttle().clock = fake
    return fake


@pytest.fixture
def admin(app):
    return create_admin(
        ADMIN_EMAIL,
        "Super Admin",
        ADMIN_PASSWORD,
        role=SUPER_ADMIN,
        permissions=["manage_templates"],
    )


@pytest.fixture
def inactive_admin(app):
    return create_admin("inactive@example.com", "Old Admin", ADMIN_PASSWORD, is_active=False)


def admin_login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD, **extra):
    payload = {"email": email, "password": password}
    payload.update(extra)
    return client.post("/admin/login", json=payload)


def csrf_headers(client):
    cookie = client.get_cookie("csrf_token")
    return {"X-CSRF-Token": cookie.value if cookie else ""}
