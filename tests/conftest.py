"""
Pytest configuration and shared fixtures for PollGuard tests.

- `app` builds the application on an in-memory SQLite database with fixed secrets.
- `clock` drives the process-local rate limiter deterministically.
- `new_client` returns a fresh test client (no cookies) per simulated device.
"""
import time

import pytest

from pollguard import create_app
from pollguard.config import Config
from pollguard.extensions import db as _db, rate_limiter
from pollguard.models.poll import Poll

ADMIN_KEY = "test-admin-key"


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret-key-for-signing-cookies"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length-0123456789"
    ADMIN_KEY = ADMIN_KEY
    HASH_SECRET = "test-hash-secret"
    FINGERPRINT_SECRET = "test-fingerprint-secret"
    RATE_LIMIT_WINDOW_SECONDS = 60
    RATE_LIMIT_MAX_REQUESTS = 10
    ADMIN_RESET_REMOVES_VOTE = True
    DEFAULT_OPTION_COUNT = 6
    TRUST_PROXY_HEADERS = True


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(TestingConfig)
    rate_limiter.reset()
    rate_limiter.clock = clock

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()

    rate_limiter.reset()
    rate_limiter.clock = time.time


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def poll(db):
    poll = Poll(id=1, title="Favourite era", is_open=True, option_count=6)
    db.session.add(poll)
    db.session.commit()
    return poll


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def new_client(app):
    return app.test_client


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/auth/admin/login", json={"adminKey": ADMIN_KEY})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['access_token']}"}


@pytest.fixture
def request_ctx(app):
    with app.test_request_context("/", headers={"User-Agent": "pytest"}):
        yield
