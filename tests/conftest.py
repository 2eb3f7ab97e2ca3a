"""Pytest configuration and fixtures."""

import os
import time
import uuid
from datetime import datetime

# Settings are read at import time; pin them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTH_VERIFY_MODE"] = "hs256"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from blip.api import deps
from blip.core.db import Base, SessionLocal, engine
from blip.main import app
from blip.models.user import User
from blip.services.realtime import get_publisher

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
CAROL = "33333333-3333-3333-3333-333333333333"

# a fixed instant for service-level tests (12:00 UTC, away from the daily reset)
NOW = datetime(2026, 3, 14, 12, 0, 0)

NYC = (40.7128, -74.0060)
NYC_NEIGHBOUR = (40.7130, -74.0058)  # ~28m away, same 6-char cell
LONDON = (51.5074, -0.1278)


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, channel, event, payload):
        self.events.append((channel, event, payload))

    def of(self, event):
        return [e for e in self.events if e[1] == event]


def make_token(user_id: str, secret: str = "test-jwt-secret") -> str:
    return jwt.encode(
        {"sub": user_id, "exp": int(time.time()) + 3600, "role": "authenticated"},
        secret,
        algorithm="HS256",
    )


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture(autouse=True)
def reset_limiters():
    deps.signal_limiter.reset()
    deps.ping_limiter.reset()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def publisher():
    recorder = RecordingPublisher()
    app.dependency_overrides[get_publisher] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_publisher, None)


@pytest.fixture
def client(publisher):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make(user_id=None, **fields):
        user_id = user_id or str(uuid.uuid4())
        values = {"display_name": f"User_{user_id[:8]}", "subscription_tier": "free", "signals_today": 0}
        values.update(fields)
        user = User(id=user_id, **values)
        db.add(user)
        db.commit()
        return user
    return _make
