"""
Shared fixtures: in-memory SQLite account store, an in-process Redis stand-in,
a rate provider with a warm cache and a recording notifier.
"""

import os

# Settings are read at import time, configure them before importing the package
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.data.database import Base
from storefront.data.models import AccountCartItemModel  # noqa: F401
from storefront.repos.account_cart_repo import AccountCartRepo
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.repos.session_repo import SessionRepo
from storefront.services.rate_provider import RateCache, RateProvider

RATES = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.9"),
    "GBP": Decimal("0.8"),
    "JPY": Decimal("150"),
}


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeRedis:
    """Just enough of redis.Redis (decode_responses=True) for the repos."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, name):
        return self.store.get(name)

    def set(self, name, value, ex=None, nx=False):
        if nx and name in self.store:
            return None
        self.store[name] = value
        self.ttls[name] = ex
        return True

    def delete(self, *names):
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed


class BrokenRedis(FakeRedis):
    """Every call fails like a Redis outage."""

    def get(self, name):
        raise redis.ConnectionError("redis down")

    def set(self, name, value, ex=None, nx=False):
        raise redis.ConnectionError("redis down")

    def delete(self, *names):
        raise redis.ConnectionError("redis down")


class RecordingNotifier:
    def __init__(self):
        self.added = []
        self.checkouts = []

    def item_added(self, session_id, title, quantity):
        self.added.append((session_id, title, quantity))

    def checkout_started(self, session_id, payment_session_id, user_id):
        self.checkouts.append((session_id, payment_session_id, user_id))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """tenacity sleeps between retries; tests should not."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda _: None)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def guest_repo(fake_redis):
    return GuestCartRepo(fake_redis)


@pytest.fixture
def session_repo(fake_redis):
    return SessionRepo(fake_redis)


@pytest.fixture
def account_repo(db):
    return AccountCartRepo(db)


@pytest.fixture
def rate_provider():
    cache = RateCache(ttl_seconds=300)
    cache.store(RATES)
    return RateProvider(cache=cache, primary_url="http://primary.test", backup_url="http://backup.test")


@pytest.fixture
def notifier():
    return RecordingNotifier()
