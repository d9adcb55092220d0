import asyncio
from datetime import datetime

import pytest
from mongomock_motor import AsyncMongoMockClient

from gymdesk.db import mongo
from gymdesk.db.indexes import create_indexes
from gymdesk.models.subscription import Subscription
from gymdesk.models.user import User


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory database with production indexes."""
    database = AsyncMongoMockClient()["gymdesk_test"]
    monkeypatch.setattr(mongo, "_database", database)
    run(create_indexes())
    return database


def make_user(user_id="BCF-1001", name="Juan Dela Cruz", **kwargs):
    return User(user_id=user_id, name=name, **kwargs)


def make_subscription(user_id="BCF-1001", start=None, end=None, **kwargs):
    start = start or datetime(2024, 1, 1, 9, 0)
    end = end or datetime(2024, 2, 1, 9, 0)
    return Subscription(user_id=user_id, start_date=start, end_date=end, **kwargs)
