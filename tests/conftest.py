"""
Общие фикстуры: env для Settings, SQLite-сессия, fake Redis, fake транспорт.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123:test")
os.environ.setdefault("STATE_SECRET", "test-state-secret-0123456789")
os.environ.setdefault("SOURCE_CHANNEL_ID", "-1001")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import filegate.models  # noqa: F401
from filegate.core.errors import TransportError
from filegate.db.base import Base
from filegate.services.telegram.base import (
    DeleteResult,
    MembershipOracle,
    MembershipStatus,
    MessagingGateway,
    SourcePostProbe,
)


class FakeRedis:
    """Dict-backed subset of redis.Redis (decode_responses=True)."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def set(self, key, value, ex=None):
        self.data[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    def get(self, key):
        return self.data.get(key)

    def getdel(self, key):
        self.ttls.pop(key, None)
        return self.data.pop(key, None)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return key in self.data


class FakeGateway(MessagingGateway):
    """Records every call; failures are configured per method."""

    def __init__(self):
        self.next_message_id = 1000
        self.copied = []
        self.sent = []
        self.deleted = []
        self.edited = []
        self.copy_error = None
        self.send_error = None
        self.edit_errors = []
        self.delete_results = {}
        self.gone = set()

    def _next_id(self):
        self.next_message_id += 1
        return self.next_message_id

    def copy_content(self, kind, payload_ref, chat_id):
        if self.copy_error is not None:
            raise self.copy_error
        message_id = self._next_id()
        self.copied.append((kind, dict(payload_ref), chat_id, message_id))
        return [message_id]

    def send_message(self, chat_id, text, reply_to=None):
        if self.send_error is not None:
            raise self.send_error
        message_id = self._next_id()
        self.sent.append((chat_id, text, reply_to, message_id))
        return message_id

    def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))
        outcome = self.delete_results.get(message_id)
        if isinstance(outcome, Exception):
            raise outcome
        if message_id in self.gone:
            return DeleteResult.ALREADY_GONE
        self.gone.add(message_id)
        return DeleteResult.OK

    def edit_caption(self, chat_id, message_id, caption):
        self.edited.append((chat_id, message_id, caption))
        if self.edit_errors:
            raise self.edit_errors.pop(0)


class FakeOracle(MembershipOracle):
    """statuses: {(channel_ref, user_id): MembershipStatus | Exception}."""

    def __init__(self, statuses=None):
        self.statuses = dict(statuses or {})
        self.calls = []

    def set(self, channel_ref, user_id, status):
        self.statuses[(channel_ref, user_id)] = status

    def get_membership_status(self, channel_ref, user_id):
        self.calls.append((channel_ref, user_id))
        status = self.statuses.get((channel_ref, user_id), MembershipStatus.NONE)
        if isinstance(status, Exception):
            raise status
        return status


class FakeProbe(SourcePostProbe):
    """missing: post ids reported gone; errors: post ids whose probe raises."""

    def __init__(self, missing=(), errors=()):
        self.missing = set(missing)
        self.errors = set(errors)
        self.calls = []

    def post_exists(self, chat_id, message_id):
        self.calls.append((chat_id, message_id))
        if message_id in self.errors:
            raise TransportError("probe failed")
        return message_id not in self.missing


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def make_probe():
    return FakeProbe
