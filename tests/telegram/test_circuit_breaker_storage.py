"""Redis-backed pybreaker storage on a fake Redis."""
from datetime import datetime, timezone

import pybreaker
import pytest

from filegate.services.circuit_breaker import RedisCircuitBreakerStorage


@pytest.fixture
def storage(fake_redis):
    return RedisCircuitBreakerStorage("telegram", client=fake_redis)


def test_defaults(storage):
    assert storage.state == pybreaker.STATE_CLOSED
    assert storage.counter == 0
    assert storage.success_counter == 0
    assert storage.opened_at is None


def test_counters(storage, fake_redis):
    storage.increment_counter()
    storage.increment_counter()
    storage.increment_success_counter()
    assert storage.counter == 2
    assert storage.success_counter == 1
    storage.reset_counter()
    storage.reset_success_counter()
    assert storage.counter == 0
    assert storage.success_counter == 0


def test_state_and_opened_at(storage, fake_redis):
    storage.state = pybreaker.STATE_OPEN
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    storage.opened_at = now
    assert fake_redis.get("cb:telegram:state") == pybreaker.STATE_OPEN
    assert storage.opened_at == now


def test_breaker_opens_through_storage(storage):
    breaker = pybreaker.CircuitBreaker(fail_max=2, reset_timeout=60, state_storage=storage)

    def fail():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        breaker.call(fail)
    with pytest.raises((ValueError, pybreaker.CircuitBreakerError)):
        breaker.call(fail)

    assert storage.state == pybreaker.STATE_OPEN
    with pytest.raises(pybreaker.CircuitBreakerError):
        breaker.call(lambda: "ok")
