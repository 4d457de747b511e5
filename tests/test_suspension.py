import pytest

from suspension import BlockState


@pytest.fixture
def suspension(engine, users):
    assert users.create("mallory", "pw").ok
    return engine.suspension


def test_fresh_user_is_not_blocked(suspension):
    assert suspension.check("mallory") == BlockState.NOT_BLOCKED


def test_suspension_expires_lazily(suspension, clock, redis_client):
    start = clock.now
    expiry = suspension.suspend("mallory", 1)
    assert expiry == start + 60
    assert suspension.check("mallory") == BlockState.BLOCKED

    clock.advance(61)
    # stored state is untouched until someone looks
    assert redis_client.hget("User:mallory", "BlockFlag") == "1"
    assert suspension.check("mallory") == BlockState.UNBLOCKED
    assert redis_client.hget("User:mallory", "BlockFlag") == "0"
    assert redis_client.hget("User:mallory", "SuspendTimer") == "0"
    assert suspension.check("mallory") == BlockState.NOT_BLOCKED


def test_expiry_at_exact_deadline(suspension, clock):
    suspension.suspend("mallory", 1)
    clock.advance(60)
    assert suspension.check("mallory") == BlockState.UNBLOCKED


def test_active_suspension_is_extended(suspension, clock):
    start = clock.now
    suspension.suspend("mallory", 1)
    clock.advance(30)
    assert suspension.suspend("mallory", 2) == start + 60 + 120


def test_expired_suspension_restarts_from_now(suspension, clock):
    start = clock.now
    suspension.suspend("mallory", 1)
    clock.advance(300)
    assert suspension.suspend("mallory", 1) == start + 300 + 60


def test_clear(suspension):
    suspension.suspend("mallory", 10)
    suspension.clear("mallory")
    assert suspension.check("mallory") == BlockState.NOT_BLOCKED
    assert suspension.expiry("mallory") == 0
