import time
from enum import Enum
from typing import Callable

from backend import RedisBackend
from logging_config import get_logger
from redis_keys import BLOCK_FLAG_FIELD, SUSPEND_TIMER_FIELD, USER_KEY

logger = get_logger(__name__)


class BlockState(str, Enum):
    NOT_BLOCKED = "not_blocked"
    BLOCKED = "blocked"
    UNBLOCKED = "unblocked"  # was blocked, expiry passed, cleared by this check


class SuspensionClock:
    """Time-boxed suspensions stored as an expiry timestamp plus a flag.

    Nothing runs in the background: expiry is noticed and cleared by the
    next check.
    """

    def __init__(self, backend: RedisBackend, clock: Callable[[], float] = time.time):
        self.backend = backend
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    def expiry(self, name: str) -> int:
        return int(self.backend.hash_get(USER_KEY.format(name=name), SUSPEND_TIMER_FIELD) or 0)

    def check(self, name: str) -> BlockState:
        key = USER_KEY.format(name=name)
        if self.backend.hash_get(key, BLOCK_FLAG_FIELD) != "1":
            return BlockState.NOT_BLOCKED
        if self.expiry(name) > self.now():
            return BlockState.BLOCKED
        self.clear(name)
        logger.info(f"Suspension of {name} expired and was cleared")
        return BlockState.UNBLOCKED

    def suspend(self, name: str, minutes: int) -> int:
        if self.check(name) == BlockState.BLOCKED:
            start = self.expiry(name)
        else:
            start = self.now()
        expiry = start + minutes * 60
        # timer before flag, so a set flag always has a meaningful expiry
        key = USER_KEY.format(name=name)
        self.backend.hash_set(key, SUSPEND_TIMER_FIELD, expiry)
        self.backend.hash_set(key, BLOCK_FLAG_FIELD, 1)
        return expiry

    def clear(self, name: str):
        key = USER_KEY.format(name=name)
        self.backend.hash_set(key, BLOCK_FLAG_FIELD, 0)
        self.backend.hash_set(key, SUSPEND_TIMER_FIELD, 0)
