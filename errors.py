import functools

from logging_config import get_logger
from schemas.results import Entity, Result

logger = get_logger(__name__)


class StoreUnavailable(Exception):
    """A Redis call failed or timed out. The whole operation is safe to retry."""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        super().__init__(f"redis command {command} failed: {reason}" if reason else f"redis command {command} failed")


class RankOutOfRange(Exception):
    def __init__(self, key: str, rank: int, size: int):
        self.key = key
        self.rank = rank
        self.size = size
        super().__init__(f"rank {rank} outside 1..{size} of {key}")


def store_guard(func):
    """Turn store failures escaping a public operation into a Result."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StoreUnavailable as e:
            logger.warning(f"{func.__qualname__} aborted: {e}")
            return Result.unavailable()
        except RankOutOfRange as e:
            logger.debug(f"{func.__qualname__}: {e}")
            return Result.not_found(Entity.RANK)

    return wrapper
