import redis
from typing import Dict, List, Optional, Set

from constants import (
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    REDIS_DB,
    REDIS_SOCKET_TIMEOUT,
    REDIS_CONNECT_TIMEOUT,
)
from errors import StoreUnavailable
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client() -> redis.Redis:
    """Build a client from configuration and verify the server answers."""
    try:
        client = redis.Redis(
            host=REDIS_HOST,
            port=REDIS_PORT,
            password=REDIS_PASSWORD,
            db=REDIS_DB,
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=REDIS_CONNECT_TIMEOUT,
            decode_responses=True,
        )
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise


class RedisBackend:
    """The narrow store primitive the directories are written against.

    Hashes, unordered sets, sorted sets and plain key operations. No command
    here spans more than one key except rename and zinterstore, and nothing
    is batched: every call is a single round trip. Any redis error is logged
    and re-raised as StoreUnavailable.
    """

    def __init__(self, redis_client: redis.Redis):
        # Client must be created with decode_responses=True
        self.redis_client = redis_client

    def _execute(self, command: str, *args, **kwargs):
        try:
            return getattr(self.redis_client, command)(*args, **kwargs)
        except redis.RedisError as e:
            logger.error(f"Redis command {command} {args[:1]} failed: {e}", exc_info=True)
            raise StoreUnavailable(command, str(e)) from e

    def ping(self) -> bool:
        return bool(self._execute("ping"))

    def close(self):
        try:
            self.redis_client.close()
            logger.info("Redis client closed")
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis client: {e}")

    # keys

    def exists(self, key: str) -> bool:
        return self._execute("exists", key) > 0

    def delete(self, key: str) -> bool:
        return self._execute("delete", key) > 0

    def rename_if_absent(self, source: str, destination: str) -> bool:
        return bool(self._execute("renamenx", source, destination))

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self._execute("expire", key, seconds))

    # hashes

    def hash_get(self, key: str, field: str) -> Optional[str]:
        return self._execute("hget", key, field)

    def hash_get_all(self, key: str) -> Dict[str, str]:
        return self._execute("hgetall", key)

    def hash_set(self, key: str, field: str, value) -> None:
        self._execute("hset", key, field, value)

    def hash_set_many(self, key: str, mapping: Dict[str, object]) -> None:
        self._execute("hset", key, mapping=mapping)

    # sets

    def set_add(self, key: str, member: str) -> bool:
        return self._execute("sadd", key, member) > 0

    def set_remove(self, key: str, member: str) -> bool:
        return self._execute("srem", key, member) > 0

    def set_contains(self, key: str, member: str) -> bool:
        return bool(self._execute("sismember", key, member))

    def set_members(self, key: str) -> Set[str]:
        return self._execute("smembers", key)

    def set_random_member(self, key: str) -> Optional[str]:
        return self._execute("srandmember", key)

    def set_length(self, key: str) -> int:
        return self._execute("scard", key)

    # sorted sets

    def zset_add(self, key: str, member: str, score: float) -> None:
        self._execute("zadd", key, {member: score})

    def zset_increment(self, key: str, member: str, amount: float) -> float:
        return self._execute("zincrby", key, amount, member)

    def zset_remove(self, key: str, member: str) -> bool:
        return self._execute("zrem", key, member) > 0

    def zset_score(self, key: str, member: str) -> Optional[float]:
        return self._execute("zscore", key, member)

    def zset_rank_descending(self, key: str, member: str) -> Optional[int]:
        return self._execute("zrevrank", key, member)

    def zset_length(self, key: str) -> int:
        return self._execute("zcard", key)

    def zset_range_descending(self, key: str, start: int, end: int) -> List[str]:
        return self._execute("zrevrange", key, start, end)

    def zset_range_descending_with_scores(self, key: str, start: int, end: int) -> List[tuple]:
        return self._execute("zrevrange", key, start, end, withscores=True)

    def zset_intersect_store(self, destination: str, weighted_keys: Dict[str, float]) -> int:
        return self._execute("zinterstore", destination, weighted_keys, aggregate="SUM")
