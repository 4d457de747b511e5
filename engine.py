import time
from typing import Callable, Optional

import redis

from backend import RedisBackend, create_redis_client
from constants import SUB_TOP_LIST_TTL
from directory.rooms import RoomDirectory
from directory.servers import ServerDirectory
from directory.users import UserDirectory
from errors import StoreUnavailable
from logging_config import get_logger
from suspension import SuspensionClock

logger = get_logger(__name__)


class DirectoryEngine:
    """Users, rooms and servers over one Redis client handle.

    Pass a client to share one (tests hand in a fakeredis client); otherwise
    one is created from configuration and closed by close().
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None,
                 clock: Callable[[], float] = time.time,
                 ranked_pool_ttl: int = SUB_TOP_LIST_TTL):
        self.owns_client = redis_client is None
        self.backend = RedisBackend(redis_client if redis_client is not None else create_redis_client())
        self.suspension = SuspensionClock(self.backend, clock)
        self.servers = ServerDirectory(self.backend)
        self.rooms = RoomDirectory(self.backend, self.servers)
        self.users = UserDirectory(self.backend, self.rooms, self.suspension, ranked_pool_ttl)
        logger.info("DirectoryEngine initialized")

    def ping(self) -> bool:
        try:
            return self.backend.ping()
        except StoreUnavailable:
            return False

    def close(self):
        if self.owns_client:
            self.backend.close()
        logger.info("DirectoryEngine closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
