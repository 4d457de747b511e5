from backend import RedisBackend
from errors import store_guard
from logging_config import get_logger
from ranking import RankingIndex
from redis_keys import ROOM_PREFIX, SERVER_KEY, SERVER_POOL_KEY, SERVER_PREFIX, room_member, strip_prefix
from schemas.results import Entity, Result

logger = get_logger(__name__)


class ServerDirectory:
    """Rooms hosted per server and the room-count ranking of servers.

    Mutated only by the room directory (attach/detach); everything public is
    a read.
    """

    def __init__(self, backend: RedisBackend):
        self.backend = backend
        self.ranking = RankingIndex(backend, SERVER_POOL_KEY, SERVER_PREFIX)

    def attach_room(self, server_id: int, room_number: int):
        # the count moves only with the set, so a repeated attach is harmless
        if self.backend.set_add(SERVER_KEY.format(server_id=server_id), room_member(room_number)):
            self.ranking.increment(server_id)
        logger.debug(f"Room {room_number} attached to server {server_id}")

    def detach_room(self, server_id: int, room_number: int):
        if self.backend.set_remove(SERVER_KEY.format(server_id=server_id), room_member(room_number)):
            self.ranking.decrement(server_id)
        logger.debug(f"Room {room_number} detached from server {server_id}")

    @store_guard
    def room_count(self, server_id: int) -> Result:
        count = self.ranking.score(server_id)
        if count is None:
            return Result.not_found(Entity.SERVER)
        return Result.success(count)

    @store_guard
    def room_list(self, server_id: int) -> Result:
        members = self.backend.set_members(SERVER_KEY.format(server_id=server_id))
        return Result.success(sorted(int(strip_prefix(m, ROOM_PREFIX)) for m in members))

    @store_guard
    def top_servers(self, n: int) -> Result:
        return Result.success({server_id: count for server_id, count in self.ranking.range_top(n)})
