from typing import Optional

from backend import RedisBackend
from directory.servers import ServerDirectory
from errors import StoreUnavailable, store_guard
from logging_config import get_logger
from ranking import RankingIndex
from redis_keys import (
    LOBBY_POOL_KEY,
    LOGIN_FLAG_FIELD,
    ROOM_CONTENTS_KEY,
    ROOM_KEY,
    ROOM_NUMBER_FIELD,
    ROOM_OWNER_FIELD,
    ROOM_POOL_KEY,
    ROOM_PREFIX,
    ROOM_TITLE_FIELD,
    SERVER_ID_FIELD,
    USER_KEY,
    USER_PREFIX,
    strip_prefix,
    user_member,
)
from schemas.results import Entity, Event, Outcome, Result

logger = get_logger(__name__)


class RoomDirectory:
    """Rooms, their members and their population ranking.

    Every membership change touches four keys: the room's member set, the
    RoomPool population, the LobbyPool and the user's RoomNumber. Joining
    counts the member before seating them; leaving unseats them before the
    count drops. A crash in between leaves a phantom member counted, never a
    room deleted under live members.
    """

    def __init__(self, backend: RedisBackend, servers: ServerDirectory):
        self.backend = backend
        self.servers = servers
        self.ranking = RankingIndex(backend, ROOM_POOL_KEY, ROOM_PREFIX)

    def _room_exists(self, room_number: int) -> bool:
        return self.backend.exists(ROOM_KEY.format(number=room_number))

    def _user_exists(self, name: str) -> bool:
        return self.backend.exists(USER_KEY.format(name=name))

    def _is_member(self, room_number: int, name: str) -> bool:
        return self.backend.set_contains(ROOM_CONTENTS_KEY.format(number=room_number), user_member(name))

    def _room_field(self, room_number: int, field: str) -> Optional[str]:
        return self.backend.hash_get(ROOM_KEY.format(number=room_number), field)

    def _user_room(self, name: str) -> int:
        return int(self.backend.hash_get(USER_KEY.format(name=name), ROOM_NUMBER_FIELD) or 0)

    def _is_logged_in(self, name: str) -> bool:
        return self.backend.hash_get(USER_KEY.format(name=name), LOGIN_FLAG_FIELD) == "1"

    def _delete(self, room_number: int) -> bool:
        """Tear down every key of a room. Only reachable through remove_user and purge."""
        try:
            if not self._room_exists(room_number):
                return False
            server_id = self._room_field(room_number, SERVER_ID_FIELD)
            if server_id is not None:
                self.servers.detach_room(int(server_id), room_number)
            self.backend.delete(ROOM_CONTENTS_KEY.format(number=room_number))
            self.backend.delete(ROOM_KEY.format(number=room_number))
            self.ranking.remove(room_number)
        except StoreUnavailable as e:
            logger.error(f"Deleting room {room_number} failed: {e}")
            return False
        logger.info(f"Room {room_number} destroyed")
        return True

    @store_guard
    def create(self, room_number: int, title: str, owner: str, server_id: int) -> Result:
        if room_number <= 0:
            return Result.conflict(Event.RESERVED_ROOM)
        half_created = False
        if self._room_exists(room_number):
            if (self.ranking.score(room_number) or 0) > 0 or \
                    self.backend.set_length(ROOM_CONTENTS_KEY.format(number=room_number)) > 0:
                logger.info(f"Room creation rejected: room {room_number} already exists")
                return Result.conflict(Event.ALREADY_EXISTS)
            # an earlier create stopped before seating its owner
            half_created = True
        if not self._user_exists(owner):
            logger.info(f"Room creation rejected: owner {owner} is not registered")
            return Result.not_found(Entity.USER)

        if half_created:
            logger.warning(f"Room {room_number} was left without members, completing its creation")
            stale_server_id = self._room_field(room_number, SERVER_ID_FIELD)
            if stale_server_id is not None and int(stale_server_id) != server_id:
                self.servers.detach_room(int(stale_server_id), room_number)

        self.backend.hash_set_many(ROOM_KEY.format(number=room_number), {
            ROOM_TITLE_FIELD: title,
            ROOM_OWNER_FIELD: owner,
            SERVER_ID_FIELD: server_id,
        })
        self.ranking.add(room_number, 0)
        self.servers.attach_room(server_id, room_number)

        joined = self.add_user(room_number, owner)
        if not joined.ok:
            logger.warning(f"Owner {owner} could not enter new room {room_number} ({joined.outcome.value}), removing it")
            self._delete(room_number)
            return joined
        logger.info(f"Room {room_number} created on server {server_id} by {owner}")
        return Result.success(room_number)

    @store_guard
    def add_user(self, room_number: int, name: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        if not self._user_exists(name):
            return Result.not_found(Entity.USER)
        if self._is_member(room_number, name):
            return Result.conflict(Event.ALREADY_MEMBER)

        current = self._user_room(name)
        if current and current != room_number:
            left = self.remove_user(current, name)
            if left.outcome == Outcome.STORE_UNAVAILABLE:
                return left
            logger.debug(f"{name} moved out of room {current}: {left.outcome.value}")

        contents_key = ROOM_CONTENTS_KEY.format(number=room_number)
        population = self.ranking.increment(room_number)
        self.backend.set_add(contents_key, user_member(name))
        # a retried join was already counted once; never count more than are seated
        seated = self.backend.set_length(contents_key)
        if population > seated:
            logger.warning(f"Room {room_number} counted {population} for {seated} members, correcting")
            self.ranking.set_score(room_number, seated)
        self.backend.set_remove(LOBBY_POOL_KEY, user_member(name))
        self.backend.hash_set(USER_KEY.format(name=name), ROOM_NUMBER_FIELD, room_number)
        logger.debug(f"{name} entered room {room_number}")
        return Result.success(room_number)

    @store_guard
    def remove_user(self, room_number: int, name: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        if not self._user_exists(name):
            return Result.not_found(Entity.USER)
        if not self._is_member(room_number, name):
            return Result.conflict(Event.NOT_MEMBER)

        self.backend.set_remove(ROOM_CONTENTS_KEY.format(number=room_number), user_member(name))
        if self._user_room(name) == room_number:
            if self._is_logged_in(name):
                self.backend.set_add(LOBBY_POOL_KEY, user_member(name))
            self.backend.hash_set(USER_KEY.format(name=name), ROOM_NUMBER_FIELD, 0)
        population = self.ranking.decrement(room_number)
        logger.debug(f"{name} left room {room_number}, {population} remaining")

        if population < 1:
            if self._delete(room_number):
                return Result.success(event=Event.ROOM_DESTROYED)
            logger.error(f"Room {room_number} is empty but could not be destroyed")
            return Result.unavailable(Event.ROOM_NOT_DESTROYED)

        if self._room_field(room_number, ROOM_OWNER_FIELD) != name:
            return Result.success()
        successor = self.backend.set_random_member(ROOM_CONTENTS_KEY.format(number=room_number))
        if successor is None:
            logger.error(f"Room {room_number} counts {population} members but its member set is empty")
            return Result.inconsistent(Event.OWNER_MISSING)
        new_owner = strip_prefix(successor, USER_PREFIX)
        self.backend.hash_set(ROOM_KEY.format(number=room_number), ROOM_OWNER_FIELD, new_owner)
        logger.info(f"Ownership of room {room_number} passed from {name} to {new_owner}")
        return Result.success(new_owner, Event.OWNER_TRANSFERRED)

    @store_guard
    def purge(self, room_number: int) -> Result:
        """Empty a room and make sure it is gone.

        Individual removals may fail; they are logged and skipped. Whatever is
        left afterwards is deleted outright, and users still pointing at the
        room are sent back to the lobby.
        """
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        contents_key = ROOM_CONTENTS_KEY.format(number=room_number)
        members = self.backend.set_members(contents_key)
        for member in members:
            name = strip_prefix(member, USER_PREFIX)
            removed = self.remove_user(room_number, name)
            if not removed.ok:
                logger.warning(f"Purge of room {room_number}: removing {name} gave {removed.outcome.value}")

        if self._room_exists(room_number):
            leftovers = self.backend.set_members(contents_key)
            if not self._delete(room_number):
                return Result.unavailable(Event.ROOM_NOT_DESTROYED)
            for member in leftovers:
                name = strip_prefix(member, USER_PREFIX)
                if self._user_exists(name) and self._user_room(name) == room_number:
                    self.backend.hash_set(USER_KEY.format(name=name), ROOM_NUMBER_FIELD, 0)
                    if self._is_logged_in(name):
                        self.backend.set_add(LOBBY_POOL_KEY, user_member(name))
            logger.warning(f"Room {room_number} force-deleted with {len(leftovers)} leftover members")
        logger.info(f"Room {room_number} purged ({len(members)} members)")
        return Result.success(len(members), Event.ROOM_DESTROYED)

    @store_guard
    def exists(self, room_number: int) -> Result:
        return Result.success(self._room_exists(room_number))

    @store_guard
    def contains_user(self, room_number: int, name: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        if not self._user_exists(name):
            return Result.not_found(Entity.USER)
        return Result.success(self._is_member(room_number, name))

    def _get_field(self, room_number: int, field: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        return Result.success(self._room_field(room_number, field))

    @store_guard
    def get_title(self, room_number: int) -> Result:
        return self._get_field(room_number, ROOM_TITLE_FIELD)

    @store_guard
    def get_owner(self, room_number: int) -> Result:
        return self._get_field(room_number, ROOM_OWNER_FIELD)

    @store_guard
    def get_server_id(self, room_number: int) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        return Result.success(int(self._room_field(room_number, SERVER_ID_FIELD)))

    @store_guard
    def get_user_count(self, room_number: int) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        return Result.success(self.ranking.score(room_number) or 0)

    @store_guard
    def get_size_rank(self, room_number: int) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        rank = self.ranking.rank(room_number)
        if rank is None:
            logger.error(f"Room {room_number} exists but has no {ROOM_POOL_KEY} entry")
            return Result.not_found(Entity.RANK)
        return Result.success(rank)

    @store_guard
    def change_title(self, room_number: int, title: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        old_title = self._room_field(room_number, ROOM_TITLE_FIELD)
        if old_title == title:
            return Result.conflict(Event.UNCHANGED, old_title)
        self.backend.hash_set(ROOM_KEY.format(number=room_number), ROOM_TITLE_FIELD, title)
        logger.info(f"Room {room_number} retitled")
        return Result.success(old_title)

    @store_guard
    def set_owner(self, room_number: int, owner: str) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        old_owner = self._room_field(room_number, ROOM_OWNER_FIELD)
        if old_owner == owner:
            return Result.conflict(Event.UNCHANGED, old_owner)
        if not self._user_exists(owner):
            return Result.not_found(Entity.USER)
        if not self._is_member(room_number, owner):
            return Result.conflict(Event.NOT_MEMBER)
        self.backend.hash_set(ROOM_KEY.format(number=room_number), ROOM_OWNER_FIELD, owner)
        logger.info(f"Ownership of room {room_number} passed from {old_owner} to {owner}")
        return Result.success(old_owner)

    @store_guard
    def set_server_id(self, room_number: int, server_id: int) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        old_server_id = int(self._room_field(room_number, SERVER_ID_FIELD))
        if old_server_id == server_id:
            return Result.conflict(Event.UNCHANGED, old_server_id)
        self.servers.detach_room(old_server_id, room_number)
        self.servers.attach_room(server_id, room_number)
        self.backend.hash_set(ROOM_KEY.format(number=room_number), SERVER_ID_FIELD, server_id)
        logger.info(f"Room {room_number} moved from server {old_server_id} to {server_id}")
        return Result.success(old_server_id)

    @store_guard
    def user_list(self, room_number: int) -> Result:
        if not self._room_exists(room_number):
            return Result.not_found(Entity.ROOM)
        members = self.backend.set_members(ROOM_CONTENTS_KEY.format(number=room_number))
        return Result.success(sorted(strip_prefix(m, USER_PREFIX) for m in members))

    @store_guard
    def room_list(self) -> Result:
        return Result.success([int(number) for number in self.ranking.members()])

    @store_guard
    def top_rooms(self, n: int) -> Result:
        return Result.success({number: count for number, count in self.ranking.range_top(n)})
