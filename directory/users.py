import hmac
from typing import Optional

from backend import RedisBackend
from constants import SUB_TOP_LIST_TTL
from directory.rooms import RoomDirectory
from errors import store_guard
from logging_config import get_logger
from ranking import RankingIndex
from redis_keys import (
    BLOCK_FLAG_FIELD,
    CONNECTION_ID_FIELD,
    DUMMY_FLAG_FIELD,
    DUMMY_POOL_KEY,
    LOBBY_POOL_KEY,
    LOGIN_FLAG_FIELD,
    LOGIN_POOL_KEY,
    PASSWORD_FIELD,
    RANKABLE_POOLS,
    ROOM_CONTENTS_KEY,
    ROOM_KEY,
    ROOM_NUMBER_FIELD,
    ROOM_OWNER_FIELD,
    SUSPEND_TIMER_FIELD,
    USER_KEY,
    USER_POOL_KEY,
    USER_PREFIX,
    strip_prefix,
    user_member,
)
from schemas.results import Entity, Event, Outcome, Result
from suspension import BlockState, SuspensionClock

logger = get_logger(__name__)


class UserDirectory:
    """Registered users: credentials, sessions, suspensions and message counts.

    A user is the `User:<name>` hash plus an entry in UserPool, and while
    logged in, membership in LobbyPool (or a room) and in exactly one of
    LoginPool / DummyPool. The hash is created first and deleted last, so
    "user exists" is the last thing to become false and a failed delete can
    simply be retried.
    """

    def __init__(self, backend: RedisBackend, rooms: RoomDirectory, suspension: SuspensionClock,
                 ranked_pool_ttl: int = SUB_TOP_LIST_TTL):
        self.backend = backend
        self.rooms = rooms
        self.suspension = suspension
        self.ranked_pool_ttl = ranked_pool_ttl
        self.ranking = RankingIndex(backend, USER_POOL_KEY, USER_PREFIX)

    def _key(self, name: str) -> str:
        return USER_KEY.format(name=name)

    def _exists(self, name: str) -> bool:
        return self.backend.exists(self._key(name))

    def _field(self, name: str, field: str) -> Optional[str]:
        return self.backend.hash_get(self._key(name), field)

    def _flag(self, name: str, field: str) -> bool:
        return self._field(name, field) == "1"

    def _room(self, name: str) -> int:
        return int(self._field(name, ROOM_NUMBER_FIELD) or 0)

    def _authenticate(self, name: str, password: str) -> bool:
        stored = self._field(name, PASSWORD_FIELD)
        if stored is None:
            # same amount of work as a real comparison
            hmac.compare_digest(password.encode(), password.encode())
            return False
        return hmac.compare_digest(stored.encode(), password.encode())

    def _gate(self, name: str, password: str) -> Optional[Result]:
        """Refusal for an authenticated action, or None when it may proceed."""
        if not self._authenticate(name, password):
            logger.warning(f"Authentication failed for {name}")
            return Result.auth_failed()
        if self.suspension.check(name) == BlockState.BLOCKED:
            logger.info(f"Action refused: {name} is suspended")
            return Result.forbidden(self.suspension.expiry(name))
        return None

    def _leave_room(self, name: str) -> Optional[Result]:
        """Evict the user from the room their hash points at.

        Returns the failure when the eviction could not be carried out and
        the caller must abort. A stale pointer (room gone, user not listed)
        is not a failure.
        """
        room_number = self._room(name)
        if not room_number:
            return None
        left = self.rooms.remove_user(room_number, name)
        if left.outcome == Outcome.STORE_UNAVAILABLE:
            return left
        if left.outcome in (Outcome.NOT_FOUND, Outcome.CONFLICT):
            logger.warning(f"{name} pointed at room {room_number} but eviction gave {left.outcome.value}")
            self.backend.hash_set(self._key(name), ROOM_NUMBER_FIELD, 0)
        return None

    # account lifecycle

    @store_guard
    def create(self, name: str, password: str) -> Result:
        if self._exists(name):
            logger.info(f"User creation rejected: {name} already exists")
            return Result.conflict(Event.ALREADY_EXISTS)
        self.backend.hash_set_many(self._key(name), {
            PASSWORD_FIELD: password,
            CONNECTION_ID_FIELD: 0,
            LOGIN_FLAG_FIELD: 0,
            DUMMY_FLAG_FIELD: 0,
            BLOCK_FLAG_FIELD: 0,
            SUSPEND_TIMER_FIELD: 0,
            ROOM_NUMBER_FIELD: 0,
        })
        self.ranking.add(name, 0)
        logger.info(f"User {name} created")
        return Result.success()

    @store_guard
    def delete(self, name: str, password: str) -> Result:
        if not self._authenticate(name, password):
            logger.warning(f"Deletion of {name} refused: authentication failed")
            return Result.auth_failed()
        refused = self._leave_room(name)
        if refused:
            logger.warning(f"Deletion of {name} aborted: could not leave room")
            return refused
        member = user_member(name)
        self.backend.set_remove(LOBBY_POOL_KEY, member)
        self.backend.set_remove(LOGIN_POOL_KEY, member)
        self.backend.set_remove(DUMMY_POOL_KEY, member)
        self.ranking.remove(name)
        self.backend.delete(self._key(name))
        logger.info(f"User {name} deleted")
        return Result.success()

    @store_guard
    def exists(self, name: str) -> Result:
        return Result.success(self._exists(name))

    # sessions

    @store_guard
    def login(self, name: str, password: str, connection_id: int, is_dummy: bool = False) -> Result:
        """Log a user in, overriding any session they already have.

        On override the result carries the previous connection id so the
        caller can drop the stale connection.
        """
        refused = self._gate(name, password)
        if refused:
            return refused
        logged_in = self._flag(name, LOGIN_FLAG_FIELD)
        previous = int(self._field(name, CONNECTION_ID_FIELD) or 0)

        refused = self._leave_room(name)
        if refused:
            return refused

        self.backend.hash_set_many(self._key(name), {
            LOGIN_FLAG_FIELD: 1,
            CONNECTION_ID_FIELD: connection_id,
            DUMMY_FLAG_FIELD: int(is_dummy),
            ROOM_NUMBER_FIELD: 0,
        })
        member = user_member(name)
        self.backend.set_add(LOBBY_POOL_KEY, member)
        pool, other_pool = (DUMMY_POOL_KEY, LOGIN_POOL_KEY) if is_dummy else (LOGIN_POOL_KEY, DUMMY_POOL_KEY)
        self.backend.set_remove(other_pool, member)
        self.backend.set_add(pool, member)

        if logged_in:
            logger.info(f"User {name} logged in again, connection {previous} replaced by {connection_id}")
            return Result.success(previous, Event.LOGIN_OVERRIDE)
        logger.info(f"User {name} logged in on connection {connection_id}{' (dummy)' if is_dummy else ''}")
        return Result.success(connection_id)

    @store_guard
    def logout(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        if not self._flag(name, LOGIN_FLAG_FIELD):
            return Result.conflict(Event.NOT_LOGGED_IN)

        refused = self._leave_room(name)
        if refused:
            return refused
        member = user_member(name)
        self.backend.set_remove(LOBBY_POOL_KEY, member)
        self.backend.set_remove(LOGIN_POOL_KEY, member)
        self.backend.set_remove(DUMMY_POOL_KEY, member)
        self.backend.hash_set_many(self._key(name), {
            LOGIN_FLAG_FIELD: 0,
            DUMMY_FLAG_FIELD: 0,
            CONNECTION_ID_FIELD: 0,
            ROOM_NUMBER_FIELD: 0,
        })
        logger.info(f"User {name} logged out")
        return Result.success()

    # attribute reads

    @store_guard
    def is_logged_in(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        return Result.success(self._flag(name, LOGIN_FLAG_FIELD))

    @store_guard
    def is_dummy(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        return Result.success(self._flag(name, DUMMY_FLAG_FIELD))

    @store_guard
    def check_blocked(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        state = self.suspension.check(name)
        return Result.success(state == BlockState.BLOCKED, Event(state.value))

    @store_guard
    def get_suspend_time(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        state = self.suspension.check(name)
        if state == BlockState.BLOCKED:
            return Result.success(self.suspension.expiry(name), Event.BLOCKED)
        return Result.success(0, Event(state.value))

    @store_guard
    def get_connection_id(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        return Result.success(int(self._field(name, CONNECTION_ID_FIELD) or 0))

    @store_guard
    def get_location(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        if not self._flag(name, LOGIN_FLAG_FIELD):
            return Result.conflict(Event.NOT_LOGGED_IN)
        return Result.success(self._room(name))

    # message counts

    @store_guard
    def get_message_count(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        return Result.success(self.ranking.score(name) or 0)

    @store_guard
    def add_to_message_count(self, name: str, delta: int) -> Result:
        # read-modify-write: the floor applies to the sum, which ZINCRBY cannot express
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        count = max(0, (self.ranking.score(name) or 0) + delta)
        self.ranking.set_score(name, count)
        return Result.success(count)

    @store_guard
    def get_rank(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        rank = self.ranking.rank(name)
        if rank is None:
            logger.error(f"User {name} exists but has no {USER_POOL_KEY} entry")
            return Result.not_found(Entity.RANK)
        return Result.success(rank)

    @store_guard
    def message_count_at_rank(self, rank: int) -> Result:
        return Result.success(self.ranking.score_at_rank(rank))

    @store_guard
    def username_at_rank(self, rank: int) -> Result:
        return Result.success(self.ranking.key_at_rank(rank))

    # account changes

    @store_guard
    def change_username(self, current_name: str, new_name: str, password: str) -> Result:
        """Rename a user across every key that refers to them.

        The old name is first taken out of every set, then the hash is
        renamed (RENAMENX, so a name claimed in the meantime is not
        overwritten), then the new name is put back where the old one was.
        At no point are both names listed.
        """
        refused = self._gate(current_name, password)
        if refused:
            return refused
        if current_name == new_name:
            return Result.conflict(Event.UNCHANGED)
        if self._exists(new_name):
            return Result.conflict(Event.NAME_TAKEN)

        old_member, new_member = user_member(current_name), user_member(new_name)
        room_number = self._room(current_name)
        contents_key = ROOM_CONTENTS_KEY.format(number=room_number) if room_number else None
        in_room = contents_key is not None and self.backend.set_contains(contents_key, old_member)
        pools = [pool for pool in (LOBBY_POOL_KEY, LOGIN_POOL_KEY, DUMMY_POOL_KEY)
                 if self.backend.set_contains(pool, old_member)]

        if in_room:
            self.backend.set_remove(contents_key, old_member)
        for pool in pools:
            self.backend.set_remove(pool, old_member)

        if not self.backend.rename_if_absent(self._key(current_name), self._key(new_name)):
            logger.warning(f"Rename {current_name} -> {new_name} lost a race, restoring memberships")
            for pool in pools:
                self.backend.set_add(pool, old_member)
            if in_room:
                self.backend.set_add(contents_key, old_member)
            return Result.conflict(Event.NAME_TAKEN)

        self.ranking.set_score(new_name, self.ranking.score(current_name) or 0)
        self.ranking.remove(current_name)
        for pool in pools:
            self.backend.set_add(pool, new_member)
        if in_room:
            self.backend.set_add(contents_key, new_member)
            room_key = ROOM_KEY.format(number=room_number)
            if self.backend.hash_get(room_key, ROOM_OWNER_FIELD) == current_name:
                self.backend.hash_set(room_key, ROOM_OWNER_FIELD, new_name)
        logger.info(f"User {current_name} renamed to {new_name}")
        return Result.success(new_name)

    @store_guard
    def change_password(self, name: str, current_password: str, new_password: str) -> Result:
        refused = self._gate(name, current_password)
        if refused:
            return refused
        if current_password == new_password:
            return Result.conflict(Event.UNCHANGED)
        self.backend.hash_set(self._key(name), PASSWORD_FIELD, new_password)
        logger.info(f"Password of {name} changed")
        return Result.success()

    @store_guard
    def change_connection_id(self, name: str, password: str, connection_id: int) -> Result:
        refused = self._gate(name, password)
        if refused:
            return refused
        previous = int(self._field(name, CONNECTION_ID_FIELD) or 0)
        self.backend.hash_set(self._key(name), CONNECTION_ID_FIELD, connection_id)
        return Result.success(previous)

    # suspensions

    @store_guard
    def block_user(self, name: str, minutes: int) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        if minutes <= 0:
            return Result.conflict(Event.INVALID_DURATION)
        expiry = self.suspension.suspend(name, minutes)
        logger.info(f"User {name} suspended until {expiry}")
        return Result.success(expiry)

    @store_guard
    def unblock_user(self, name: str) -> Result:
        if not self._exists(name):
            return Result.not_found(Entity.USER)
        if self.suspension.check(name) != BlockState.BLOCKED:
            return Result.conflict(Event.NOT_BLOCKED)
        self.suspension.clear(name)
        logger.info(f"Suspension of {name} lifted")
        return Result.success()

    # statistics

    @store_guard
    def user_count(self) -> Result:
        return Result.success(self.ranking.size())

    @store_guard
    def user_list(self) -> Result:
        return Result.success(self.ranking.members())

    @store_guard
    def top_list(self, n: int) -> Result:
        return Result.success(dict(self.ranking.range_top(n)))

    @store_guard
    def sub_top_list(self, n: int, pool: str) -> Result:
        """Top-n users by message count among the members of one pool.

        Scores are the true message counts.
        """
        if pool not in RANKABLE_POOLS:
            return Result.not_found(Entity.POOL)
        return Result.success(dict(self.ranking.intersect_top(n, pool, self.ranked_pool_ttl)))

    def _pool_names(self, pool: str):
        return sorted(strip_prefix(m, USER_PREFIX) for m in self.backend.set_members(pool))

    @store_guard
    def login_count(self) -> Result:
        return Result.success(self.backend.set_length(LOGIN_POOL_KEY))

    @store_guard
    def dummy_count(self) -> Result:
        return Result.success(self.backend.set_length(DUMMY_POOL_KEY))

    @store_guard
    def login_list(self) -> Result:
        return Result.success(self._pool_names(LOGIN_POOL_KEY))

    @store_guard
    def dummy_list(self) -> Result:
        return Result.success(self._pool_names(DUMMY_POOL_KEY))

    @store_guard
    def lobby_list(self) -> Result:
        return Result.success(self._pool_names(LOBBY_POOL_KEY))
