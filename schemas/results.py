from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class Outcome(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    AUTH_FAILED = "auth_failed"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    STORE_UNAVAILABLE = "store_unavailable"
    INCONSISTENT = "inconsistent"


class Entity(str, Enum):
    USER = "user"
    ROOM = "room"
    SERVER = "server"
    RANK = "rank"
    POOL = "pool"


class Event(str, Enum):
    # success details
    LOGIN_OVERRIDE = "login_override"
    ROOM_DESTROYED = "room_destroyed"
    OWNER_TRANSFERRED = "owner_transferred"
    BLOCKED = "blocked"
    NOT_BLOCKED = "not_blocked"
    UNBLOCKED = "unblocked"  # suspension expired and was cleared by this check
    # conflicts
    ALREADY_EXISTS = "already_exists"
    ALREADY_MEMBER = "already_member"
    NOT_MEMBER = "not_member"
    NAME_TAKEN = "name_taken"
    UNCHANGED = "unchanged"
    NOT_LOGGED_IN = "not_logged_in"
    RESERVED_ROOM = "reserved_room"
    INVALID_DURATION = "invalid_duration"
    # failures
    ROOM_NOT_DESTROYED = "room_not_destroyed"
    OWNER_MISSING = "owner_missing"


Value = Union[bool, int, str, List[int], List[str], Dict[str, int]]


class Result(BaseModel):
    """Outcome of one directory operation, built only from primitives so any
    transport can serialize it."""

    outcome: Outcome
    value: Optional[Value] = None
    entity: Optional[Entity] = None
    event: Optional[Event] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.OK

    @classmethod
    def success(cls, value: Optional[Value] = None, event: Optional[Event] = None) -> "Result":
        return cls(outcome=Outcome.OK, value=value, event=event)

    @classmethod
    def not_found(cls, entity: Entity) -> "Result":
        return cls(outcome=Outcome.NOT_FOUND, entity=entity)

    @classmethod
    def auth_failed(cls) -> "Result":
        return cls(outcome=Outcome.AUTH_FAILED)

    @classmethod
    def conflict(cls, event: Event, value: Optional[Value] = None) -> "Result":
        return cls(outcome=Outcome.CONFLICT, event=event, value=value)

    @classmethod
    def forbidden(cls, value: Optional[Value] = None) -> "Result":
        return cls(outcome=Outcome.FORBIDDEN, event=Event.BLOCKED, value=value)

    @classmethod
    def unavailable(cls, event: Optional[Event] = None) -> "Result":
        return cls(outcome=Outcome.STORE_UNAVAILABLE, event=event)

    @classmethod
    def inconsistent(cls, event: Event) -> "Result":
        return cls(outcome=Outcome.INCONSISTENT, event=event)
