import pytest

from schemas.results import Entity, Event, Outcome


@pytest.fixture
def room(rooms, online):
    online("alice")
    assert rooms.create(7, "general", "alice", 1).ok
    return 7


def test_create_seats_owner(rooms, users, room, redis_client):
    assert rooms.exists(room).value is True
    assert rooms.user_list(room).value == ["alice"]
    assert rooms.get_user_count(room).value == 1
    assert rooms.get_owner(room).value == "alice"
    assert rooms.get_title(room).value == "general"
    assert rooms.get_server_id(room).value == 1
    assert users.get_location("alice").value == room
    assert not redis_client.sismember("LobbyPool", "User:alice")
    assert redis_client.sismember("Server:1", "Room:7")


def test_create_refusals(rooms, users, room):
    assert rooms.create(room, "again", "alice", 1).event == Event.ALREADY_EXISTS
    assert rooms.create(0, "lobby", "alice", 1).event == Event.RESERVED_ROOM
    missing_owner = rooms.create(9, "ghost town", "nobody", 1)
    assert missing_owner.outcome == Outcome.NOT_FOUND
    assert missing_owner.entity == Entity.USER
    assert rooms.exists(9).value is False


def test_sole_owner_leaving_destroys_room(rooms, servers, users, room, redis_client):
    result = rooms.remove_user(room, "alice")
    assert result.ok
    assert result.event == Event.ROOM_DESTROYED
    assert rooms.exists(room).value is False
    count = rooms.get_user_count(room)
    assert count.outcome == Outcome.NOT_FOUND
    assert count.entity == Entity.ROOM
    assert not redis_client.exists("Room:7", "Room:7:Contents")
    assert redis_client.zscore("RoomPool", "Room:7") is None
    assert servers.room_count(1).value == 0
    assert servers.room_list(1).value == []
    assert users.get_location("alice").value == 0
    assert users.lobby_list().value == ["alice"]


def test_owner_leaving_transfers_ownership(rooms, online, room):
    online("bob")
    rooms.add_user(room, "bob")
    result = rooms.remove_user(room, "alice")
    assert result.event == Event.OWNER_TRANSFERRED
    assert result.value == "bob"
    assert rooms.exists(room).value is True
    assert rooms.get_user_count(room).value == 1
    assert rooms.get_owner(room).value == "bob"


def test_member_leaving_keeps_owner(rooms, online, room):
    online("bob")
    rooms.add_user(room, "bob")
    result = rooms.remove_user(room, "bob")
    assert result.ok
    assert result.event is None
    assert rooms.get_owner(room).value == "alice"


def test_add_user_refusals(rooms, online, room):
    assert rooms.add_user(room, "alice").event == Event.ALREADY_MEMBER
    assert rooms.add_user(99, "alice").entity == Entity.ROOM
    assert rooms.add_user(room, "nobody").entity == Entity.USER


def test_remove_user_refusals(rooms, online, room):
    online("bob")
    assert rooms.remove_user(room, "bob").event == Event.NOT_MEMBER
    assert rooms.remove_user(99, "bob").entity == Entity.ROOM
    assert rooms.remove_user(room, "nobody").entity == Entity.USER


def test_joining_another_room_leaves_the_first(rooms, users, online, room):
    online("bob")
    rooms.add_user(room, "bob")
    rooms.create(8, "other", "bob", 2)
    assert rooms.user_list(room).value == ["alice"]
    assert rooms.get_user_count(room).value == 1
    assert rooms.user_list(8).value == ["bob"]
    assert users.get_location("bob").value == 8


def test_population_without_members_is_reported(rooms, online, room, redis_client):
    online("bob")
    rooms.add_user(room, "bob")
    # bob vanishes from the member set but is still counted
    redis_client.srem("Room:7:Contents", "User:bob")
    result = rooms.remove_user(room, "alice")
    assert result.outcome == Outcome.INCONSISTENT
    assert result.event == Event.OWNER_MISSING


def test_failed_destruction_is_reported(rooms, room, break_command):
    break_command("delete")
    result = rooms.remove_user(room, "alice")
    assert result.outcome == Outcome.STORE_UNAVAILABLE
    assert result.event == Event.ROOM_NOT_DESTROYED


def test_purge_empties_and_deletes(rooms, users, online, room):
    online("bob")
    online("carol")
    rooms.add_user(room, "bob")
    rooms.add_user(room, "carol")
    result = rooms.purge(room)
    assert result.ok
    assert result.event == Event.ROOM_DESTROYED
    assert result.value == 3
    assert rooms.exists(room).value is False
    assert users.lobby_list().value == ["alice", "bob", "carol"]
    for name in ("alice", "bob", "carol"):
        assert users.get_location(name).value == 0


def test_purge_deletes_room_despite_failed_removals(rooms, servers, room, redis_client):
    # a member whose user record is gone cannot be removed normally
    redis_client.sadd("Room:7:Contents", "User:ghost")
    redis_client.zincrby("RoomPool", 1, "Room:7")
    result = rooms.purge(room)
    assert result.event == Event.ROOM_DESTROYED
    assert rooms.exists(room).value is False
    assert not redis_client.exists("Room:7:Contents")
    assert servers.room_count(1).value == 0


def test_purge_unknown_room(rooms):
    assert rooms.purge(42).entity == Entity.ROOM


def test_change_title(rooms, room):
    result = rooms.change_title(room, "random")
    assert result.value == "general"
    assert rooms.get_title(room).value == "random"
    unchanged = rooms.change_title(room, "random")
    assert unchanged.outcome == Outcome.CONFLICT
    assert unchanged.event == Event.UNCHANGED


def test_set_owner(rooms, online, room):
    online("bob")
    online("carol")
    rooms.add_user(room, "bob")
    assert rooms.set_owner(room, "alice").event == Event.UNCHANGED
    assert rooms.set_owner(room, "carol").event == Event.NOT_MEMBER
    assert rooms.set_owner(room, "nobody").entity == Entity.USER
    result = rooms.set_owner(room, "bob")
    assert result.value == "alice"
    assert rooms.get_owner(room).value == "bob"


def test_set_server_id_moves_room(rooms, servers, room, redis_client):
    assert rooms.set_server_id(room, 1).event == Event.UNCHANGED
    result = rooms.set_server_id(room, 2)
    assert result.value == 1
    assert rooms.get_server_id(room).value == 2
    assert servers.room_count(1).value == 0
    assert servers.room_count(2).value == 1
    assert servers.room_list(2).value == [room]
    assert not redis_client.sismember("Server:1", "Room:7")


def test_contains_user(rooms, online, room):
    online("bob")
    assert rooms.contains_user(room, "alice").value is True
    assert rooms.contains_user(room, "bob").value is False
    assert rooms.contains_user(room, "nobody").entity == Entity.USER
    assert rooms.contains_user(99, "alice").entity == Entity.ROOM


def test_size_rank_and_listings(rooms, online, room):
    online("bob")
    online("carol")
    rooms.create(8, "busy", "bob", 1)
    rooms.add_user(8, "carol")
    assert rooms.get_size_rank(8).value == 1
    assert rooms.get_size_rank(room).value == 2
    assert rooms.room_list().value == [8, 7]
    assert rooms.top_rooms(1).value == {"8": 2}
    assert rooms.get_size_rank(99).entity == Entity.ROOM


def test_getters_on_missing_room(rooms):
    for getter in (rooms.get_title, rooms.get_owner, rooms.get_server_id, rooms.user_list):
        result = getter(99)
        assert result.outcome == Outcome.NOT_FOUND
        assert result.entity == Entity.ROOM


def test_create_completes_half_created_room(rooms, servers, online, redis_client):
    online("bob")
    # a previous create wrote the room and its server entry, then lost the store
    redis_client.hset("Room:9", mapping={"RoomTitle": "stale", "RoomOwner": "bob", "ServerID": 3})
    redis_client.zadd("RoomPool", {"Room:9": 0})
    redis_client.sadd("Server:3", "Room:9")
    redis_client.zincrby("ServerPool", 1, "Server:3")

    result = rooms.create(9, "fresh", "bob", 4)
    assert result.ok
    assert rooms.get_title(9).value == "fresh"
    assert rooms.user_list(9).value == ["bob"]
    assert rooms.get_user_count(9).value == 1
    assert servers.room_count(3).value == 0
    assert servers.room_list(4).value == [9]


def test_create_retry_does_not_double_count_server(rooms, servers, online, redis_client):
    online("bob")
    redis_client.hset("Room:9", mapping={"RoomTitle": "t", "RoomOwner": "bob", "ServerID": 3})
    redis_client.zadd("RoomPool", {"Room:9": 0})
    redis_client.sadd("Server:3", "Room:9")
    redis_client.zincrby("ServerPool", 1, "Server:3")

    assert rooms.create(9, "t", "bob", 3).ok
    assert servers.room_count(3).value == 1


def test_retried_join_is_counted_once(rooms, online, room, redis_client, break_command, monkeypatch):
    online("bob")
    break_command("sadd")
    assert rooms.add_user(room, "bob").outcome == Outcome.STORE_UNAVAILABLE
    monkeypatch.undo()

    assert rooms.add_user(room, "bob").ok
    assert rooms.get_user_count(room).value == 2
    assert rooms.user_list(room).value == ["alice", "bob"]

    rooms.remove_user(room, "bob")
    assert rooms.remove_user(room, "alice").event == Event.ROOM_DESTROYED
    assert rooms.exists(room).value is False
    assert redis_client.zscore("RoomPool", "Room:7") is None
