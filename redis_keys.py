USER_POOL_KEY = "UserPool" # zset User:<name> -> message count
USER_KEY = "User:{name}" # hash - user attributes
LOGIN_POOL_KEY = "LoginPool" # set of logged in human users
DUMMY_POOL_KEY = "DummyPool" # set of logged in dummy users
LOBBY_POOL_KEY = "LobbyPool" # set of logged in users sitting in room 0

ROOM_POOL_KEY = "RoomPool" # zset Room:<n> -> population
ROOM_KEY = "Room:{number}" # hash - room attributes
ROOM_CONTENTS_KEY = "Room:{number}:Contents" # set of User:<name> members

SERVER_POOL_KEY = "ServerPool" # zset Server:<id> -> hosted room count
SERVER_KEY = "Server:{server_id}" # set of Room:<n> hosted rooms

RANKED_POOL_KEY = "{pool}Ranked" # temporary zset, intersection of UserPool with a pool

USER_PREFIX = "User:"
ROOM_PREFIX = "Room:"
SERVER_PREFIX = "Server:"

PASSWORD_FIELD = "Password"
CONNECTION_ID_FIELD = "ConnectionID"
LOGIN_FLAG_FIELD = "LoginFlag"
DUMMY_FLAG_FIELD = "DummyFlag"
BLOCK_FLAG_FIELD = "BlockFlag"
SUSPEND_TIMER_FIELD = "SuspendTimer"
ROOM_NUMBER_FIELD = "RoomNumber"

ROOM_TITLE_FIELD = "RoomTitle"
ROOM_OWNER_FIELD = "RoomOwner"
SERVER_ID_FIELD = "ServerID"

# Pools that may be intersected with UserPool
RANKABLE_POOLS = (LOGIN_POOL_KEY, DUMMY_POOL_KEY, LOBBY_POOL_KEY)

# **`User:<name>` hash fields**
# - `Password` = opaque credential string
# - `ConnectionID` = integer session handle (0 when logged out)
# - `LoginFlag` / `DummyFlag` / `BlockFlag` = 1 or 0
# - `SuspendTimer` = unix timestamp the suspension ends (0 = none)
# - `RoomNumber` = current room (0 = lobby)
#
# **`Room:<n>` hash fields**
# - `RoomTitle`, `RoomOwner` (username), `ServerID`

def user_member(name: str) -> str:
    return USER_PREFIX + name

def room_member(number: int) -> str:
    return f"{ROOM_PREFIX}{number}"
def strip_prefix(member: str, prefix: str) -> str:
    return member[len(prefix):] if member.startswith(prefix) else member
