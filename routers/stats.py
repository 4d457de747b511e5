from fastapi import APIRouter, Depends, Query

from constants import DEFAULT_TOP_N
from engine import DirectoryEngine
from routers.common import get_engine, respond
from schemas.results import Result

stats_router = APIRouter(prefix="/stats", tags=["stats"])


@stats_router.get("/users", response_model=Result)
def user_list(engine: DirectoryEngine = Depends(get_engine)):
    """All registered users, highest message count first."""
    return respond(engine.users.user_list())


@stats_router.get("/users/count", response_model=Result)
def user_count(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.user_count())


@stats_router.get("/users/top", response_model=Result)
def top_users(n: int = Query(DEFAULT_TOP_N, ge=0), engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.top_list(n))


@stats_router.get("/users/top/{pool}", response_model=Result)
def top_users_in_pool(pool: str, n: int = Query(DEFAULT_TOP_N, ge=0), engine: DirectoryEngine = Depends(get_engine)):
    """Top users restricted to LoginPool, DummyPool or LobbyPool. Scores are true counts."""
    return respond(engine.users.sub_top_list(n, pool))


@stats_router.get("/users/rank/{rank}/name", response_model=Result)
def name_at_rank(rank: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.username_at_rank(rank))


@stats_router.get("/users/rank/{rank}/message-count", response_model=Result)
def message_count_at_rank(rank: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.message_count_at_rank(rank))


@stats_router.get("/logins", response_model=Result)
def login_list(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.login_list())


@stats_router.get("/logins/count", response_model=Result)
def login_count(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.login_count())


@stats_router.get("/dummies", response_model=Result)
def dummy_list(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.dummy_list())


@stats_router.get("/dummies/count", response_model=Result)
def dummy_count(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.dummy_count())


@stats_router.get("/lobby", response_model=Result)
def lobby_list(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.lobby_list())


@stats_router.get("/rooms", response_model=Result)
def room_list(engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.room_list())


@stats_router.get("/rooms/top", response_model=Result)
def top_rooms(n: int = Query(DEFAULT_TOP_N, ge=0), engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.top_rooms(n))


@stats_router.get("/servers/top", response_model=Result)
def top_servers(n: int = Query(DEFAULT_TOP_N, ge=0), engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.servers.top_servers(n))
