from fastapi import APIRouter, Depends

from engine import DirectoryEngine
from routers.common import get_engine, respond
from schemas.results import Result

servers_router = APIRouter(prefix="/servers", tags=["servers"])


@servers_router.get("/{server_id}/room-count", response_model=Result)
def room_count(server_id: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.servers.room_count(server_id))


@servers_router.get("/{server_id}/rooms", response_model=Result)
def room_list(server_id: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.servers.room_list(server_id))
