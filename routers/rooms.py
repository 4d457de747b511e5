from fastapi import APIRouter, Depends

from engine import DirectoryEngine
from logging_config import get_logger
from routers.common import get_engine, respond
from schemas.results import Result
from schemas.rooms import (
    ChangeTitleRequest,
    CreateRoomRequest,
    RoomMemberRequest,
    SetOwnerRequest,
    SetServerRequest,
)

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.post("/", response_model=Result, status_code=201)
def create_room(body: CreateRoomRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Room creation request: room {body.room_number} on server {body.server_id}, owner {body.owner}")
    return respond(engine.rooms.create(body.room_number, body.title, body.owner, body.server_id))


@rooms_router.get("/{room_number}/exists", response_model=Result)
def room_exists(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.exists(room_number))


@rooms_router.get("/{room_number}/title", response_model=Result)
def get_title(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.get_title(room_number))


@rooms_router.put("/{room_number}/title", response_model=Result)
def change_title(room_number: int, body: ChangeTitleRequest, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.change_title(room_number, body.title))


@rooms_router.get("/{room_number}/owner", response_model=Result)
def get_owner(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.get_owner(room_number))


@rooms_router.put("/{room_number}/owner", response_model=Result)
def set_owner(room_number: int, body: SetOwnerRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Owner change request for room {room_number}: {body.owner}")
    return respond(engine.rooms.set_owner(room_number, body.owner))


@rooms_router.get("/{room_number}/server-id", response_model=Result)
def get_server_id(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.get_server_id(room_number))


@rooms_router.put("/{room_number}/server-id", response_model=Result)
def set_server_id(room_number: int, body: SetServerRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Server change request for room {room_number}: {body.server_id}")
    return respond(engine.rooms.set_server_id(room_number, body.server_id))


@rooms_router.get("/{room_number}/user-count", response_model=Result)
def user_count(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.get_user_count(room_number))


@rooms_router.get("/{room_number}/rank", response_model=Result)
def size_rank(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.get_size_rank(room_number))


@rooms_router.get("/{room_number}/users", response_model=Result)
def user_list(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.user_list(room_number))


@rooms_router.get("/{room_number}/users/{name}", response_model=Result)
def contains_user(room_number: int, name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.rooms.contains_user(room_number, name))


@rooms_router.post("/{room_number}/users", response_model=Result)
def add_user(room_number: int, body: RoomMemberRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Join request: {body.name} -> room {room_number}")
    return respond(engine.rooms.add_user(room_number, body.name))


@rooms_router.delete("/{room_number}/users/{name}", response_model=Result)
def remove_user(room_number: int, name: str, engine: DirectoryEngine = Depends(get_engine)):
    # event tells whether the room was destroyed or changed owner
    logger.info(f"Leave request: {name} <- room {room_number}")
    return respond(engine.rooms.remove_user(room_number, name))


@rooms_router.post("/{room_number}/purge", response_model=Result)
def purge(room_number: int, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Purge request for room {room_number}")
    return respond(engine.rooms.purge(room_number))
