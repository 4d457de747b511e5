from fastapi import APIRouter, Depends

from engine import DirectoryEngine
from logging_config import get_logger
from routers.common import get_engine, respond
from schemas.results import Result
from schemas.users import (
    BlockRequest,
    ChangeConnectionRequest,
    ChangePasswordRequest,
    ChangeUsernameRequest,
    CreateUserRequest,
    LoginRequest,
    MessageCountRequest,
    PasswordRequest,
)

logger = get_logger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])


@users_router.post("/", response_model=Result, status_code=201)
def create_user(body: CreateUserRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"User creation request for {body.name}")
    return respond(engine.users.create(body.name, body.password))


@users_router.post("/{name}/delete", response_model=Result)
def delete_user(name: str, body: PasswordRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"User deletion request for {name}")
    return respond(engine.users.delete(name, body.password))


@users_router.get("/{name}/exists", response_model=Result)
def user_exists(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.exists(name))


@users_router.post("/{name}/login", response_model=Result)
def login(name: str, body: LoginRequest, engine: DirectoryEngine = Depends(get_engine)):
    # The previous connection id comes back with event=login_override so the
    # caller can close the stale session.
    logger.info(f"Login request for {name} on connection {body.connection_id}")
    return respond(engine.users.login(name, body.password, body.connection_id, bool(body.is_dummy)))


@users_router.post("/{name}/logout", response_model=Result)
def logout(name: str, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Logout request for {name}")
    return respond(engine.users.logout(name))


@users_router.get("/{name}/logged-in", response_model=Result)
def is_logged_in(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.is_logged_in(name))


@users_router.get("/{name}/dummy", response_model=Result)
def is_dummy(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.is_dummy(name))


@users_router.get("/{name}/blocked", response_model=Result)
def check_blocked(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.check_blocked(name))


@users_router.get("/{name}/suspend-time", response_model=Result)
def suspend_time(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.get_suspend_time(name))


@users_router.get("/{name}/connection-id", response_model=Result)
def connection_id(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.get_connection_id(name))


@users_router.get("/{name}/location", response_model=Result)
def location(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.get_location(name))


@users_router.get("/{name}/message-count", response_model=Result)
def message_count(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.get_message_count(name))


@users_router.get("/{name}/rank", response_model=Result)
def rank(name: str, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.get_rank(name))


@users_router.post("/{name}/rename", response_model=Result)
def rename(name: str, body: ChangeUsernameRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Rename request {name} -> {body.new_name}")
    return respond(engine.users.change_username(name, body.new_name, body.password))


@users_router.post("/{name}/password", response_model=Result)
def change_password(name: str, body: ChangePasswordRequest, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.change_password(name, body.current_password, body.new_password))


@users_router.post("/{name}/connection-id", response_model=Result)
def change_connection_id(name: str, body: ChangeConnectionRequest, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.change_connection_id(name, body.password, body.connection_id))


@users_router.post("/{name}/block", response_model=Result)
def block(name: str, body: BlockRequest, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Block request for {name}: {body.minutes} minutes")
    return respond(engine.users.block_user(name, body.minutes))


@users_router.post("/{name}/unblock", response_model=Result)
def unblock(name: str, engine: DirectoryEngine = Depends(get_engine)):
    logger.info(f"Unblock request for {name}")
    return respond(engine.users.unblock_user(name))


@users_router.post("/{name}/message-count", response_model=Result)
def add_message_count(name: str, body: MessageCountRequest, engine: DirectoryEngine = Depends(get_engine)):
    return respond(engine.users.add_to_message_count(name, body.delta))
