from pydantic import BaseModel
from typing import Optional


class CreateUserRequest(BaseModel):
    name: str
    password: str

class PasswordRequest(BaseModel):
    password: str

class LoginRequest(BaseModel):
    password: str
    connection_id: int
    is_dummy: Optional[bool] = False

class ChangeUsernameRequest(BaseModel):
    new_name: str
    password: str

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

class ChangeConnectionRequest(BaseModel):
    password: str
    connection_id: int

class BlockRequest(BaseModel):
    minutes: int

class MessageCountRequest(BaseModel):
    delta: int
