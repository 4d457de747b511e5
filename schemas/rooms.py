from pydantic import BaseModel


class CreateRoomRequest(BaseModel):
    room_number: int
    title: str
    owner: str
    server_id: int

class RoomMemberRequest(BaseModel):
    name: str

class ChangeTitleRequest(BaseModel):
    title: str

class SetOwnerRequest(BaseModel):
    owner: str

class SetServerRequest(BaseModel):
    server_id: int
