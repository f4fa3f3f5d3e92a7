import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: uuid.UUID
    nickname: str
    is_sharing_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class FriendRequestCreate(BaseModel):
    nickname: str | None = Field(default=None, min_length=1, max_length=50)
    user_id: uuid.UUID | None = None


class FriendRequestResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    friend_id: uuid.UUID
    status: str
    created_at: datetime
    user: UserResponse  # the other party

    model_config = {"from_attributes": True}


class PendingCountResponse(BaseModel):
    count: int


class LeagueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class LeagueJoin(BaseModel):
    code: str = Field(min_length=1, max_length=20)


class LeagueResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    code: str
    created_by: uuid.UUID
    created_at: datetime
    member_count: int = 0

    model_config = {"from_attributes": True}
