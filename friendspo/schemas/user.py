import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ProfileCreate(BaseModel):
    nickname: str = Field(min_length=1, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    is_sharing_enabled: bool = True


class ProfileUpdate(BaseModel):
    nickname: str | None = Field(default=None, min_length=1, max_length=50)
    is_sharing_enabled: bool | None = None


class ProfileResponse(BaseModel):
    id: uuid.UUID
    nickname: str
    email: str | None
    is_sharing_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NicknameAvailability(BaseModel):
    nickname: str
    available: bool
