import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class SessionStart(BaseModel):
    is_private: bool = False


class SessionStop(BaseModel):
    message: str | None = Field(default=None, max_length=100)
    rating: int | None = Field(default=None, ge=0, le=10)


class SessionPublish(BaseModel):
    message: str | None = Field(default=None, max_length=100)
    rating: int | None = Field(default=None, ge=0, le=10)
    is_private: bool = False


class SessionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    started_at: datetime
    ended_at: datetime | None
    duration: int | None
    is_private: bool
    message: str | None
    rating: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedItem(BaseModel):
    id: uuid.UUID  # session id
    user_id: uuid.UUID
    nickname: str | None
    started_at: datetime
    ended_at: datetime
    duration: int
    duration_label: str  # e.g. "12m 5s"
    message: str | None
    rating: int | None

    model_config = {"from_attributes": True}
