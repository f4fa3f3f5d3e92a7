import uuid
from datetime import date, datetime

from pydantic import BaseModel


class StatsSnapshot(BaseModel):
    """Aggregate over a user's closed sessions. Durations are in seconds."""

    total_sessions: int = 0
    average_duration: int = 0
    longest_session: int = 0
    shortest_session: int = 0
    current_streak: int = 0
    total_time_this_week: int = 0
    total_time_this_month: int = 0
    most_active_hour: int = 0
    weekly_session_count: int = 0
    monthly_session_count: int = 0
    regularity_score: int = 0  # 0-100, higher = more regular
    regularity_label: str = "Very Irregular"

    model_config = {"frozen": True}


class CalendarDay(BaseModel):
    date: date
    has_sessions: bool
    session_count: int

    model_config = {"frozen": True}


class StreakResponse(BaseModel):
    current_streak: int


class RegularityResponse(BaseModel):
    regularity_score: int
    regularity_label: str


class LeaderboardUser(BaseModel):
    id: uuid.UUID
    nickname: str

    model_config = {"from_attributes": True}


class RankedEntry(BaseModel):
    user: LeaderboardUser
    score: int
    rank: int


class LeagueMemberStats(BaseModel):
    user_id: uuid.UUID
    nickname: str
    total_sessions: int = 0
    total_minutes: int = 0
    last_session_at: datetime | None = None
