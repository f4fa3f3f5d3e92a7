from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.database import get_db
from friendspo.dependencies import get_current_user
from friendspo.models.user import User
from friendspo.schemas.stats import CalendarDay, RegularityResponse, StatsSnapshot, StreakResponse
from friendspo.services import stats_service

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsSnapshot)
async def get_stats(
    tz: str | None = Query(default=None, description="IANA zone, e.g. Europe/Rome"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await stats_service.get_stats(
        db, user.id, tz=stats_service.resolve_timezone(tz)
    )


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    tz: str | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    streak = await stats_service.get_streak(
        db, user.id, tz=stats_service.resolve_timezone(tz)
    )
    return {"current_streak": streak}


@router.get("/regularity", response_model=RegularityResponse)
async def get_regularity(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    score = await stats_service.get_regularity_score(db, user.id)
    return {
        "regularity_score": score,
        "regularity_label": stats_service.get_regularity_label(score),
    }


@router.get("/calendar", response_model=list[CalendarDay])
async def get_calendar(
    year: int | None = Query(default=None, ge=1970, le=9998),
    month: int | None = Query(default=None, ge=1, le=12),
    tz: str | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    zone = stats_service.resolve_timezone(tz)
    today = datetime.now(timezone.utc).astimezone(zone)
    return await stats_service.get_calendar(
        db, user.id, year or today.year, month or today.month, tz=zone
    )
