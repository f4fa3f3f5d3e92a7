from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.database import get_db
from friendspo.dependencies import get_current_user
from friendspo.models.user import User
from friendspo.schemas.stats import RankedEntry
from friendspo.services import leaderboard_service, stats_service
from friendspo.services.leaderboard_service import LeaderboardCategory

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/friends", response_model=list[RankedEntry])
async def friends_leaderboard(
    category: LeaderboardCategory = Query(default=LeaderboardCategory.STREAK),
    tz: str | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await leaderboard_service.get_friends_leaderboard(
        db, user.id, category, tz=stats_service.resolve_timezone(tz)
    )
