import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.database import get_db
from friendspo.dependencies import get_current_user
from friendspo.errors import AlreadyMemberError
from friendspo.models.user import User
from friendspo.schemas.social import LeagueCreate, LeagueJoin, LeagueResponse
from friendspo.schemas.stats import LeagueMemberStats
from friendspo.services import leaderboard_service, league_service

router = APIRouter(prefix="/leagues", tags=["leagues"])


@router.get("", response_model=list[LeagueResponse])
async def list_leagues(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await league_service.get_my_leagues(db, user.id)


@router.post("", response_model=LeagueResponse, status_code=201)
async def create_league(
    data: LeagueCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await league_service.create_league(db, data.name, data.description, user.id)


@router.post("/join")
async def join_league(
    data: LeagueJoin,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        league = await league_service.join_league_by_code(db, data.code, user.id)
    except AlreadyMemberError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return {"league_id": str(league.id), "status": "joined"}


@router.get("/{league_id}/leaderboard", response_model=list[LeagueMemberStats])
async def league_leaderboard(
    league_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await league_service.is_member(db, league_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this league"
        )
    return await leaderboard_service.get_league_leaderboard(db, league_id)
