import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.config import settings
from friendspo.database import get_db
from friendspo.dependencies import get_current_user
from friendspo.errors import ActiveSessionExistsError
from friendspo.models.user import User
from friendspo.schemas.session import (
    FeedItem,
    SessionPublish,
    SessionResponse,
    SessionStart,
    SessionStop,
)
from friendspo.services import session_service, stats_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=list[SessionResponse])
async def list_sessions(
    limit: int = Query(default=100, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.fetch_closed_sessions(db, user.id, limit=limit)


@router.get("/active", response_model=SessionResponse | None)
async def get_active_session(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.fetch_active_session(db, user.id)


@router.get("/feed", response_model=list[FeedItem])
async def friends_feed(
    limit: int = Query(default=settings.FEED_LIMIT, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_sharing_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Enable sharing to see your friends' activity",
        )
    items = await session_service.fetch_friends_sessions(db, user.id, limit=limit)
    for item in items:
        item["duration_label"] = stats_service.format_duration(item["duration"])
    return items


@router.post("", response_model=SessionResponse, status_code=201)
async def start_session(
    data: SessionStart | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = data or SessionStart()
    try:
        return await session_service.insert_session(db, user.id, is_private=data.is_private)
    except ActiveSessionExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{session_id}/stop", response_model=SessionResponse)
async def stop_session(
    session_id: uuid.UUID,
    data: SessionStop | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = data or SessionStop()
    return await session_service.close_session(
        db, user.id, session_id, message=data.message, rating=data.rating
    )


@router.patch("/{session_id}", response_model=SessionResponse)
async def publish_session(
    session_id: uuid.UUID,
    data: SessionPublish,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.update_session_details(
        db, user.id, session_id, data.model_dump(exclude_unset=True)
    )


@router.delete("/{session_id}", status_code=204)
async def discard_session(
    session_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await session_service.delete_session(db, user.id, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
