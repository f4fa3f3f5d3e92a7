import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.database import get_db
from friendspo.dependencies import get_current_user
from friendspo.errors import AlreadyFriendsError, FriendRequestExistsError
from friendspo.models.user import User
from friendspo.schemas.social import (
    FriendRequestCreate,
    FriendRequestResponse,
    PendingCountResponse,
    UserResponse,
)
from friendspo.services import friend_service

router = APIRouter(tags=["friends"])


@router.get("/friends", response_model=list[UserResponse])
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.get_friends(db, user.id)


@router.delete("/friends/{friend_id}", status_code=204)
async def remove_friend(
    friend_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await friend_service.remove_friend(db, user.id, friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/friends/requests", response_model=list[FriendRequestResponse])
async def list_pending_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.get_pending_requests(db, user.id)


@router.get("/friends/requests/sent", response_model=list[FriendRequestResponse])
async def list_sent_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.get_sent_requests(db, user.id)


@router.get("/friends/requests/count", response_model=PendingCountResponse)
async def pending_request_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"count": await friend_service.get_pending_request_count(db, user.id)}


@router.post("/friends/requests", status_code=201)
async def send_friend_request(
    data: FriendRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if data.user_id is None and not data.nickname:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide a nickname or a user_id",
        )
    try:
        if data.user_id is not None:
            friendship = await friend_service.send_friend_request_by_id(db, user.id, data.user_id)
        else:
            friendship = await friend_service.send_friend_request(db, user.id, data.nickname)
    except (AlreadyFriendsError, FriendRequestExistsError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return {"id": str(friendship.id), "status": friendship.status}


@router.post("/friends/requests/{request_id}/accept")
async def accept_friend_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await friend_service.accept_friend_request(db, user.id, request_id)
    return {"status": "accepted"}


@router.delete("/friends/requests/{request_id}", status_code=204)
async def decline_friend_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await friend_service.decline_friend_request(db, user.id, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/search", response_model=list[UserResponse])
async def search_users(
    q: str = Query(default="", max_length=50),
    limit: int = Query(default=3, ge=1, le=20),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.search_users(db, q, limit=limit)
