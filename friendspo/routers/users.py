import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.database import get_db
from friendspo.dependencies import get_current_user, get_token_subject
from friendspo.errors import NicknameTakenError, ProfileExistsError
from friendspo.models.user import User
from friendspo.schemas.user import (
    NicknameAvailability,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
)
from friendspo.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/me", response_model=ProfileResponse, status_code=201)
async def create_profile(
    data: ProfileCreate,
    user_id: uuid.UUID = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await user_service.create_profile(
            db,
            user_id,
            data.nickname,
            email=data.email,
            is_sharing_enabled=data.is_sharing_enabled,
        )
    except (NicknameTakenError, ProfileExistsError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/me", response_model=ProfileResponse)
async def get_profile(user: User = Depends(get_current_user)):
    return user


@router.get("/nickname-available", response_model=NicknameAvailability)
async def nickname_available(
    nickname: str = Query(min_length=1, max_length=50),
    user_id: uuid.UUID = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db),
):
    available = await user_service.is_nickname_available(
        db, nickname, exclude_user_id=user_id
    )
    return {"nickname": nickname, "available": available}


@router.patch("/me", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await user_service.update_profile(
            db, user.id, data.model_dump(exclude_unset=True)
        )
    except NicknameTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete("/me", status_code=204)
async def delete_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_profile(db, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
