import logging
import uuid

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.errors import (
    NicknameTakenError,
    NotFoundError,
    ProfileExistsError,
    ValidationError,
)
from friendspo.models.friendship import Friendship
from friendspo.models.league import League
from friendspo.models.league_member import LeagueMember
from friendspo.models.session import Session
from friendspo.models.user import User

logger = logging.getLogger(__name__)


def _clean_nickname(nickname: str) -> str:
    nickname = nickname.strip()
    if not nickname:
        raise ValidationError("Nickname cannot be empty")
    return nickname


async def is_nickname_available(
    db: AsyncSession, nickname: str, exclude_user_id: uuid.UUID | None = None
) -> bool:
    query = select(User.id).where(User.nickname == nickname.strip())
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    return result.first() is None


async def create_profile(
    db: AsyncSession,
    user_id: uuid.UUID,
    nickname: str,
    email: str | None = None,
    is_sharing_enabled: bool = True,
) -> User:
    """Create the profile row for an authenticated subject."""
    nickname = _clean_nickname(nickname)
    if await db.get(User, user_id) is not None:
        raise ProfileExistsError()
    if not await is_nickname_available(db, nickname):
        raise NicknameTakenError()

    user = User(
        id=user_id,
        nickname=nickname,
        email=email,
        is_sharing_enabled=is_sharing_enabled,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise NicknameTakenError() from exc
    await db.refresh(user)
    logger.info("Profile %s created", user.id)
    return user


async def update_profile(db: AsyncSession, user_id: uuid.UUID, data: dict) -> User:
    """Change nickname and/or sharing preference."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if data.get("nickname") is not None:
        nickname = _clean_nickname(data["nickname"])
        if not await is_nickname_available(db, nickname, exclude_user_id=user.id):
            raise NicknameTakenError()
        user.nickname = nickname
    if data.get("is_sharing_enabled") is not None:
        user.is_sharing_enabled = data["is_sharing_enabled"]

    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise NicknameTakenError() from exc
    await db.refresh(user)
    return user


async def delete_profile(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Hard-delete the profile with its sessions, friendships and leagues."""
    owned_leagues = select(League.id).where(League.created_by == user_id)
    await db.execute(
        delete(LeagueMember).where(
            or_(LeagueMember.user_id == user_id, LeagueMember.league_id.in_(owned_leagues))
        )
    )
    await db.execute(delete(League).where(League.created_by == user_id))
    await db.execute(
        delete(Friendship).where(
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id)
        )
    )
    await db.execute(delete(Session).where(Session.user_id == user_id))
    await db.execute(delete(User).where(User.id == user_id))
    logger.info("Profile %s deleted", user_id)
