import logging
import uuid

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.errors import (
    AlreadyFriendsError,
    FriendRequestExistsError,
    NotFoundError,
    ValidationError,
)
from friendspo.models.friendship import Friendship
from friendspo.models.user import User

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def _between(user_a: uuid.UUID, user_b: uuid.UUID):
    """Match a friendship row in either direction."""
    return or_(
        and_(Friendship.user_id == user_a, Friendship.friend_id == user_b),
        and_(Friendship.user_id == user_b, Friendship.friend_id == user_a),
    )


async def search_user_by_nickname(db: AsyncSession, nickname: str) -> User | None:
    result = await db.execute(select(User).where(User.nickname == nickname))
    return result.scalar_one_or_none()


async def search_users(db: AsyncSession, query: str, limit: int = 3) -> list[User]:
    """Case-insensitive partial nickname match for autocomplete."""
    if not query or len(query) < MIN_SEARCH_LENGTH:
        return []
    # Wildcards in the query match literally
    pattern = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    result = await db.execute(
        select(User)
        .where(User.nickname.ilike(f"%{pattern}%", escape="\\"))
        .order_by(User.nickname)
        .limit(limit)
    )
    return list(result.scalars().all())


async def send_friend_request(
    db: AsyncSession, user_id: uuid.UUID, nickname: str
) -> Friendship:
    target = await search_user_by_nickname(db, nickname)
    if target is None:
        raise NotFoundError("User not found")
    return await send_friend_request_by_id(db, user_id, target.id)


async def send_friend_request_by_id(
    db: AsyncSession, user_id: uuid.UUID, friend_id: uuid.UUID
) -> Friendship:
    if friend_id == user_id:
        raise ValidationError("Cannot add yourself as a friend")

    if await db.get(User, friend_id) is None:
        raise NotFoundError("User not found")

    result = await db.execute(select(Friendship).where(_between(user_id, friend_id)))
    existing = result.scalars().all()
    if any(f.status == "accepted" for f in existing):
        raise AlreadyFriendsError()
    if existing:
        raise FriendRequestExistsError()

    friendship = Friendship(user_id=user_id, friend_id=friend_id, status="pending")
    db.add(friendship)
    await db.flush()
    await db.refresh(friendship)
    return friendship


async def accept_friend_request(
    db: AsyncSession, user_id: uuid.UUID, request_id: uuid.UUID
) -> Friendship:
    """Accept a pending request addressed to ``user_id`` and add the reverse row."""
    request = await db.get(Friendship, request_id)
    if request is None or request.friend_id != user_id:
        raise NotFoundError("Request not found")

    request.status = "accepted"

    reverse = await db.execute(
        select(Friendship).where(
            Friendship.user_id == request.friend_id,
            Friendship.friend_id == request.user_id,
        )
    )
    reverse_row = reverse.scalar_one_or_none()
    if reverse_row is None:
        db.add(
            Friendship(
                user_id=request.friend_id,
                friend_id=request.user_id,
                status="accepted",
            )
        )
    else:
        reverse_row.status = "accepted"

    await db.flush()
    return request


async def decline_friend_request(
    db: AsyncSession, user_id: uuid.UUID, request_id: uuid.UUID
) -> None:
    """Either party may drop a pending request (decline or cancel)."""
    request = await db.get(Friendship, request_id)
    if request is None or user_id not in (request.user_id, request.friend_id):
        raise NotFoundError("Request not found")
    if request.status != "pending":
        raise ValidationError("Request already accepted")
    await db.delete(request)
    await db.flush()


async def remove_friend(
    db: AsyncSession, user_id: uuid.UUID, friend_id: uuid.UUID
) -> int:
    """Hard-delete the friendship in both directions. Returns rows removed."""
    result = await db.execute(delete(Friendship).where(_between(user_id, friend_id)))
    logger.info(
        "Removed %d friendship rows between %s and %s", result.rowcount, user_id, friend_id
    )
    if result.rowcount == 0:
        raise NotFoundError("Friendship not found")
    return result.rowcount


async def get_pending_requests(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    """Requests sent to ``user_id`` that are still pending."""
    result = await db.execute(
        select(Friendship, User)
        .join(User, User.id == Friendship.user_id)
        .where(Friendship.friend_id == user_id, Friendship.status == "pending")
        .order_by(Friendship.created_at.desc())
    )
    return [_request_dict(f, other) for f, other in result.all()]


async def get_sent_requests(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    result = await db.execute(
        select(Friendship, User)
        .join(User, User.id == Friendship.friend_id)
        .where(Friendship.user_id == user_id, Friendship.status == "pending")
        .order_by(Friendship.created_at.desc())
    )
    return [_request_dict(f, other) for f, other in result.all()]


def _request_dict(friendship: Friendship, other: User) -> dict:
    return {
        "id": friendship.id,
        "user_id": friendship.user_id,
        "friend_id": friendship.friend_id,
        "status": friendship.status,
        "created_at": friendship.created_at,
        "user": other,
    }


async def get_pending_request_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(Friendship.id)).where(
            Friendship.friend_id == user_id,
            Friendship.status == "pending",
        )
    )
    return result.scalar_one()


async def get_friends(db: AsyncSession, user_id: uuid.UUID) -> list[User]:
    """Accepted friends of ``user_id``."""
    result = await db.execute(
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id, Friendship.status == "accepted")
        .order_by(User.nickname)
    )
    return list(result.scalars().all())

