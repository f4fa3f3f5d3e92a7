import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.errors import ActiveSessionExistsError, NotFoundError, ValidationError
from friendspo.models.friendship import Friendship
from friendspo.models.session import Session
from friendspo.models.user import User


def ensure_aware(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


async def fetch_closed_sessions(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 100
) -> list[Session]:
    """Most recent closed sessions first."""
    result = await db.execute(
        select(Session)
        .where(Session.user_id == user_id, Session.ended_at.is_not(None))
        .order_by(Session.started_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def fetch_closed_sessions_since(
    db: AsyncSession, user_id: uuid.UUID, since: datetime
) -> list[Session]:
    result = await db.execute(
        select(Session)
        .where(
            Session.user_id == user_id,
            Session.ended_at.is_not(None),
            Session.started_at >= since,
        )
        .order_by(Session.started_at.desc())
    )
    return list(result.scalars().all())


async def fetch_sessions_in_range(
    db: AsyncSession, user_id: uuid.UUID, start: datetime, end: datetime
) -> list[Session]:
    """Closed sessions with start <= started_at < end."""
    result = await db.execute(
        select(Session)
        .where(
            Session.user_id == user_id,
            Session.ended_at.is_not(None),
            Session.started_at >= start,
            Session.started_at < end,
        )
        .order_by(Session.started_at.desc())
    )
    return list(result.scalars().all())


async def fetch_active_session(db: AsyncSession, user_id: uuid.UUID) -> Session | None:
    result = await db.execute(
        select(Session)
        .where(Session.user_id == user_id, Session.ended_at.is_(None))
        .order_by(Session.started_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def insert_session(
    db: AsyncSession, user_id: uuid.UUID, is_private: bool = False
) -> Session:
    """Start tracking. The partial unique index backs up the pre-check under races."""
    if await fetch_active_session(db, user_id) is not None:
        raise ActiveSessionExistsError()

    session = Session(
        user_id=user_id,
        started_at=datetime.now(timezone.utc),
        is_private=is_private,
    )
    db.add(session)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ActiveSessionExistsError() from exc
    await db.refresh(session)
    return session


async def _get_owned_session(
    db: AsyncSession, user_id: uuid.UUID, session_id: uuid.UUID
) -> Session:
    result = await db.execute(
        select(Session).where(Session.id == session_id, Session.user_id == user_id)
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise NotFoundError("Session not found")
    return session


async def close_session(
    db: AsyncSession,
    user_id: uuid.UUID,
    session_id: uuid.UUID,
    message: str | None = None,
    rating: int | None = None,
) -> Session:
    session = await _get_owned_session(db, user_id, session_id)
    if session.ended_at is not None:
        raise ValidationError("Session already stopped")

    ended_at = datetime.now(timezone.utc)
    elapsed = ended_at - ensure_aware(session.started_at)

    session.ended_at = ended_at
    session.duration = max(0, int(elapsed.total_seconds()))
    if message is not None:
        session.message = message
    if rating is not None:
        session.rating = rating

    await db.flush()
    await db.refresh(session)
    return session


async def update_session_details(
    db: AsyncSession,
    user_id: uuid.UUID,
    session_id: uuid.UUID,
    data: dict,
) -> Session:
    """Attach note, rating or privacy to a stopped session before it shows in feeds."""
    session = await _get_owned_session(db, user_id, session_id)
    if session.ended_at is None:
        raise ValidationError("Stop the session before publishing it")

    # Only fields the caller sent; an explicit null clears the note or rating
    for key, value in data.items():
        setattr(session, key, value)

    await db.flush()
    await db.refresh(session)
    return session


async def delete_session(
    db: AsyncSession, user_id: uuid.UUID, session_id: uuid.UUID
) -> None:
    result = await db.execute(
        delete(Session).where(Session.id == session_id, Session.user_id == user_id)
    )
    if result.rowcount == 0:
        raise NotFoundError("Session not found")


async def fetch_friends_sessions(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 50
) -> list[dict]:
    """Public closed sessions from accepted friends who share, newest first."""
    friend_ids = select(Friendship.friend_id).where(
        Friendship.user_id == user_id,
        Friendship.status == "accepted",
    )
    result = await db.execute(
        select(Session, User.nickname)
        .join(User, User.id == Session.user_id)
        .where(
            Session.user_id.in_(friend_ids),
            Session.ended_at.is_not(None),
            Session.is_private == False,  # noqa: E712
            User.is_sharing_enabled == True,  # noqa: E712
        )
        .order_by(Session.started_at.desc())
        .limit(limit)
    )
    return [
        {
            "id": sess.id,
            "user_id": sess.user_id,
            "nickname": nickname,
            "started_at": sess.started_at,
            "ended_at": sess.ended_at,
            "duration": sess.duration or 0,
            "message": sess.message,
            "rating": sess.rating,
        }
        for sess, nickname in result.all()
    ]
