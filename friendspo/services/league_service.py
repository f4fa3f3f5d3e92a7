import logging
import random
import re
import secrets
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.errors import AlreadyMemberError, NotFoundError, ValidationError
from friendspo.models.league import League
from friendspo.models.league_member import LeagueMember

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_system_random = secrets.SystemRandom()


def generate_league_code(name: str, rng: random.Random = _system_random) -> str:
    """Join code like ``RUNN-4821``: up to 4 letters of the name plus 4 digits.

    Codes are not retried on collision; the unique index on leagues.code
    rejects the insert instead.
    """
    prefix = _NON_ALNUM.sub("", name).upper()[:4]
    return f"{prefix}-{rng.randint(1000, 9999)}"


async def get_my_leagues(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    """Leagues the user belongs to, with member counts."""
    result = await db.execute(
        select(League, func.count(LeagueMember.id).label("member_count"))
        .join(LeagueMember, LeagueMember.league_id == League.id)
        .where(
            League.id.in_(
                select(LeagueMember.league_id).where(LeagueMember.user_id == user_id)
            )
        )
        .group_by(League.id)
        .order_by(League.created_at)
    )
    return [_league_dict(league, member_count) for league, member_count in result.all()]


def _league_dict(league: League, member_count: int) -> dict:
    return {
        "id": league.id,
        "name": league.name,
        "description": league.description,
        "code": league.code,
        "created_by": league.created_by,
        "created_at": league.created_at,
        "member_count": member_count,
    }


async def create_league(
    db: AsyncSession,
    name: str,
    description: str | None,
    creator_id: uuid.UUID,
    rng: random.Random = _system_random,
) -> dict:
    """Create a league and enrol its creator."""
    name = name.strip()
    if not name:
        raise ValidationError("League name cannot be empty")

    league = League(
        name=name,
        description=description,
        code=generate_league_code(name, rng),
        created_by=creator_id,
    )
    db.add(league)
    await db.flush()
    await db.refresh(league)

    await join_league(db, league.id, creator_id)
    logger.info("League %s created with code %s", league.id, league.code)
    return _league_dict(league, 1)


async def join_league_by_code(
    db: AsyncSession, code: str, user_id: uuid.UUID
) -> League:
    result = await db.execute(select(League).where(League.code == code.strip().upper()))
    league = result.scalar_one_or_none()
    if league is None:
        raise NotFoundError("League not found with this code")

    await join_league(db, league.id, user_id)
    return league


async def join_league(db: AsyncSession, league_id: uuid.UUID, user_id: uuid.UUID) -> None:
    if await db.get(League, league_id) is None:
        raise NotFoundError("League not found")
    if await is_member(db, league_id, user_id):
        raise AlreadyMemberError()

    db.add(LeagueMember(league_id=league_id, user_id=user_id))
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise AlreadyMemberError() from exc


async def is_member(db: AsyncSession, league_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(LeagueMember.id).where(
            LeagueMember.league_id == league_id,
            LeagueMember.user_id == user_id,
        )
    )
    return result.first() is not None
