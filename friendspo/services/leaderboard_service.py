import enum
import uuid
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.models.league_member import LeagueMember
from friendspo.models.session import Session
from friendspo.models.user import User
from friendspo.schemas.stats import LeaderboardUser, LeagueMemberStats, RankedEntry, StatsSnapshot
from friendspo.services import friend_service, stats_service


class LeaderboardCategory(enum.Enum):
    """Ranking metric. Each member knows how to score a snapshot and which way to sort."""

    STREAK = "streak"
    SPEED = "speed"
    ACTIVITY = "activity"
    CONSISTENCY = "consistency"

    @property
    def score(self) -> Callable[[StatsSnapshot], int]:
        return _SCORERS[self]

    @property
    def lower_is_better(self) -> bool:
        return self is LeaderboardCategory.SPEED


_SCORERS: dict[LeaderboardCategory, Callable[[StatsSnapshot], int]] = {
    LeaderboardCategory.STREAK: lambda stats: stats.current_streak,
    LeaderboardCategory.SPEED: lambda stats: stats.average_duration,
    LeaderboardCategory.ACTIVITY: lambda stats: stats.weekly_session_count,
    LeaderboardCategory.CONSISTENCY: lambda stats: stats.regularity_score,
}


def rank_competitors(
    competitors: list[tuple[User, StatsSnapshot]],
    category: LeaderboardCategory,
) -> list[RankedEntry]:
    """Score, sort (stable) and number competitors 1..N without shared ranks."""
    scored = [(user, category.score(stats)) for user, stats in competitors]

    if category.lower_is_better:
        # Zero means no sessions yet; those rank last
        scored.sort(key=lambda item: (item[1] == 0, item[1]))
    else:
        scored.sort(key=lambda item: item[1], reverse=True)

    return [
        RankedEntry(
            user=LeaderboardUser.model_validate(user),
            score=score,
            rank=position,
        )
        for position, (user, score) in enumerate(scored, start=1)
    ]


async def get_friends_leaderboard(
    db: AsyncSession,
    user_id: uuid.UUID,
    category: LeaderboardCategory,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[RankedEntry]:
    """Rank the user's accepted friends and the user themself."""
    now = now or datetime.now(timezone.utc)

    competitors: list[User] = list(await friend_service.get_friends(db, user_id))
    me = await db.get(User, user_id)
    if me is not None:
        competitors.append(me)

    if not competitors:
        return []

    # One AsyncSession cannot run queries concurrently
    scored = []
    for user in competitors:
        stats = await stats_service.get_stats(db, user.id, now=now, tz=tz)
        scored.append((user, stats))

    return rank_competitors(scored, category)


async def get_league_leaderboard(
    db: AsyncSession, league_id: uuid.UUID
) -> list[LeagueMemberStats]:
    """All-time session count and minutes per member, most sessions first.

    Only the session count orders the board; minutes are reported but do
    not break ties.
    """
    members_result = await db.execute(
        select(User.id, User.nickname)
        .join(LeagueMember, LeagueMember.user_id == User.id)
        .where(LeagueMember.league_id == league_id)
        .order_by(LeagueMember.joined_at)
    )
    members = members_result.all()
    if not members:
        return []

    member_ids = [row.id for row in members]
    sessions_result = await db.execute(
        select(Session.user_id, Session.duration, Session.started_at).where(
            Session.user_id.in_(member_ids),
            Session.ended_at.is_not(None),
        )
    )

    board = {
        row.id: LeagueMemberStats(user_id=row.id, nickname=row.nickname or "Unknown")
        for row in members
    }
    for member_id, duration, started_at in sessions_result.all():
        entry = board[member_id]
        entry.total_sessions += 1
        entry.total_minutes += (duration or 0) // 60
        if entry.last_session_at is None or started_at > entry.last_session_at:
            entry.last_session_at = started_at

    return sorted(board.values(), key=lambda e: e.total_sessions, reverse=True)
