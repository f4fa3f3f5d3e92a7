import calendar
import math
import uuid
from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.config import settings
from friendspo.errors import ValidationError
from friendspo.models.session import Session
from friendspo.schemas.stats import CalendarDay, StatsSnapshot
from friendspo.services import session_service
from friendspo.services.session_service import ensure_aware

WEEK = timedelta(days=7)
MONTH = timedelta(days=30)
MIN_REGULARITY_SESSIONS = 3


def resolve_timezone(name: str | None = None) -> tzinfo:
    """Map an IANA zone name to tzinfo, falling back to DEFAULT_TIMEZONE."""
    name = name or settings.DEFAULT_TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}") from exc


def _local_date(dt: datetime, tz: tzinfo) -> date:
    return ensure_aware(dt).astimezone(tz).date()


def month_bounds(year: int, month: int, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open [first instant of month, first instant of next month) in tz."""
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return start, end


# --- pure calculations ---


def calculate_stats(
    sessions: list[Session],
    *,
    streak: int = 0,
    regularity_score: int = 0,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
) -> StatsSnapshot:
    """Aggregate closed sessions into a snapshot.

    Streak and regularity are computed over their own history windows, so the
    caller passes them in rather than having them derived from ``sessions``.
    """
    if not sessions:
        return StatsSnapshot()

    now = now or datetime.now(timezone.utc)
    week_ago = now - WEEK
    month_ago = now - MONTH

    durations = [s.duration or 0 for s in sessions]
    weekly = [s for s in sessions if ensure_aware(s.started_at) >= week_ago]
    monthly = [s for s in sessions if ensure_aware(s.started_at) >= month_ago]

    hour_counts = Counter(ensure_aware(s.started_at).astimezone(tz).hour for s in sessions)
    most_active_hour, best = 0, 0
    for hour in sorted(hour_counts):
        if hour_counts[hour] > best:
            most_active_hour, best = hour, hour_counts[hour]

    return StatsSnapshot(
        total_sessions=len(sessions),
        average_duration=sum(durations) // len(sessions),
        longest_session=max(durations),
        shortest_session=min(durations),
        current_streak=streak,
        total_time_this_week=sum(s.duration or 0 for s in weekly),
        total_time_this_month=sum(s.duration or 0 for s in monthly),
        most_active_hour=most_active_hour,
        weekly_session_count=len(weekly),
        monthly_session_count=len(monthly),
        regularity_score=regularity_score,
        regularity_label=get_regularity_label(regularity_score),
    )


def calculate_streak(
    sessions: list[Session],
    *,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    lookback_days: int = 365,
) -> int:
    """Consecutive active local days counted backward from today.

    An empty today does not break the streak (the user may not have logged
    yet); any other empty day ends it.
    """
    if not sessions:
        return 0

    now = now or datetime.now(timezone.utc)
    active_days = {_local_date(s.started_at, tz) for s in sessions}
    today = now.astimezone(tz).date()

    streak = 0
    for offset in range(lookback_days):
        if today - timedelta(days=offset) in active_days:
            streak += 1
        elif offset > 0:
            break
    return streak


def get_calendar_data(
    sessions: list[Session], year: int, month: int, *, tz: tzinfo = timezone.utc
) -> list[CalendarDay]:
    """One entry per day of ``month`` (1-12), in date order."""
    counts = Counter(_local_date(s.started_at, tz) for s in sessions)
    _, days_in_month = calendar.monthrange(year, month)

    days = []
    for day in range(1, days_in_month + 1):
        current = date(year, month, day)
        count = counts.get(current, 0)
        days.append(CalendarDay(date=current, has_sessions=count > 0, session_count=count))
    return days


def calculate_regularity_score(sessions: list[Session]) -> int:
    """0-100 score from the coefficient of variation of gaps between sessions."""
    if len(sessions) < MIN_REGULARITY_SESSIONS:
        return 0

    starts = sorted((ensure_aware(s.started_at) for s in sessions), reverse=True)
    gaps = [
        (starts[i - 1] - starts[i]).total_seconds() / 3600
        for i in range(1, len(starts))
    ]

    mean = sum(gaps) / len(gaps)
    variance = sum((gap - mean) ** 2 for gap in gaps) / len(gaps)
    std_dev = math.sqrt(variance)

    cv = 1 if mean == 0 else std_dev / mean
    score = max(0.0, min(100.0, 100 - cv * 50))
    # Half-up, not banker's rounding
    return int(math.floor(score + 0.5))


def get_regularity_label(score: int) -> str:
    if score >= 80:
        return "Very Regular"
    if score >= 60:
        return "Somewhat Regular"
    if score >= 40:
        return "Irregular"
    return "Very Irregular"


def format_duration(seconds: int) -> str:
    minutes, remaining = divmod(seconds, 60)
    if minutes == 0:
        return f"{remaining}s"
    return f"{minutes}m {remaining}s"


# --- store-backed entry points ---


async def get_streak(
    db: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> int:
    now = now or datetime.now(timezone.utc)
    tz = tz or resolve_timezone()
    since = now - timedelta(days=settings.STREAK_LOOKBACK_DAYS)
    sessions = await session_service.fetch_closed_sessions_since(db, user_id, since)
    return calculate_streak(
        sessions, now=now, tz=tz, lookback_days=settings.STREAK_LOOKBACK_DAYS
    )


async def get_regularity_score(db: AsyncSession, user_id: uuid.UUID) -> int:
    sessions = await session_service.fetch_closed_sessions(
        db, user_id, limit=settings.REGULARITY_SAMPLE_SIZE
    )
    return calculate_regularity_score(sessions)


async def get_stats(
    db: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> StatsSnapshot:
    now = now or datetime.now(timezone.utc)
    tz = tz or resolve_timezone()

    sessions = await session_service.fetch_closed_sessions(
        db, user_id, limit=settings.STATS_HISTORY_LIMIT
    )
    if not sessions:
        return StatsSnapshot()

    streak = await get_streak(db, user_id, now=now, tz=tz)
    regularity = await get_regularity_score(db, user_id)
    return calculate_stats(
        sessions, streak=streak, regularity_score=regularity, now=now, tz=tz
    )


async def get_calendar(
    db: AsyncSession,
    user_id: uuid.UUID,
    year: int,
    month: int,
    tz: tzinfo | None = None,
) -> list[CalendarDay]:
    tz = tz or resolve_timezone()
    start, end = month_bounds(year, month, tz)
    sessions = await session_service.fetch_sessions_in_range(
        db, user_id, start.astimezone(timezone.utc), end.astimezone(timezone.utc)
    )
    return get_calendar_data(sessions, year, month, tz=tz)
