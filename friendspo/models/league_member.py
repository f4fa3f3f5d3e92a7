import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from friendspo.models.base import Base


class LeagueMember(Base):
    __tablename__ = "league_members"

    league_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Per-row Python timestamp; members joined in one transaction must stay ordered
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    league: Mapped["League"] = relationship(back_populates="members")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="uq_league_members_pair"),
    )
