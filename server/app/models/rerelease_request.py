from datetime import date, datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time import utcnow
from app.models.base import Base


class RereleaseStatus(str, Enum):
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    ARCHIVED = "archived"


class RereleaseRequest(Base):
    __tablename__ = "rerelease_requests"
    __table_args__ = (
        CheckConstraint("total_votes >= 0", name="ck_rerelease_total_votes_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # One request per game, enforced in storage so concurrent first votes cannot both create one
    game_id: Mapped[int] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"), unique=True, index=True
    )
    total_votes: Mapped[int] = mapped_column(Integer, default=0, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=RereleaseStatus.ACTIVE.value, index=True
    )
    fulfilled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    game: Mapped["Game"] = relationship("Game", back_populates="rerelease_request")
    votes: Mapped[list["RereleaseVote"]] = relationship(
        "RereleaseVote",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RereleaseVote.vote_date",
    )

    @property
    def is_active(self) -> bool:
        return self.status == RereleaseStatus.ACTIVE.value
