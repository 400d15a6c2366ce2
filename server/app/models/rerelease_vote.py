from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time import utcnow
from app.models.base import Base


class RereleaseVote(Base):
    """One row per (request, user). The composite primary key is the uniqueness guarantee."""

    __tablename__ = "rerelease_votes"

    request_id: Mapped[int] = mapped_column(
        ForeignKey("rerelease_requests.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    vote_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    request: Mapped["RereleaseRequest"] = relationship(
        "RereleaseRequest", back_populates="votes"
    )
    user: Mapped["User"] = relationship("User", back_populates="rerelease_votes")
