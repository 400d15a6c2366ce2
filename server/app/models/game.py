from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time import utcnow
from app.models.base import Base


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    OUT_OF_CATALOG = "out_of_catalog"
    EXPIRED_LICENSE = "expired_license"
    ABANDONWARE = "abandonware"
    PUBLIC_DOMAIN = "public_domain"
    DISCONTINUED = "discontinued"
    RERELEASED = "rereleased"


class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), index=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    release_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    availability_status: Mapped[str] = mapped_column(
        String(20), default=AvailabilityStatus.ABANDONWARE.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    rerelease_request: Mapped["RereleaseRequest | None"] = relationship(
        "RereleaseRequest",
        back_populates="game",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
