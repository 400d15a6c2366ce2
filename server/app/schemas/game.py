from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.core.validation import normalize_single_line
from app.models.game import AvailabilityStatus


class GameCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    release_date: date | None = None
    availability_status: AvailabilityStatus = AvailabilityStatus.ABANDONWARE

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: str) -> str:
        normalized = normalize_single_line(v)
        if not normalized:
            msg = "Title cannot be blank"
            raise ValueError(msg)
        return normalized


class GameAvailabilityUpdate(BaseModel):
    availability_status: AvailabilityStatus


class GameOut(BaseModel):
    id: int
    title: str
    slug: str
    release_date: date | None
    availability_status: AvailabilityStatus
    created_at: datetime

    class Config:
        from_attributes = True
