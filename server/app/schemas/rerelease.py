"""Pydantic schemas for re-release requests and voting."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.core.validation import normalize_text
from app.models.rerelease_request import RereleaseStatus

MAX_COMMENT_LENGTH = 1000


class VoteCreate(BaseModel):
    comment: str | None = Field(None, max_length=MAX_COMMENT_LENGTH)

    @field_validator("comment")
    @classmethod
    def normalize_comment(cls, v: str | None) -> str | None:
        return normalize_text(v)


class VoteResponse(BaseModel):
    status: str
    total_votes: int
    has_voted: bool


class VoteStatusResponse(BaseModel):
    has_voted: bool
    total_votes: int
    comment: str | None = None


class VoteOut(BaseModel):
    request_id: int
    user_id: int
    comment: str | None
    vote_date: datetime

    class Config:
        from_attributes = True


class VoterOut(BaseModel):
    user_id: int
    username: str
    comment: str | None
    vote_date: datetime


class RereleaseCreate(BaseModel):
    game_id: int = Field(..., gt=0)


class RereleaseFulfill(BaseModel):
    fulfilled_date: date | None = None


class RereleaseOut(BaseModel):
    id: int
    game_id: int
    game_title: str
    total_votes: int
    status: RereleaseStatus
    fulfilled_date: date | None
    created_at: datetime


class RereleaseDetailOut(RereleaseOut):
    voters: list[VoterOut] = []


class MostVotedEntry(BaseModel):
    request_id: int
    game_id: int
    game_title: str
    total_votes: int
    status: RereleaseStatus


class RereleasePage(BaseModel):
    items: list[RereleaseOut]
    total: int
    page: int
    limit: int
