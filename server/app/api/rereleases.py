"""Re-release voting and leaderboard endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, get_existing_request
from app.core.config import get_settings
from app.core.rate_limit import limiter
from app.models.rerelease_request import RereleaseRequest, RereleaseStatus
from app.models.user import User
from app.schemas.rerelease import (
    MostVotedEntry,
    RereleaseCreate,
    RereleaseDetailOut,
    RereleaseOut,
    RereleasePage,
    VoteCreate,
    VoteOut,
    VoteResponse,
    VoteStatusResponse,
    VoterOut,
)
from app.services.game import GameNotFoundError
from app.services.rerelease import (
    InvalidStateError,
    RequestExistsError,
    create_request,
    get_request_for_game,
    list_most_voted,
    list_requests,
)
from app.services.vote import (
    DuplicateVoteError,
    StorageConflictError,
    VoteNotFoundError,
    cast_vote,
    get_vote,
    remove_vote,
    update_vote_comment,
)

router = APIRouter()
settings = get_settings()

NOT_ACCEPTING_VOTES = "This re-release request is no longer accepting votes"
STORAGE_RETRY_AFTER_SECONDS = 1


def serialize_request(rerelease: RereleaseRequest) -> RereleaseOut:
    return RereleaseOut(
        id=rerelease.id,
        game_id=rerelease.game_id,
        game_title=rerelease.game.title,
        total_votes=rerelease.total_votes,
        status=rerelease.status,
        fulfilled_date=rerelease.fulfilled_date,
        created_at=rerelease.created_at,
    )


def _storage_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Your vote could not be recorded right now. Please try again.",
        headers={"Retry-After": str(STORAGE_RETRY_AFTER_SECONDS)},
    )


@router.get("/most-voted", response_model=list[MostVotedEntry])
def most_voted(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[MostVotedEntry]:
    """Leaderboard of active and fulfilled requests by vote count."""
    return [
        MostVotedEntry(
            request_id=rerelease.id,
            game_id=rerelease.game_id,
            game_title=rerelease.game.title,
            total_votes=rerelease.total_votes,
            status=rerelease.status,
        )
        for rerelease in list_most_voted(db, limit=limit, offset=offset)
    ]


@router.get("", response_model=RereleasePage)
def browse_requests(
    status_filter: RereleaseStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1, le=1000),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> RereleasePage:
    items, total = list_requests(db, status=status_filter, page=page, limit=limit)
    return RereleasePage(
        items=[serialize_request(item) for item in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=RereleaseOut, status_code=status.HTTP_201_CREATED)
def open_request(
    payload: RereleaseCreate,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> RereleaseOut:
    """Open a re-release request without voting. Voting opens one implicitly too."""
    try:
        rerelease = create_request(db, payload.game_id)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except RequestExistsError:
        raise HTTPException(
            status_code=409, detail="A re-release request already exists for this game"
        )
    return serialize_request(rerelease)


@router.get("/{request_id}", response_model=RereleaseDetailOut)
def get_request_detail(
    rerelease: RereleaseRequest = Depends(get_existing_request),
) -> RereleaseDetailOut:
    voters = [
        VoterOut(
            user_id=vote.user_id,
            username=vote.user.username,
            comment=vote.comment,
            vote_date=vote.vote_date,
        )
        for vote in rerelease.votes
    ]
    return RereleaseDetailOut(**serialize_request(rerelease).model_dump(), voters=voters)


@router.post(
    "/{game_id}/vote", response_model=VoteResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit(lambda: f"{settings.vote_rate_limit_per_minute}/minute")
def vote_for_rerelease(
    request: Request,
    game_id: int = Path(..., gt=0),
    payload: VoteCreate | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VoteResponse:
    """Vote for a game's re-release. Each user gets one vote per game."""
    comment = payload.comment if payload else None
    try:
        rerelease = cast_vote(db, game_id, current_user.id, comment)
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except DuplicateVoteError:
        raise HTTPException(status_code=409, detail="You have already voted for this game")
    except InvalidStateError:
        raise HTTPException(status_code=410, detail=NOT_ACCEPTING_VOTES)
    except StorageConflictError:
        raise _storage_conflict()

    return VoteResponse(status="voted", total_votes=rerelease.total_votes, has_voted=True)


@router.delete("/{game_id}/vote", response_model=VoteResponse)
@limiter.limit(lambda: f"{settings.vote_rate_limit_per_minute}/minute")
def unvote_rerelease(
    request: Request,
    game_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VoteResponse:
    """Withdraw a vote. The user can vote again later."""
    try:
        rerelease = remove_vote(db, game_id, current_user.id)
    except VoteNotFoundError:
        raise HTTPException(status_code=404, detail="No vote found for this game")
    except InvalidStateError:
        raise HTTPException(status_code=410, detail=NOT_ACCEPTING_VOTES)
    except StorageConflictError:
        raise _storage_conflict()

    return VoteResponse(status="unvoted", total_votes=rerelease.total_votes, has_voted=False)


@router.get("/{game_id}/vote", response_model=VoteStatusResponse)
def my_vote(
    game_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VoteStatusResponse:
    rerelease = get_request_for_game(db, game_id)
    vote = get_vote(db, game_id, current_user.id)
    return VoteStatusResponse(
        has_voted=vote is not None,
        total_votes=rerelease.total_votes if rerelease else 0,
        comment=vote.comment if vote else None,
    )


@router.patch("/{game_id}/vote", response_model=VoteOut)
def edit_vote_comment(
    payload: VoteCreate,
    game_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return update_vote_comment(db, game_id, current_user.id, payload.comment)
    except VoteNotFoundError:
        raise HTTPException(status_code=404, detail="No vote found for this game")
    except InvalidStateError:
        raise HTTPException(status_code=410, detail=NOT_ACCEPTING_VOTES)
