"""Admin endpoints for the re-release request lifecycle and game availability."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_admin, get_db, get_existing_game, get_existing_request
from app.api.rereleases import serialize_request
from app.models.game import Game
from app.models.rerelease_request import RereleaseRequest
from app.models.user import User
from app.schemas.game import GameAvailabilityUpdate, GameOut
from app.schemas.rerelease import RereleaseFulfill, RereleaseOut
from app.services.rerelease import (
    InvalidStateError,
    archive_request,
    delete_request,
    fulfill_request,
    recount_votes,
    update_game_availability,
)

router = APIRouter()


@router.post("/{request_id}/fulfill", response_model=RereleaseOut)
def admin_fulfill_request(
    payload: RereleaseFulfill | None = None,
    _admin: User = Depends(get_current_admin),
    rerelease: RereleaseRequest = Depends(get_existing_request),
    db: Session = Depends(get_db),
) -> RereleaseOut:
    fulfilled_date = payload.fulfilled_date if payload else None
    try:
        rerelease = fulfill_request(db, rerelease, fulfilled_date=fulfilled_date)
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return serialize_request(rerelease)


@router.post("/{request_id}/archive", response_model=RereleaseOut)
def admin_archive_request(
    _admin: User = Depends(get_current_admin),
    rerelease: RereleaseRequest = Depends(get_existing_request),
    db: Session = Depends(get_db),
) -> RereleaseOut:
    try:
        rerelease = archive_request(db, rerelease)
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return serialize_request(rerelease)


@router.post("/{request_id}/recount", response_model=RereleaseOut)
def admin_recount_votes(
    _admin: User = Depends(get_current_admin),
    rerelease: RereleaseRequest = Depends(get_existing_request),
    db: Session = Depends(get_db),
) -> RereleaseOut:
    """Rebuild total_votes from the vote ledger."""
    return serialize_request(recount_votes(db, rerelease))


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_request(
    _admin: User = Depends(get_current_admin),
    rerelease: RereleaseRequest = Depends(get_existing_request),
    db: Session = Depends(get_db),
) -> Response:
    delete_request(db, rerelease)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/games/{game_id}/availability", response_model=GameOut)
def admin_update_availability(
    payload: GameAvailabilityUpdate,
    _admin: User = Depends(get_current_admin),
    game: Game = Depends(get_existing_game),
    db: Session = Depends(get_db),
) -> Game:
    """Change a game's availability; becoming available fulfills its active request."""
    return update_game_availability(db, game, payload.availability_status)
