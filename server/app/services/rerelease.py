"""Re-release request registry: lifecycle, leaderboard and admin maintenance."""

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.time import utcnow, utctoday
from app.models.game import AvailabilityStatus, Game
from app.models.rerelease_request import RereleaseRequest, RereleaseStatus
from app.models.rerelease_vote import RereleaseVote
from app.services.game import GameNotFoundError, get_game

logger = logging.getLogger(__name__)

# Valid state transitions for re-release requests; fulfilled and archived are terminal
VALID_TRANSITIONS: dict[RereleaseStatus, set[RereleaseStatus]] = {
    RereleaseStatus.ACTIVE: {RereleaseStatus.FULFILLED, RereleaseStatus.ARCHIVED},
    RereleaseStatus.FULFILLED: set(),
    RereleaseStatus.ARCHIVED: set(),
}

# Statuses shown on the public leaderboard
RANKED_STATUSES = (RereleaseStatus.ACTIVE.value, RereleaseStatus.FULFILLED.value)

# A game moving into one of these counts as re-released
RELEASED_AVAILABILITY = {AvailabilityStatus.AVAILABLE, AvailabilityStatus.RERELEASED}


class RereleaseNotFoundError(Exception):
    """Raised when a re-release request does not exist."""


class RequestExistsError(Exception):
    """Raised when a game already has a re-release request."""


class InvalidStateError(ValueError):
    """Raised when an operation is not allowed in the request's current status."""


def get_request(db: Session, request_id: int) -> RereleaseRequest | None:
    return db.get(RereleaseRequest, request_id)


def get_request_for_game(db: Session, game_id: int) -> RereleaseRequest | None:
    return db.query(RereleaseRequest).filter(RereleaseRequest.game_id == game_id).first()


def create_request(db: Session, game_id: int) -> RereleaseRequest:
    """Explicitly open a re-release request for a game.

    Raises:
        GameNotFoundError: If the game does not exist.
        RequestExistsError: If the game already has a request, in any status.
    """
    if get_game(db, game_id) is None:
        raise GameNotFoundError
    if get_request_for_game(db, game_id) is not None:
        raise RequestExistsError

    rerelease = RereleaseRequest(game_id=game_id)
    db.add(rerelease)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise RequestExistsError from None
    db.refresh(rerelease)
    return rerelease


def get_or_create_request_for_game(db: Session, game_id: int) -> RereleaseRequest:
    """
    Return the game's request, creating an active one if none exists.
    The new row is flushed, not committed, so it joins the caller's transaction.
    Must run before any other pending writes: losing the creation race rolls back
    the session before re-reading the winner's row.
    """
    existing = get_request_for_game(db, game_id)
    if existing:
        return existing

    rerelease = RereleaseRequest(
        game_id=game_id, total_votes=0, status=RereleaseStatus.ACTIVE.value
    )
    db.add(rerelease)
    try:
        db.flush()
    except IntegrityError:
        # Unique game_id: a concurrent first vote created it
        db.rollback()
        existing = get_request_for_game(db, game_id)
        if existing is None:
            raise
        return existing
    return rerelease


def list_most_voted(db: Session, limit: int = 20, offset: int = 0) -> list[RereleaseRequest]:
    """
    Leaderboard of active and fulfilled requests, most votes first.
    Ties are broken by ascending id so equal counts keep a stable order across calls.
    """
    return (
        db.query(RereleaseRequest)
        .options(joinedload(RereleaseRequest.game))
        .filter(RereleaseRequest.status.in_(RANKED_STATUSES))
        .order_by(RereleaseRequest.total_votes.desc(), RereleaseRequest.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_requests(
    db: Session,
    status: RereleaseStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[RereleaseRequest], int]:
    """Browse requests in any status, ranked like the leaderboard."""
    query = db.query(RereleaseRequest)
    if status:
        query = query.filter(RereleaseRequest.status == status.value)

    total = query.count()
    items = (
        query.options(joinedload(RereleaseRequest.game))
        .order_by(RereleaseRequest.total_votes.desc(), RereleaseRequest.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def _apply_transition(
    db: Session, rerelease: RereleaseRequest, target: RereleaseStatus, **values
) -> bool:
    """
    Move the request to ``target`` with a compare-and-set on its current status.
    Returns False when the transition is not allowed or the status changed underneath us.
    Does not commit.
    """
    current = RereleaseStatus(rerelease.status)
    if target not in VALID_TRANSITIONS[current]:
        return False

    result = db.execute(
        update(RereleaseRequest)
        .where(RereleaseRequest.id == rerelease.id, RereleaseRequest.status == current.value)
        .values(status=target.value, updated_at=utcnow(), **values)
    )
    return result.rowcount == 1


def _transition(
    db: Session, rerelease: RereleaseRequest, target: RereleaseStatus, **values
) -> RereleaseRequest:
    current = rerelease.status
    if not _apply_transition(db, rerelease, target, **values):
        db.rollback()
        raise InvalidStateError(f"Cannot transition from '{current}' to '{target.value}'")
    db.commit()
    db.refresh(rerelease)
    logger.info("Re-release request %s: %s -> %s", rerelease.id, current, target.value)
    return rerelease


def fulfill_request(
    db: Session, rerelease: RereleaseRequest, fulfilled_date: date | None = None
) -> RereleaseRequest:
    """Mark an active request fulfilled. ``fulfilled_date`` defaults to today (UTC).

    Raises:
        InvalidStateError: If the request is not active.
    """
    return _transition(
        db,
        rerelease,
        RereleaseStatus.FULFILLED,
        fulfilled_date=fulfilled_date or utctoday(),
    )


def archive_request(db: Session, rerelease: RereleaseRequest) -> RereleaseRequest:
    """Archive an active request. Archived requests drop off the leaderboard.

    Raises:
        InvalidStateError: If the request is not active.
    """
    return _transition(db, rerelease, RereleaseStatus.ARCHIVED)


def delete_request(db: Session, rerelease: RereleaseRequest) -> None:
    """Admin removal of a request; its votes cascade."""
    request_id = rerelease.id
    db.delete(rerelease)
    db.commit()
    logger.info("Deleted re-release request %s", request_id)


def recount_votes(db: Session, rerelease: RereleaseRequest) -> RereleaseRequest:
    """Rewrite total_votes from the vote ledger in a single UPDATE."""
    vote_count = (
        select(func.count())
        .select_from(RereleaseVote)
        .where(RereleaseVote.request_id == rerelease.id)
        .scalar_subquery()
    )
    previous = rerelease.total_votes
    db.execute(
        update(RereleaseRequest)
        .where(RereleaseRequest.id == rerelease.id)
        .values(total_votes=vote_count)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(rerelease)
    if rerelease.total_votes != previous:
        logger.warning(
            "Re-release request %s vote counter drifted: %s -> %s",
            rerelease.id,
            previous,
            rerelease.total_votes,
        )
    return rerelease


def update_game_availability(db: Session, game: Game, status: AvailabilityStatus) -> Game:
    """
    Change a game's availability. When the game becomes available or re-released,
    its active re-release request is fulfilled in the same transaction.
    """
    previous = AvailabilityStatus(game.availability_status)
    game.availability_status = status.value

    if status in RELEASED_AVAILABILITY and previous not in RELEASED_AVAILABILITY:
        rerelease = get_request_for_game(db, game.id)
        if rerelease and rerelease.is_active:
            if _apply_transition(
                db, rerelease, RereleaseStatus.FULFILLED, fulfilled_date=utctoday()
            ):
                logger.info(
                    "Game %s is now %s; fulfilled re-release request %s (%s votes)",
                    game.id,
                    status.value,
                    rerelease.id,
                    rerelease.total_votes,
                )

    db.commit()
    db.refresh(game)
    if game.rerelease_request is not None:
        db.refresh(game.rerelease_request)
    return game
