"""Vote orchestrator and ledger for re-release requests."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import case, delete, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.rerelease_request import RereleaseRequest, RereleaseStatus
from app.models.rerelease_vote import RereleaseVote
from app.services.game import GameNotFoundError, get_game
from app.services.rerelease import (
    InvalidStateError,
    get_or_create_request_for_game,
    get_request_for_game,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATEs worth retrying: serialization failure, deadlock, lock not available
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


class DuplicateVoteError(Exception):
    """Raised when the user already voted on this request."""


class VoteNotFoundError(Exception):
    """Raised when the user has no vote on the game's request."""


class StorageConflictError(Exception):
    """Raised when transient storage conflicts outlast the retry budget."""


def _find_vote(db: Session, request_id: int, user_id: int) -> RereleaseVote | None:
    return (
        db.query(RereleaseVote)
        .filter(RereleaseVote.request_id == request_id, RereleaseVote.user_id == user_id)
        .first()
    )


def is_transient_conflict(exc: OperationalError) -> bool:
    """Check whether a storage error is a lock/serialization conflict that may succeed on retry."""
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate in TRANSIENT_SQLSTATES:
        return True
    return "database is locked" in str(exc.orig).lower()


def _with_retry(db: Session, operation: str, attempt_fn: Callable[[], T]) -> T:
    """Run one vote transaction, retrying transient storage conflicts with backoff."""
    settings = get_settings()
    max_attempts = settings.vote_max_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            return attempt_fn()
        except OperationalError as e:
            db.rollback()
            if not is_transient_conflict(e):
                raise
            if attempt == max_attempts:
                logger.error("%s failed after %d attempts: %s", operation, max_attempts, e.orig)
                raise StorageConflictError(operation) from e
            backoff = settings.vote_retry_backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "%s hit a storage conflict (attempt %d/%d), retrying in %.2fs",
                operation,
                attempt,
                max_attempts,
                backoff,
            )
            time.sleep(backoff)
    raise StorageConflictError(operation)


def _cast_vote_once(
    db: Session, game_id: int, user_id: int, comment: str | None
) -> RereleaseRequest:
    if get_game(db, game_id) is None:
        raise GameNotFoundError

    rerelease = get_or_create_request_for_game(db, game_id)
    if not rerelease.is_active:
        db.rollback()
        raise InvalidStateError(f"Re-release request is {rerelease.status}")

    existing = _find_vote(db, rerelease.id, user_id)
    if existing is not None:
        db.rollback()
        raise DuplicateVoteError

    try:
        db.add(RereleaseVote(request_id=rerelease.id, user_id=user_id, comment=comment))
        db.flush()  # Force the composite key check before touching the counter
    except IntegrityError:
        # A concurrent vote by the same user won the insert
        db.rollback()
        raise DuplicateVoteError from None

    # Atomic increment, only while the request is still active
    result = db.execute(
        update(RereleaseRequest)
        .where(
            RereleaseRequest.id == rerelease.id,
            RereleaseRequest.status == RereleaseStatus.ACTIVE.value,
        )
        .values(total_votes=RereleaseRequest.total_votes + 1)
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidStateError("Re-release request is no longer active")

    db.commit()
    db.refresh(rerelease)
    return rerelease


def cast_vote(
    db: Session, game_id: int, user_id: int, comment: str | None = None
) -> RereleaseRequest:
    """
    Vote for a game's re-release, creating its request on the first vote.
    Returns the request with the updated total_votes.

    Raises:
        GameNotFoundError: If the game does not exist.
        InvalidStateError: If the request is fulfilled or archived.
        DuplicateVoteError: If the user already voted. Nothing is mutated.
        StorageConflictError: If transient conflicts exhaust the retry budget.
    """
    return _with_retry(
        db, "cast_vote", lambda: _cast_vote_once(db, game_id, user_id, comment)
    )


def _remove_vote_once(db: Session, game_id: int, user_id: int) -> RereleaseRequest:
    rerelease = get_request_for_game(db, game_id)
    if rerelease is None:
        raise VoteNotFoundError
    if not rerelease.is_active:
        raise InvalidStateError(f"Re-release request is {rerelease.status}")

    deleted = db.execute(
        delete(RereleaseVote).where(
            RereleaseVote.request_id == rerelease.id,
            RereleaseVote.user_id == user_id,
        )
    )
    if deleted.rowcount != 1:
        db.rollback()
        raise VoteNotFoundError

    # Atomic decrement, clamped to 0 at SQL level
    result = db.execute(
        update(RereleaseRequest)
        .where(
            RereleaseRequest.id == rerelease.id,
            RereleaseRequest.status == RereleaseStatus.ACTIVE.value,
        )
        .values(
            total_votes=case(
                (RereleaseRequest.total_votes > 0, RereleaseRequest.total_votes - 1),
                else_=0,
            )
        )
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidStateError("Re-release request is no longer active")

    db.commit()
    db.refresh(rerelease)
    return rerelease


def remove_vote(db: Session, game_id: int, user_id: int) -> RereleaseRequest:
    """
    Withdraw the user's vote. The user may vote again afterwards.

    Raises:
        VoteNotFoundError: If the game has no request or the user has no vote on it.
        InvalidStateError: If the request is fulfilled or archived.
        StorageConflictError: If transient conflicts exhaust the retry budget.
    """
    return _with_retry(db, "remove_vote", lambda: _remove_vote_once(db, game_id, user_id))


def get_vote(db: Session, game_id: int, user_id: int) -> RereleaseVote | None:
    """Get the user's vote on the game's request, if any."""
    rerelease = get_request_for_game(db, game_id)
    if rerelease is None:
        return None
    return _find_vote(db, rerelease.id, user_id)


def has_voted(db: Session, game_id: int, user_id: int) -> bool:
    return get_vote(db, game_id, user_id) is not None


def update_vote_comment(
    db: Session, game_id: int, user_id: int, comment: str | None
) -> RereleaseVote:
    """Edit the comment on an existing vote. The counter is untouched.

    Raises:
        VoteNotFoundError: If the user has not voted for this game.
        InvalidStateError: If the request is fulfilled or archived.
    """
    rerelease = get_request_for_game(db, game_id)
    if rerelease is None:
        raise VoteNotFoundError
    if not rerelease.is_active:
        raise InvalidStateError(f"Re-release request is {rerelease.status}")

    vote = _find_vote(db, rerelease.id, user_id)
    if vote is None:
        raise VoteNotFoundError

    vote.comment = comment
    db.commit()
    db.refresh(vote)
    return vote
