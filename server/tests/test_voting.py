"""Tests for the re-release vote orchestrator and ledger."""

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.game import Game
from app.models.rerelease_request import RereleaseRequest, RereleaseStatus
from app.models.rerelease_vote import RereleaseVote
from app.models.user import User
from app.services import vote as vote_service
from app.services.game import GameNotFoundError
from app.services.rerelease import InvalidStateError, archive_request, fulfill_request
from app.services.vote import (
    DuplicateVoteError,
    StorageConflictError,
    VoteNotFoundError,
    cast_vote,
    get_vote,
    has_voted,
    is_transient_conflict,
    remove_vote,
    update_vote_comment,
)


def _ledger_count(db: Session, request_id: int) -> int:
    return (
        db.query(func.count())
        .select_from(RereleaseVote)
        .filter(RereleaseVote.request_id == request_id)
        .scalar()
    )


def _locked_error() -> OperationalError:
    return OperationalError("UPDATE rerelease_requests", {}, Exception("database is locked"))


class TestCastVote:
    def test_first_vote_creates_active_request(self, db: Session, test_game: Game, test_user: User):
        assert db.query(RereleaseRequest).count() == 0

        rerelease = cast_vote(db, test_game.id, test_user.id)

        assert rerelease.game_id == test_game.id
        assert rerelease.status == RereleaseStatus.ACTIVE.value
        assert rerelease.total_votes == 1
        assert db.query(RereleaseRequest).count() == 1

    def test_vote_records_comment(self, db: Session, test_game: Game, test_user: User):
        cast_vote(db, test_game.id, test_user.id, comment="Please port this to modern PCs")
        vote = get_vote(db, test_game.id, test_user.id)
        assert vote is not None
        assert vote.comment == "Please port this to modern PCs"
        assert vote.vote_date is not None

    def test_different_users_accumulate(
        self, db: Session, test_game: Game, test_user: User, other_user: User
    ):
        cast_vote(db, test_game.id, test_user.id)
        rerelease = cast_vote(db, test_game.id, other_user.id)
        assert rerelease.total_votes == 2
        assert _ledger_count(db, rerelease.id) == 2

    def test_duplicate_vote_rejected_without_mutation(
        self, db: Session, test_game: Game, test_user: User
    ):
        cast_vote(db, test_game.id, test_user.id, comment="first")

        with pytest.raises(DuplicateVoteError):
            cast_vote(db, test_game.id, test_user.id, comment="second")

        rerelease = db.query(RereleaseRequest).filter_by(game_id=test_game.id).one()
        assert rerelease.total_votes == 1
        assert _ledger_count(db, rerelease.id) == 1
        assert get_vote(db, test_game.id, test_user.id).comment == "first"

    def test_unknown_game_raises_not_found(self, db: Session, test_user: User):
        with pytest.raises(GameNotFoundError):
            cast_vote(db, 99999, test_user.id)
        assert db.query(RereleaseRequest).count() == 0

    def test_vote_on_fulfilled_request_rejected(
        self, db: Session, test_game: Game, test_user: User, other_user: User
    ):
        rerelease = cast_vote(db, test_game.id, test_user.id)
        fulfill_request(db, rerelease)

        with pytest.raises(InvalidStateError):
            cast_vote(db, test_game.id, other_user.id)

        db.refresh(rerelease)
        assert rerelease.total_votes == 1
        assert _ledger_count(db, rerelease.id) == 1

    def test_vote_on_archived_request_rejected(
        self, db: Session, test_game: Game, test_user: User, other_user: User
    ):
        rerelease = cast_vote(db, test_game.id, test_user.id)
        archive_request(db, rerelease)

        with pytest.raises(InvalidStateError):
            cast_vote(db, test_game.id, other_user.id)

        db.refresh(rerelease)
        assert rerelease.total_votes == 1

    def test_existing_request_is_reused(self, db: Session, test_game: Game, test_user: User):
        existing = RereleaseRequest(game_id=test_game.id)
        db.add(existing)
        db.commit()

        rerelease = cast_vote(db, test_game.id, test_user.id)
        assert rerelease.id == existing.id
        assert db.query(RereleaseRequest).count() == 1


class TestRemoveVote:
    def test_remove_vote_decrements(
        self, db: Session, test_game: Game, test_user: User, other_user: User
    ):
        cast_vote(db, test_game.id, test_user.id)
        cast_vote(db, test_game.id, other_user.id)

        rerelease = remove_vote(db, test_game.id, test_user.id)

        assert rerelease.total_votes == 1
        assert has_voted(db, test_game.id, test_user.id) is False
        assert has_voted(db, test_game.id, other_user.id) is True

    def test_remove_vote_not_voted(
        self, db: Session, test_game: Game, test_user: User, other_user: User
    ):
        cast_vote(db, test_game.id, test_user.id)
        with pytest.raises(VoteNotFoundError):
            remove_vote(db, test_game.id, other_user.id)

    def test_remove_vote_without_request(self, db: Session, test_game: Game, test_user: User):
        with pytest.raises(VoteNotFoundError):
            remove_vote(db, test_game.id, test_user.id)

    def test_remove_vote_on_fulfilled_request_rejected(
        self, db: Session, test_game: Game, test_user: User
    ):
        rerelease = cast_vote(db, test_game.id, test_user.id)
        fulfill_request(db, rerelease)

        with pytest.raises(InvalidStateError):
            remove_vote(db, test_game.id, test_user.id)

        db.refresh(rerelease)
        assert rerelease.total_votes == 1
        assert has_voted(db, test_game.id, test_user.id) is True

    def test_revote_after_removal(self, db: Session, test_game: Game, test_user: User):
        cast_vote(db, test_game.id, test_user.id)
        remove_vote(db, test_game.id, test_user.id)
        rerelease = cast_vote(db, test_game.id, test_user.id)
        assert rerelease.total_votes == 1

    def test_counter_clamped_at_zero(self, db: Session, test_game: Game, test_user: User):
        """A drifted counter of 0 must not go to -1 when a vote is removed."""
        rerelease = cast_vote(db, test_game.id, test_user.id)
        rerelease.total_votes = 0
        db.commit()

        rerelease = remove_vote(db, test_game.id, test_user.id)
        assert rerelease.total_votes == 0


class TestVoteLedger:
    def test_has_voted(self, db: Session, test_game: Game, test_user: User):
        assert has_voted(db, test_game.id, test_user.id) is False
        cast_vote(db, test_game.id, test_user.id)
        assert has_voted(db, test_game.id, test_user.id) is True

    def test_get_vote_unknown_game(self, db: Session, test_user: User):
        assert get_vote(db, 99999, test_user.id) is None

    def test_update_comment_keeps_counter(self, db: Session, test_game: Game, test_user: User):
        cast_vote(db, test_game.id, test_user.id, comment="old")
        vote = update_vote_comment(db, test_game.id, test_user.id, "new")
        assert vote.comment == "new"
        rerelease = db.query(RereleaseRequest).filter_by(game_id=test_game.id).one()
        assert rerelease.total_votes == 1

    def test_update_comment_requires_vote(self, db: Session, test_game: Game, test_user: User):
        with pytest.raises(VoteNotFoundError):
            update_vote_comment(db, test_game.id, test_user.id, "hello")

    def test_update_comment_on_archived_request(
        self, db: Session, test_game: Game, test_user: User
    ):
        rerelease = cast_vote(db, test_game.id, test_user.id)
        archive_request(db, rerelease)
        with pytest.raises(InvalidStateError):
            update_vote_comment(db, test_game.id, test_user.id, "hello")


class TestRetryPolicy:
    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        monkeypatch.setattr(vote_service.time, "sleep", lambda _seconds: None)

    def test_transient_conflict_is_retried(
        self, db: Session, test_game: Game, test_user: User, monkeypatch
    ):
        real_attempt = vote_service._cast_vote_once
        calls = {"n": 0}

        def flaky(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] < 3:
                raise _locked_error()
            return real_attempt(*args, **kwargs)

        monkeypatch.setattr(vote_service, "_cast_vote_once", flaky)

        rerelease = cast_vote(db, test_game.id, test_user.id)
        assert calls["n"] == 3
        assert rerelease.total_votes == 1

    def test_retries_exhausted_raise_storage_conflict(
        self, db: Session, test_game: Game, test_user: User, monkeypatch
    ):
        calls = {"n": 0}

        def always_locked(*args, **kwargs):
            calls["n"] += 1
            raise _locked_error()

        monkeypatch.setattr(vote_service, "_remove_vote_once", always_locked)

        with pytest.raises(StorageConflictError):
            remove_vote(db, test_game.id, test_user.id)
        assert calls["n"] == 3

    def test_non_transient_error_propagates(
        self, db: Session, test_game: Game, test_user: User, monkeypatch
    ):
        calls = {"n": 0}

        def broken(*args, **kwargs):
            calls["n"] += 1
            raise OperationalError("SELECT", {}, Exception("no such table: games"))

        monkeypatch.setattr(vote_service, "_cast_vote_once", broken)

        with pytest.raises(OperationalError):
            cast_vote(db, test_game.id, test_user.id)
        assert calls["n"] == 1

    def test_duplicate_vote_not_retried(
        self, db: Session, test_game: Game, test_user: User, monkeypatch
    ):
        cast_vote(db, test_game.id, test_user.id)
        real_attempt = vote_service._cast_vote_once
        calls = {"n": 0}

        def counting(*args, **kwargs):
            calls["n"] += 1
            return real_attempt(*args, **kwargs)

        monkeypatch.setattr(vote_service, "_cast_vote_once", counting)

        with pytest.raises(DuplicateVoteError):
            cast_vote(db, test_game.id, test_user.id)
        assert calls["n"] == 1


class TestTransientClassification:
    def test_sqlite_locked(self):
        assert is_transient_conflict(_locked_error()) is True

    def test_postgres_serialization_failure(self):
        class PgError(Exception):
            sqlstate = "40001"

        assert is_transient_conflict(OperationalError("UPDATE", {}, PgError())) is True

    def test_postgres_deadlock(self):
        class PgError(Exception):
            sqlstate = "40P01"

        assert is_transient_conflict(OperationalError("UPDATE", {}, PgError())) is True

    def test_other_errors_not_transient(self):
        error = OperationalError("SELECT", {}, Exception("connection refused"))
        assert is_transient_conflict(error) is False


class TestVotingScenarios:
    """The canonical vote / duplicate / unvote / fulfill walkthrough for one game."""

    def test_walkthrough(self, db: Session, make_game, test_user: User, other_user: User):
        game = make_game("Outlaws", id=42, slug="outlaws")
        third = User(username="thirduser", password_hash="x", role="user")
        db.add(third)
        db.commit()

        # 1. first vote creates the request
        assert cast_vote(db, game.id, test_user.id).total_votes == 1

        # 2. same user again is rejected
        with pytest.raises(DuplicateVoteError):
            cast_vote(db, game.id, test_user.id)
        assert db.query(RereleaseRequest).filter_by(game_id=42).one().total_votes == 1

        # 3. another user succeeds
        assert cast_vote(db, game.id, other_user.id).total_votes == 2

        # 4. unvote then re-vote
        assert remove_vote(db, game.id, test_user.id).total_votes == 1
        rerelease = cast_vote(db, game.id, test_user.id)
        assert rerelease.total_votes == 2
        remove_vote(db, game.id, test_user.id)

        # 5. fulfilled requests reject new votes
        rerelease = db.query(RereleaseRequest).filter_by(game_id=42).one()
        fulfill_request(db, rerelease)
        with pytest.raises(InvalidStateError):
            cast_vote(db, game.id, third.id)
        db.refresh(rerelease)
        assert rerelease.total_votes == 1
        assert _ledger_count(db, rerelease.id) == 1
