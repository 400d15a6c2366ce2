"""Game registry: the catalog rows re-release requests hang off."""

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.validation import slugify
from app.models.game import AvailabilityStatus, Game

logger = logging.getLogger(__name__)


class GameNotFoundError(Exception):
    """Raised when a game does not exist."""


class GameExistsError(Exception):
    """Raised when a game with the same slug already exists."""


def get_game(db: Session, game_id: int) -> Game | None:
    return db.get(Game, game_id)


def get_game_by_slug(db: Session, slug: str) -> Game | None:
    return db.query(Game).filter(Game.slug == slug).first()


def create_game(
    db: Session,
    title: str,
    slug: str | None = None,
    release_date: date | None = None,
    availability_status: AvailabilityStatus = AvailabilityStatus.ABANDONWARE,
) -> Game:
    """Create a catalog entry. The slug is derived from the title when omitted.

    Raises:
        GameExistsError: If the slug is already taken.
    """
    slug = slug or slugify(title)
    if not slug:
        raise ValueError("Title must contain at least one letter or digit")
    if get_game_by_slug(db, slug):
        raise GameExistsError(slug)

    game = Game(
        title=title,
        slug=slug,
        release_date=release_date,
        availability_status=availability_status.value,
    )
    db.add(game)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise GameExistsError(slug) from None
    db.refresh(game)
    return game


def delete_game(db: Session, game: Game) -> None:
    """Delete a game. Its re-release request and that request's votes cascade."""
    game_id = game.id
    db.delete(game)
    db.commit()
    logger.info("Deleted game %s with its re-release request", game_id)
