from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_admin, get_db, get_existing_game
from app.models.game import Game
from app.models.user import User
from app.schemas.game import GameCreate, GameOut
from app.services.game import GameExistsError, create_game, delete_game

router = APIRouter()


@router.get("/{game_id}", response_model=GameOut)
def get_game_detail(game: Game = Depends(get_existing_game)) -> Game:
    return game


@router.post("", response_model=GameOut, status_code=status.HTTP_201_CREATED)
def admin_create_game(
    payload: GameCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(get_current_admin),
) -> Game:
    try:
        return create_game(
            db,
            title=payload.title,
            slug=payload.slug,
            release_date=payload.release_date,
            availability_status=payload.availability_status,
        )
    except GameExistsError:
        raise HTTPException(status_code=409, detail="A game with this slug already exists")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_game(
    _admin: User = Depends(get_current_admin),
    game: Game = Depends(get_existing_game),
    db: Session = Depends(get_db),
) -> Response:
    """Delete a game together with its re-release request and votes."""
    delete_game(db, game)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
