from collections.abc import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.game import Game
from app.models.rerelease_request import RereleaseRequest
from app.models.user import User
from app.services.auth import decode_token, get_user_by_username
from app.services.game import get_game
from app.services.rerelease import get_request

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token_data = decode_token(token)
    if token_data is None or token_data.username is None:
        raise credentials_exception
    user = get_user_by_username(db, token_data.username)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """Only allow admin users."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def get_existing_game(game_id: int, db: Session = Depends(get_db)) -> Game:
    """Resolve a game path parameter, or raise 404."""
    game = get_game(db, game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


def get_existing_request(request_id: int, db: Session = Depends(get_db)) -> RereleaseRequest:
    """Resolve a re-release request path parameter, or raise 404."""
    rerelease = get_request(db, request_id)
    if not rerelease:
        raise HTTPException(status_code=404, detail="Re-release request not found")
    return rerelease
