from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.core.config import get_settings
from app.core.rate_limit import limiter
from app.models.user import User
from app.schemas.auth import Token
from app.schemas.user import RegisterRequest, UserOut
from app.services.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_email,
    get_user_by_username,
)

router = APIRouter()
settings = get_settings()


@router.post("/login", response_model=Token)
@limiter.limit(lambda: f"{settings.login_rate_limit_per_minute}/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    access_token = create_access_token(data={"sub": user.username})
    return Token(access_token=access_token)


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(lambda: f"{settings.registration_rate_limit_per_minute}/minute")
def register(
    request: Request,
    reg_data: RegisterRequest,
    db: Session = Depends(get_db),
) -> User:
    """Register a new voter account."""
    if not settings.registration_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is currently disabled",
        )

    # Generic message to prevent enumeration
    if get_user_by_username(db, reg_data.username) or get_user_by_email(db, reg_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed. Username or email already in use.",
        )

    return create_user(db, reg_data.username, reg_data.password, email=reg_data.email)
