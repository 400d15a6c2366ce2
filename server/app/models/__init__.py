from app.models.base import Base
from app.models.game import Game
from app.models.rerelease_request import RereleaseRequest
from app.models.rerelease_vote import RereleaseVote
from app.models.user import User

__all__ = [
    "Base",
    "User",
    "Game",
    "RereleaseRequest",
    "RereleaseVote",
]
