from app.schemas.auth import Token, TokenData
from app.schemas.game import GameCreate, GameOut
from app.schemas.rerelease import MostVotedEntry, RereleaseOut, VoteCreate, VoteResponse
from app.schemas.user import UserOut

__all__ = [
    "Token",
    "TokenData",
    "UserOut",
    "GameCreate",
    "GameOut",
    "RereleaseOut",
    "MostVotedEntry",
    "VoteCreate",
    "VoteResponse",
]
