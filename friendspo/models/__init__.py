from friendspo.models.base import Base
from friendspo.models.friendship import Friendship
from friendspo.models.league import League
from friendspo.models.league_member import LeagueMember
from friendspo.models.session import Session
from friendspo.models.user import User

__all__ = [
    "Base",
    "Friendship",
    "League",
    "LeagueMember",
    "Session",
    "User",
]
