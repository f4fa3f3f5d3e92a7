import logging
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from friendspo.config import settings
from friendspo.database import get_db
from friendspo.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_subject(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> uuid.UUID:
    """Verify the auth provider's access token and return its subject.

    Does not require a profile row, so it also serves profile creation.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
        )
        return uuid.UUID(payload["sub"])
    except (JWTError, KeyError, ValueError) as e:
        logger.warning("Rejected access token: %s", e)
        raise _unauthorized("Invalid token")


async def get_current_user(
    user_id: uuid.UUID = Depends(get_token_subject),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller's profile."""
    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user
