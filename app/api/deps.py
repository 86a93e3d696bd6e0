"""
API Dependencies

Reusable dependencies for API routes including authentication and role
checks.
"""

from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.requests import HTTPConnection
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.events import ChangeFeed
from app.core.security import decode_access_token
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.token import TokenPayload


# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/google")


async def resolve_token_user(token: Optional[str], db: AsyncSession) -> Optional[User]:
    """
    Resolve a JWT access token to its user.

    Returns:
        User | None: The user, or None if the token is invalid or the user
        no longer exists.
    """
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    try:
        claims = TokenPayload.model_validate(payload)
    except ValidationError:
        return None

    return await db.get(User, claims.sub)


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user.

    This dependency:
    1. Extracts the JWT token from the Authorization header
    2. Decodes and validates the token
    3. Fetches the user from the database
    4. Raises 401 if token is invalid or user not found

    Raises:
        HTTPException: 401 if authentication fails.
    """
    user = await resolve_token_user(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    # Hook for account state checks; every signed-in user is active for now
    return current_user


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that admits only users holding one of ``roles``.

    Usage:
        @router.get("/stats", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def _check(
        current_user: Annotated[User, Depends(get_current_active_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You don't have permission to perform this action",
            )
        return current_user

    return _check


def get_change_feed(connection: HTTPConnection) -> ChangeFeed:
    """The application's change feed (created in the lifespan handler)."""
    return connection.app.state.change_feed


async def get_websocket_user(
    feed: Annotated[ChangeFeed, Depends(get_change_feed)],
    token: Annotated[Optional[str], Query()] = None,
) -> Optional[User]:
    """
    Authenticate a WebSocket by its ``token`` query parameter.

    Uses a short-lived session so no connection is held while the socket
    stays open. Returns None when the token is missing or invalid.
    """
    async with feed.session_maker() as db:
        return await resolve_token_user(token, db)


require_teacher = require_roles(UserRole.TEACHER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)
