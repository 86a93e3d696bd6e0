"""
Auth Service

Google sign-in: verifies the ID token with Google and resolves it to a
platform user, creating the user on first sign-in.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import store_operation
from app.core.http_client import get_with_retry
from app.models.common import utcnow
from app.models.enums import UserRole
from app.models.user import User


logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


@dataclass(frozen=True)
class Identity:
    """Identity asserted by the sign-in provider."""
    uid: str
    email: str
    display_name: str
    photo_url: Optional[str] = None


async def verify_google_token(id_token: str) -> Identity:
    """
    Verify a Google ID token via the tokeninfo endpoint.

    Raises:
        HTTPException: 401 if the token is invalid or issued for another
            client, 503 if Google can't be reached.
    """
    try:
        response = await get_with_retry(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
    except httpx.HTTPError as e:
        logger.error("Google token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not reach the sign-in provider",
        )

    if response.status_code != 200:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Google token",
        )

    claims = response.json()
    if settings.GOOGLE_CLIENT_ID and claims.get("aud") != settings.GOOGLE_CLIENT_ID:
        logger.warning("Rejected Google token issued for audience %s", claims.get("aud"))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Google token",
        )

    uid = claims.get("sub")
    email = claims.get("email")
    if not uid or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google token is missing the user's identity",
        )

    return Identity(
        uid=uid,
        email=email,
        display_name=claims.get("name") or email.split("@")[0],
        photo_url=claims.get("picture"),
    )


async def _find_by_google_id(google_id: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.google_id == google_id))
    return result.scalar_one_or_none()


@store_operation("sign in")
async def sign_in(identity: Identity, db: AsyncSession) -> User:
    """
    Get or create the user for a verified identity.

    New users start as students. Existing users keep their role; their
    email and photo are refreshed from the provider.
    """
    user = await _find_by_google_id(identity.uid, db)

    if user is None:
        user = User(
            id=identity.uid,
            google_id=identity.uid,
            email=identity.email,
            display_name=identity.display_name,
            photo_url=identity.photo_url,
            role=UserRole.STUDENT,
            dark_mode=False,
            autoplay=True,
            created_at=utcnow(),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # First sign-in raced with another request for the same account
            await db.rollback()
            user = await _find_by_google_id(identity.uid, db)
            if user is None:
                raise
        else:
            logger.info("New user registered: %s", user.id)
            return user

    user.email = identity.email
    if identity.photo_url:
        user.photo_url = identity.photo_url
    await db.commit()

    return user
