"""
Authentication Routes

Google sign-in exchanged for a platform JWT access token.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import create_access_token
from app.schemas.token import GoogleAuthRequest, Token
from app.services import auth_service


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/google",
    response_model=Token,
    summary="Sign in with a Google ID token",
)
async def google_sign_in(
    data: GoogleAuthRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Token:
    """
    Authenticate with a Google ID token.

    **Flow:**
    1. Verify the token with Google
    2. Find the user, or create one with the student role
    3. Return a JWT access token

    Raises:
        HTTPException: 401 if the Google token is invalid.
        HTTPException: 503 if Google can't be reached.
    """
    identity = await auth_service.verify_google_token(data.id_token)
    user = await auth_service.sign_in(identity, db)

    return Token(access_token=create_access_token(subject=user.id))
