"""
Token Schemas

Pydantic models for sign-in and JWT token handling.
"""

from pydantic import BaseModel, Field


class GoogleAuthRequest(BaseModel):
    """Schema for signing in with a Google ID token."""

    id_token: str = Field(..., min_length=1, description="ID token issued by Google Sign-In")


class Token(BaseModel):
    """Schema for token response."""

    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    """Schema for decoded token payload."""

    sub: str  # User ID
    exp: int  # Expiration timestamp
