"""
User Schemas

Pydantic models for user request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import UserRole


class UserResponse(BaseModel):
    """Schema for user response."""

    id: str
    email: str
    display_name: str
    photo_url: Optional[str] = None
    role: UserRole
    dark_mode: bool
    autoplay: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Schema for updating the caller's own profile."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=255, description="New display name")
    photo_url: Optional[str] = Field(None, max_length=512, description="New avatar URL")


class PreferencesUpdate(BaseModel):
    """Schema for updating UI preferences. Omitted flags are left unchanged."""

    dark_mode: Optional[bool] = Field(None, description="Dark theme")
    autoplay: Optional[bool] = Field(None, description="Start the next lesson automatically")


class RoleUpdate(BaseModel):
    """Schema for an admin changing a user's role."""

    role: UserRole = Field(..., description="New role")
