"""
User Service

Profile and UI preference updates for the signed-in user.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import store_operation
from app.models.user import User
from app.schemas.user import PreferencesUpdate, UserUpdate


@store_operation("update profile")
async def update_profile(user: User, data: UserUpdate, db: AsyncSession) -> User:
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, field, value)

    await db.commit()
    return user


@store_operation("update preferences")
async def update_preferences(user: User, data: PreferencesUpdate, db: AsyncSession) -> User:
    """Apply the flags that were sent; omitted ones keep their value."""
    if data.dark_mode is not None:
        user.dark_mode = data.dark_mode
    if data.autoplay is not None:
        user.autoplay = data.autoplay

    await db.commit()
    return user
