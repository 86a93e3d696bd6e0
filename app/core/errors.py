"""
Error Handling

Boundary guard for store operations: database failures are logged and
surfaced to the caller as a readable 500 instead of a raw driver error.
"""

import logging
from functools import wraps
from typing import Awaitable, Callable, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(HTTPException):
    """Raised when the document store fails during an operation."""

    def __init__(self, action: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}. Please try again later.",
        )
        self.action = action


def store_operation(action: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for public service operations.

    Usage:
        @store_operation("submit rating")
        async def submit_rating(...):
            ...

    HTTPExceptions raised by the operation (404, 403, ...) pass through
    untouched.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.exception("Store failure during %s", action)
                raise StoreError(action) from e
        return wrapper
    return decorator
