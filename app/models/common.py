"""
Shared column helpers.

Every row carries an opaque string id. References between tables are plain
indexed id columns without foreign keys: deleting a user or a course leaves
dependent rows in place unless cleanup is requested explicitly.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB


JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Generate a new opaque document id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)
