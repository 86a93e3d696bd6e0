"""
Learnhub Backend - Core Module

This module contains configuration, database setup, the change feed,
blob storage and security utilities.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, get_db, get_engine

__all__ = ["settings", "get_settings", "Base", "get_db", "get_engine"]
