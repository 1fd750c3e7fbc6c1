"""
SQLAlchemy models for SyncPlans.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from src.models.base import Base, BaseModel, GUID
from src.models.resolutions import ConflictResolution, RESOLUTION_VALUES

__all__ = [
    "Base",
    "BaseModel",
    "GUID",
    "ConflictResolution",
    "RESOLUTION_VALUES",
]
