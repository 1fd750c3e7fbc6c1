"""
FastAPI dependency injection providers.

Provides the resolution store, the ignored-conflict store and user context.
"""

from typing import Optional
import logging

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_async_session
from src.services.ignored import InMemoryIgnoredConflictStore
from src.services.resolutions import ResolutionStore

logger = logging.getLogger(__name__)

# Process-wide ignored set; lost on restart
_ignored_store: Optional[InMemoryIgnoredConflictStore] = None


def get_ignored_store() -> InMemoryIgnoredConflictStore:
    """
    Dependency injection for the ignored-conflict store.

    Returns the singleton in-memory store, creating it on first use.
    """
    global _ignored_store
    if _ignored_store is None:
        _ignored_store = InMemoryIgnoredConflictStore()
        logger.info("Ignored-conflict store initialized")
    return _ignored_store


def reset_ignored_store() -> None:
    """Drop the ignored-conflict store (tests)."""
    global _ignored_store
    _ignored_store = None


def get_resolution_store(
    session: AsyncSession = Depends(get_async_session),
) -> ResolutionStore:
    """Dependency injection for the request-scoped resolution store."""
    return ResolutionStore(session)


def get_user_id(
    x_user_id: Optional[str] = Header(None, description="User ID"),
) -> str:
    """
    Extract the user id from headers.

    Args:
        x_user_id: User ID from X-User-ID header

    Returns:
        Resolved user ID (default_user when absent)
    """
    return x_user_id or "default_user"
