"""
Ignored-conflict set.

A best-effort, session/device scoped list of conflict ids the user chose to
suppress without recording a durable resolution (the "keep both" preflight
path). Losing it is an accepted limitation: the conflict simply shows up
again.
"""

import logging
import threading
from abc import abstractmethod
from typing import Iterable, Protocol

from src.services.exceptions import IgnoredStoreError

logger = logging.getLogger(__name__)


class IgnoredConflictStore(Protocol):
    """Storage for ignored conflict ids, keyed by scope (user or device)."""

    @abstractmethod
    def add_ignored(self, scope: str, ids: Iterable[str]) -> None:
        """Mark conflict ids as ignored."""
        ...

    @abstractmethod
    def is_ignored(self, scope: str, conflict_id: str) -> bool:
        """Check whether a conflict id is ignored."""
        ...

    @abstractmethod
    def ignored_ids(self, scope: str) -> set[str]:
        """All ignored ids for a scope."""
        ...


class InMemoryIgnoredConflictStore:
    """
    Volatile ignored set held in process memory.

    Lost on restart, which matches the durability the feature promises.
    """

    def __init__(self):
        self._ignored: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add_ignored(self, scope: str, ids: Iterable[str]) -> None:
        cleaned = {str(i) for i in ids or [] if i}
        if not cleaned:
            return
        with self._lock:
            self._ignored.setdefault(scope, set()).update(cleaned)

    def is_ignored(self, scope: str, conflict_id: str) -> bool:
        with self._lock:
            return str(conflict_id) in self._ignored.get(scope, set())

    def ignored_ids(self, scope: str) -> set[str]:
        with self._lock:
            return set(self._ignored.get(scope, set()))

    def clear(self, scope: str | None = None) -> None:
        with self._lock:
            if scope is None:
                self._ignored.clear()
            else:
                self._ignored.pop(scope, None)


def ignore_conflicts(store: IgnoredConflictStore, scope: str, ids: Iterable[str]) -> bool:
    """
    Add ids to the ignored set without letting a storage failure escape.

    Returns:
        True if the ids were stored, False if the store failed
    """
    try:
        store.add_ignored(scope, ids)
    except (IgnoredStoreError, OSError) as e:
        logger.warning(f"Could not persist ignored conflicts for {scope}: {e}")
        return False
    return True


def load_ignored(store: IgnoredConflictStore, scope: str) -> set[str]:
    """Read the ignored set; a failing store reads as empty."""
    try:
        return store.ignored_ids(scope)
    except (IgnoredStoreError, OSError) as e:
        logger.warning(f"Could not read ignored conflicts for {scope}: {e}")
        return set()
