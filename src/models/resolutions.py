"""
Conflict resolution model.

Entities:
- ConflictResolution: A user's durable decision for one conflict id

Conflicts themselves are never stored; they are recomputed from the event
snapshot. Only the decision is persisted, keyed by the stable conflict id.
"""

from sqlalchemy import String, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel

RESOLUTION_VALUES = ("keep_existing", "replace_with_new", "none")


class ConflictResolution(BaseModel):
    """
    A user's decision for one conflict.

    Resolutions:
    - keep_existing: the incoming side is discarded
    - replace_with_new: the existing side is discarded
    - none: acknowledged, both sides retained

    One row per (user_id, conflict_id); writes are upserts, last write wins.
    A row whose events no longer exist is orphaned and simply never matched.
    """

    __tablename__ = "conflict_resolutions"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="External user ID from frontend authentication"
    )

    conflict_id: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        doc="Stable conflict id (cx::<event id>::<event id>)"
    )

    resolution: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Resolution: 'keep_existing', 'replace_with_new', 'none'"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "conflict_id", name="uq_conflict_resolution_user_conflict"),
        Index("idx_conflict_resolution_user", "user_id"),
    )

    def __repr__(self) -> str:
        """String representation showing conflict and resolution."""
        return f"<ConflictResolution(conflict_id='{self.conflict_id}', resolution='{self.resolution}')>"
