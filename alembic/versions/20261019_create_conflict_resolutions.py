"""Create conflict_resolutions table

Revision ID: 3f1b7c20a9d4
Revises:
Create Date: 2026-10-19

Stores one durable resolution per (user_id, conflict_id). Conflicts are
recomputed from events on every read, so only the decision is kept.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1b7c20a9d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('conflict_resolutions',
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('conflict_id', sa.String(length=512), nullable=False),
        sa.Column('resolution', sa.String(length=50), nullable=False),
        sa.Column('id', sa.CHAR(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'conflict_id', name='uq_conflict_resolution_user_conflict')
    )
    with op.batch_alter_table('conflict_resolutions', schema=None) as batch_op:
        batch_op.create_index('idx_conflict_resolution_user', ['user_id'], unique=False)


def downgrade() -> None:
    with op.batch_alter_table('conflict_resolutions', schema=None) as batch_op:
        batch_op.drop_index('idx_conflict_resolution_user')
    op.drop_table('conflict_resolutions')
