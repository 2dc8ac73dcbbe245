"""create_cvs_table

Revision ID: 4f2c9a1d7e3b
Revises:
Create Date: 2026-10-19 10:12:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f2c9a1d7e3b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create cvs table: one CV per user, enforced by a unique user_id.
    """
    op.create_table(
        'cvs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('cv_data', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cvs_user_id', 'cvs', ['user_id'], unique=True)


def downgrade() -> None:
    """
    Drop cvs table.
    """
    op.drop_index('ix_cvs_user_id', table_name='cvs')
    op.drop_table('cvs')
