"""Create urls table

Revision ID: 001_urls
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_urls'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the urls table:
    - uuid primary key, generated per row
    - short_url unique across all rows, tombstoned ones included
    - user_id indexed for per-user listing and deletion
    """
    bind = op.get_bind()
    if 'urls' in inspect(bind).get_table_names():
        return

    op.create_table(
        'urls',
        sa.Column('uuid', sa.Uuid(), nullable=False),
        sa.Column('short_url', sa.String(length=16), nullable=False),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('short_url', name='uq_urls_short_url'),
    )

    op.create_index('ix_urls_user_id', 'urls', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_urls_user_id', table_name='urls')
    op.drop_table('urls')
