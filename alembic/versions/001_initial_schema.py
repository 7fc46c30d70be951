"""Initial migration - create snippets, users and sessions tables

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create snippets, users and sessions tables."""
    op.create_table(
        'snippets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_snippets')),
    )
    op.create_index(op.f('ix_snippets_created'), 'snippets', ['created'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.CHAR(length=60), nullable=False),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('users_uc_email')),
    )

    op.create_table(
        'sessions',
        sa.Column('token', sa.CHAR(length=43), nullable=False),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('expiry', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('token', name=op.f('pk_sessions')),
    )
    op.create_index(op.f('ix_sessions_expiry'), 'sessions', ['expiry'], unique=False)


def downgrade() -> None:
    """Drop sessions, users and snippets tables."""
    op.drop_index(op.f('ix_sessions_expiry'), table_name='sessions')
    op.drop_table('sessions')
    op.drop_table('users')
    op.drop_index(op.f('ix_snippets_created'), table_name='snippets')
    op.drop_table('snippets')
