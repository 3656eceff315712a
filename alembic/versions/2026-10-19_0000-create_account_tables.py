"""create_account_tables_users_preferences_relationships

Revision ID: 5b2d9c41e7a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b2d9c41e7a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the account schema.

    Creates the following tables:
    1. users - accounts (email UNIQUE, role car_owner / relative)
    2. user_preferences - one row per user, removed with the user
    3. user_relationships - owner → relative edges, UNIQUE per pair,
       removed when either end is deleted
    """

    # ================================
    # Create users table
    # ================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address, unique (case-sensitive as stored)"),
        sa.Column('name', sa.String(length=100), nullable=False, comment="User's display name"),
        sa.Column('hashed_password', sa.String(length=255), nullable=False, comment="bcrypt hash of the user's password"),
        sa.Column('role', sa.String(length=20), nullable=False, comment='Account role: car_owner or relative (immutable)'),
        sa.Column('profile_img', sa.String(length=255), nullable=True, comment='URL or path of the profile image'),
        sa.Column('car_img', sa.String(length=255), nullable=True, comment='URL or path of the car image'),
        sa.Column('car_name', sa.String(length=100), nullable=True, comment='Vehicle display name (required for car owners)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # ================================
    # Create user_preferences table
    # ================================
    op.create_table(
        'user_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Foreign key to users table'),
        sa.Column('dark_mode', sa.Boolean(), nullable=False, server_default=sa.false(), comment='Whether the UI uses the dark theme'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_user_preferences_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_preferences')),
        sa.UniqueConstraint('user_id', name=op.f('uq_user_preferences_user_id')),
    )

    # ================================
    # Create user_relationships table
    # ================================
    op.create_table(
        'user_relationships',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
        sa.Column('owner_id', sa.Integer(), nullable=False, comment='Car owner end of the edge'),
        sa.Column('relative_id', sa.Integer(), nullable=False, comment='Relative end of the edge'),
        sa.CheckConstraint('owner_id <> relative_id', name=op.f('ck_user_relationships_not_self')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name=op.f('fk_user_relationships_owner_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['relative_id'], ['users.id'], name=op.f('fk_user_relationships_relative_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_relationships')),
        sa.UniqueConstraint('owner_id', 'relative_id', name='uq_user_relationships_owner_id_relative_id'),
    )
    op.create_index(op.f('ix_user_relationships_owner_id'), 'user_relationships', ['owner_id'])
    op.create_index(op.f('ix_user_relationships_relative_id'), 'user_relationships', ['relative_id'])


def downgrade() -> None:
    """Drop the account schema (children first)."""
    op.drop_index(op.f('ix_user_relationships_relative_id'), table_name='user_relationships')
    op.drop_index(op.f('ix_user_relationships_owner_id'), table_name='user_relationships')
    op.drop_table('user_relationships')

    op.drop_table('user_preferences')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
