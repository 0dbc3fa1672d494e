"""Create users, profiles, email_verification_tokens and refresh_tokens

Revision ID: accounts_001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'accounts_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tables may already exist when CREATE_TABLES_ON_STARTUP created them
    from sqlalchemy import inspect
    conn = op.get_bind()
    tables = set(inspect(conn).get_table_names())

    if 'users' not in tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('hashed_password', sa.String(255), nullable=False),
            sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column(
                'user_type',
                sa.Enum('freelancer', 'client', name='user_type', native_enum=False, create_constraint=True),
                nullable=False,
                server_default='freelancer',
            ),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'profiles' not in tables:
        op.create_table(
            'profiles',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('full_name', sa.String(255)),
            sa.Column('display_name', sa.String(255)),
            sa.Column('professional_title', sa.String(255)),
            sa.Column('category', sa.String(255)),
            sa.Column('experience_level', sa.String(100)),
            sa.Column('skills', sa.JSON(), nullable=False),
            sa.Column('bio', sa.Text()),
            sa.Column('timezone', sa.String(100)),
            sa.Column('country', sa.String(100)),
            sa.Column('avatar_url', sa.String(2048)),
            sa.Column('portfolio_links', sa.JSON(), nullable=False),
            sa.Column('completed_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        # The one-profile-per-user guarantee
        op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)

    for name in ('email_verification_tokens', 'refresh_tokens'):
        if name in tables:
            continue
        token_type = sa.String(64) if name == 'email_verification_tokens' else sa.Text()
        op.create_table(
            name,
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('token', token_type, nullable=False, unique=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index(f'ix_{name}_user_id', name, ['user_id'])


def downgrade() -> None:
    op.drop_table('refresh_tokens')
    op.drop_table('email_verification_tokens')
    op.drop_table('profiles')
    op.drop_table('users')
