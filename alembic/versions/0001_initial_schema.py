"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider_account_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='user'),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('provider_account_id', name=op.f('uq_users_provider_account_id')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
    )
    op.create_index('idx_users_role', 'users', ['role'])
    op.create_index('idx_users_status', 'users', ['status'])

    op.create_table(
        'auth_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_auth_sessions_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_auth_sessions')),
        sa.UniqueConstraint('token', name=op.f('uq_auth_sessions_token')),
    )

    op.create_table(
        'mixes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('artist', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.Column('cover_art_key', sa.String(), nullable=True),
        sa.Column('waveform_peaks', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('uploader_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['uploader_id'], ['users.id'], name=op.f('fk_mixes_uploader_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_mixes')),
    )
    op.create_index('idx_mixes_created_at', 'mixes', ['created_at'])
    op.create_index('idx_mixes_uploader', 'mixes', ['uploader_id'])
    op.create_index('idx_mixes_is_public', 'mixes', ['is_public'])

    op.create_table(
        'playlists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_playlists_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlists')),
    )
    op.create_index('idx_playlists_user', 'playlists', ['user_id'])
    op.create_index('idx_playlists_is_public', 'playlists', ['is_public'])

    op.create_table(
        'playlist_mixes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('playlist_id', sa.Integer(), nullable=False),
        sa.Column('mix_id', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['playlist_id'], ['playlists.id'], name=op.f('fk_playlist_mixes_playlist_id_playlists'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['mix_id'], ['mixes.id'], name=op.f('fk_playlist_mixes_mix_id_mixes'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlist_mixes')),
        sa.UniqueConstraint('playlist_id', 'mix_id', name='uq_playlist_mixes_playlist_id_mix_id'),
    )
    op.create_index('idx_playlist_mixes_order', 'playlist_mixes', ['playlist_id', 'order'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('target_id', sa.String(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_logs')),
    )
    op.create_index('idx_audit_logs_actor', 'audit_logs', ['actor_id'])
    op.create_index('idx_audit_logs_created_at', 'audit_logs', ['created_at'])

    op.create_table(
        'site_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_site_settings')),
        sa.UniqueConstraint('key', name=op.f('uq_site_settings_key')),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('site_settings')
    op.drop_index('idx_audit_logs_created_at', table_name='audit_logs')
    op.drop_index('idx_audit_logs_actor', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('idx_playlist_mixes_order', table_name='playlist_mixes')
    op.drop_table('playlist_mixes')
    op.drop_index('idx_playlists_is_public', table_name='playlists')
    op.drop_index('idx_playlists_user', table_name='playlists')
    op.drop_table('playlists')
    op.drop_index('idx_mixes_is_public', table_name='mixes')
    op.drop_index('idx_mixes_uploader', table_name='mixes')
    op.drop_index('idx_mixes_created_at', table_name='mixes')
    op.drop_table('mixes')
    op.drop_table('auth_sessions')
    op.drop_index('idx_users_status', table_name='users')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
