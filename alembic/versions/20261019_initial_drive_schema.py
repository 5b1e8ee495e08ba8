"""create folders, files, share_links and rate_limit_counters

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'folders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('parent_id', sa.String(length=36), sa.ForeignKey('folders.id'), nullable=True),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_folders_parent_id', 'folders', ['parent_id'])
    op.create_index('ix_folders_owner_id', 'folders', ['owner_id'])

    op.create_table(
        'files',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(length=255), nullable=False),
        sa.Column('object_path', sa.String(), nullable=False),
        sa.Column('folder_id', sa.String(length=36), sa.ForeignKey('folders.id'), nullable=True),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_files_folder_id', 'files', ['folder_id'])
    op.create_index('ix_files_owner_id', 'files', ['owner_id'])

    op.create_table(
        'share_links',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('file_id', sa.String(length=36), sa.ForeignKey('files.id'), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('download_count', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_share_links_token', 'share_links', ['token'], unique=True)
    op.create_index('ix_share_links_file_id', 'share_links', ['file_id'])

    # Shared fixed-window counters for the database rate limit store
    op.create_table(
        'rate_limit_counters',
        sa.Column('key', sa.String(length=512), primary_key=True),
        sa.Column('count', sa.Integer(), nullable=False),
        sa.Column('reset_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('rate_limit_counters')
    op.drop_index('ix_share_links_file_id', table_name='share_links')
    op.drop_index('ix_share_links_token', table_name='share_links')
    op.drop_table('share_links')
    op.drop_index('ix_files_owner_id', table_name='files')
    op.drop_index('ix_files_folder_id', table_name='files')
    op.drop_table('files')
    op.drop_index('ix_folders_owner_id', table_name='folders')
    op.drop_index('ix_folders_parent_id', table_name='folders')
    op.drop_table('folders')
