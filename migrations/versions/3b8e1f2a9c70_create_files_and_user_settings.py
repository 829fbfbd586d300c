"""Create files and user_settings tables.

Revision ID: 3b8e1f2a9c70
Revises:
Create Date: 2026-10-18

Adds:
- files table holding uploads, lifecycle state and extracted tables
- user_settings table with one row per owner
"""

revision = '3b8e1f2a9c70'
down_revision = None
branch_labels = None
depends_on = None

import sqlalchemy as sa
from alembic import op


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)
    existing_tables = inspector.get_table_names()

    # --- files table ---
    if 'files' not in existing_tables:
        op.create_table(
            'files',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('owner_id', sa.String(36), nullable=False, index=True),
            sa.Column('original_name', sa.String(500), nullable=False),
            sa.Column('stored_name', sa.String(100), nullable=False, unique=True),
            sa.Column('content_type', sa.String(100), nullable=False),
            sa.Column('file_size', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='uploading'),
            sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('webhook_url', sa.String(2048), nullable=True),
            sa.Column('table_data', sa.JSON(), nullable=True),
            sa.Column('edited_table_data', sa.JSON(), nullable=True),
            sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('archive_id', sa.String(255), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )

    # --- user_settings table ---
    if 'user_settings' not in existing_tables:
        op.create_table(
            'user_settings',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('owner_id', sa.String(36), nullable=False, unique=True, index=True),
            sa.Column('webhook_url', sa.String(2048), nullable=False),
            sa.Column('processing_timeout', sa.Integer(), nullable=False, server_default='5'),
            sa.Column('polling_interval', sa.Integer(), nullable=False, server_default='2'),
            sa.Column('auto_approve', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('enable_webhook', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('enable_archive', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('archive_folder_id', sa.String(255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    op.drop_table('user_settings')
    op.drop_table('files')
