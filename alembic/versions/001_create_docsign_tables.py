"""Create users, documents, share_links, signatures and audit_logs

Revision ID: 001_create_docsign_tables
Revises:
Create Date: 2026-10-18

Note: Using IF NOT EXISTS pattern to make migration idempotent.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision = '001_create_docsign_tables'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(conn, table_name):
    """Check if a table exists in the database."""
    result = conn.execute(
        text("SELECT EXISTS (SELECT FROM information_schema.tables WHERE table_name = :name)"),
        {"name": table_name},
    )
    return result.scalar()


def upgrade():
    """Create the DocSign tables if they don't exist."""
    conn = op.get_bind()

    if not table_exists(conn, 'users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('hashed_password', sa.String(255), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
        )

    if not table_exists(conn, 'documents'):
        op.create_table(
            'documents',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, index=True),
            sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('original_name', sa.String(255), nullable=False),
            sa.Column('file_name', sa.String(255), nullable=False, unique=True),
            sa.Column('file_path', sa.String(500), nullable=False, unique=True),
            sa.Column('mime_type', sa.String(100), nullable=False),
            sa.Column('size', sa.Integer(), nullable=False),
            sa.Column('is_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('finalized_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
            sa.CheckConstraint('size > 0', name='ck_documents_size_positive'),
        )

    if not table_exists(conn, 'share_links'):
        op.create_table(
            'share_links',
            sa.Column('id', UUID(as_uuid=True), primary_key=True),
            sa.Column('document_id', UUID(as_uuid=True), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False, index=True),
            # Token uniqueness is enforced here; inserts retry on collision
            sa.Column('token', sa.String(64), nullable=False, unique=True, index=True),
            sa.Column('recipient_email', sa.String(255), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True)),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
            sa.Column('viewed_at', sa.DateTime(timezone=True)),
            sa.Column('signed_by', sa.String(255)),
            sa.Column('signed_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
            sa.CheckConstraint(
                "status IN ('pending', 'viewed', 'signed', 'declined')",
                name='ck_share_links_status',
            ),
        )

    if not table_exists(conn, 'signatures'):
        op.create_table(
            'signatures',
            sa.Column('id', UUID(as_uuid=True), primary_key=True, index=True),
            sa.Column('document_id', UUID(as_uuid=True), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
            sa.Column('share_token', sa.String(64), index=True),
            sa.Column('x', sa.Float(), nullable=False),
            sa.Column('y', sa.Float(), nullable=False),
            sa.Column('page', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('placement_type', sa.String(20), nullable=False),
            sa.Column('render_kind', sa.String(20), nullable=False, server_default='image'),
            sa.Column('value', sa.Text()),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
            sa.Column('signer_email', sa.String(255)),
            sa.Column('signed_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True)),
            sa.CheckConstraint('x >= 0', name='ck_signatures_x_non_negative'),
            sa.CheckConstraint('y >= 0', name='ck_signatures_y_non_negative'),
            sa.CheckConstraint('page >= 1', name='ck_signatures_page_positive'),
            sa.CheckConstraint(
                "status IN ('pending', 'signed', 'rejected')",
                name='ck_signatures_status',
            ),
        )

    if not table_exists(conn, 'audit_logs'):
        op.create_table(
            'audit_logs',
            sa.Column('id', UUID(as_uuid=True), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
            sa.Column('document_id', UUID(as_uuid=True), index=True),
            sa.Column('action', sa.String(50), nullable=False, index=True),
            sa.Column('details', sa.JSON()),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        )


def downgrade():
    """Drop the DocSign tables."""
    op.drop_table('audit_logs')
    op.drop_table('signatures')
    op.drop_table('share_links')
    op.drop_table('documents')
    op.drop_table('users')
