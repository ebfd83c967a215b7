"""Baseline migration - accounts, forms, leads and usage accounting

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table in its initial form. Types are portable so the same
revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create baseline tables."""

    # ==========================================================================
    # Accounts
    # ==========================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('max_forms', sa.Integer(), nullable=True),
        sa.Column('max_leads', sa.Integer(), nullable=True),
        sa.Column('max_storage_bytes', sa.BigInteger(), nullable=True),
        sa.Column('daily_test_limit', sa.Integer(), nullable=True),
        sa.Column('can_publish_forms', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'daily_test_usage',
        sa.Column(
            'account_id', sa.Uuid(),
            sa.ForeignKey('accounts.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column('usage_date', sa.Date(), nullable=False),
        sa.Column('test_count', sa.Integer(), nullable=False, server_default='0'),
    )

    # ==========================================================================
    # Forms & Leads
    # ==========================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'owner_id', sa.Uuid(),
            sa.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('lead_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('result_format', sa.String(20), nullable=False, server_default='text'),
        sa.Column('system_prompt', sa.Text(), nullable=True),
        sa.Column('image_size', sa.String(20), nullable=False, server_default='1024x1024'),
        sa.Column('notify_on_new_lead', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('send_email_to_respondent', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_forms_owner', 'forms', ['owner_id'])

    op.create_table(
        'leads',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'form_id', sa.Uuid(),
            sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('result_text', sa.Text(), nullable=True),
        sa.Column('result_image_url', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('custom_fields', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('form_id', 'email', name='uq_leads_form_email'),
    )

    op.create_table(
        'form_knowledge_files',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'form_id', sa.Uuid(),
            sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_knowledge_files_form', 'form_knowledge_files', ['form_id'])

    # ==========================================================================
    # System settings
    # ==========================================================================
    op.create_table(
        'system_settings',
        sa.Column('key', sa.String(100), primary_key=True),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column(
            'updated_by', sa.Uuid(),
            sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop baseline tables."""
    op.drop_table('system_settings')
    op.drop_index('idx_knowledge_files_form', table_name='form_knowledge_files')
    op.drop_table('form_knowledge_files')
    op.drop_table('leads')
    op.drop_index('idx_forms_owner', table_name='forms')
    op.drop_table('forms')
    op.drop_table('daily_test_usage')
    op.drop_table('accounts')
