"""Initial schema: emails and embedded email sections.

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the emails and email_sections tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    # Create emails table
    op.create_table('emails',
        sa.Column('id', sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('sender', sa.Text(), nullable=False),
        sa.Column('recipient', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('cc', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('bcc', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('pending', 'complete', 'failed')", name='valid_email_status')
    )
    op.create_index('idx_emails_created', 'emails', ['created_at'], postgresql_ops={'created_at': 'DESC'})
    op.create_index('idx_emails_status', 'emails', ['status'])

    # Create email_sections table
    op.create_table('email_sections',
        sa.Column('id', sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column('email_id', sa.BigInteger(), nullable=False),
        sa.Column('section_content', sa.Text(), nullable=False),
        sa.Column('embedding', Vector(1536), nullable=False),
        sa.Column('section_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['email_id'], ['emails.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('email_id', 'section_order', name='uq_email_sections_email_order'),
        sa.CheckConstraint('section_order >= 1', name='valid_section_order')
    )
    op.create_index('idx_email_sections_email', 'email_sections', ['email_id'])


def downgrade() -> None:
    """Drop the email store schema."""
    op.drop_index('idx_email_sections_email', table_name='email_sections')
    op.drop_table('email_sections')

    op.drop_index('idx_emails_status', table_name='emails')
    op.drop_index('idx_emails_created', table_name='emails')
    op.drop_table('emails')
