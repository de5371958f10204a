"""create_complaint_tables

Revision ID: complaints_001
Revises:
Create Date: 2026-10-19

Creates:
- profiles (students and admins)
- complaints
- complaint_messages (per-complaint threads with read state)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'complaints_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create complaint tables and enums

    Timestamps carry no server default: the application stamps them in naive UTC.
    """

    profile_role = sa.Enum('student', 'admin', name='profile_role')
    complaint_category = sa.Enum(
        'electrical', 'system', 'hostel', 'academic', 'infrastructure', 'other',
        name='complaint_category',
    )
    complaint_status = sa.Enum('pending', 'emergency', 'in_progress', 'resolved', name='complaint_status')

    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', profile_role, nullable=False, server_default='student'),
        sa.Column('student_id', sa.String(50), nullable=True, unique=True, index=True),
        sa.Column('batch', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(15), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime),
        sa.Column('updated_at', sa.DateTime),
    )

    # Create complaints table
    op.create_table(
        'complaints',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('student_id', sa.Uuid, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('category', complaint_category, nullable=False),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('status', complaint_status, nullable=False, server_default='pending', index=True),
        sa.Column('admin_feedback', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, index=True),
        sa.Column('updated_at', sa.DateTime),
        sa.Column('resolved_at', sa.DateTime, nullable=True, index=True),
    )

    # Create complaint_messages table
    op.create_table(
        'complaint_messages',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('complaint_id', sa.Uuid, sa.ForeignKey('complaints.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sender_id', sa.Uuid, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, index=True),
        sa.Column('read_at', sa.DateTime, nullable=True, index=True),
    )


def downgrade() -> None:
    """Drop complaint tables and enums"""
    op.drop_table('complaint_messages')
    op.drop_table('complaints')
    op.drop_table('profiles')

    op.execute('DROP TYPE IF EXISTS complaint_status')
    op.execute('DROP TYPE IF EXISTS complaint_category')
    op.execute('DROP TYPE IF EXISTS profile_role')
