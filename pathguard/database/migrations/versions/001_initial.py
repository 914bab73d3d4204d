"""
Initial migration - Create report and points tables

Revision ID: 001_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None

HAZARD_CATEGORY = sa.Enum('traffic', 'crime', 'disaster', 'other', name='hazardcategory')
REPORT_STATUS = sa.Enum('pending', 'approved', 'deleted', name='reportstatus')


def upgrade() -> None:
    """Create all tables."""

    # Create danger_reports table
    op.create_table(
        'danger_reports',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('danger_type', HAZARD_CATEGORY, nullable=False),
        sa.Column('danger_level', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('status', REPORT_STATUS, nullable=False, server_default='pending'),
        sa.Column('image_url', sa.String(500)),
        sa.Column('processed_image_urls', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('user_id', sa.String(64)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.CheckConstraint('danger_level BETWEEN 1 AND 5', name='ck_danger_level_range'),
    )

    op.create_index('idx_report_status', 'danger_reports', ['status'])
    op.create_index('idx_report_created_at', 'danger_reports', ['created_at'])
    op.create_index('idx_report_status_type_level', 'danger_reports',
                    ['status', 'danger_type', 'danger_level'])
    op.create_index('ix_danger_reports_user_id', 'danger_reports', ['user_id'])

    # Create user_points table
    op.create_table(
        'user_points',
        sa.Column('user_id', sa.String(64), primary_key=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('user_points')
    op.drop_table('danger_reports')
    HAZARD_CATEGORY.drop(op.get_bind(), checkfirst=True)
    REPORT_STATUS.drop(op.get_bind(), checkfirst=True)
