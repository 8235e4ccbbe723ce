"""Initial schema: refiner and script enhancer result tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1. Refiner results (Step 2a)
    op.create_table(
        'dreamcut_refiner',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('analyzer_id', sa.String(length=128), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('model_used', sa.String(length=128), nullable=False),
        sa.Column('processing_time_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('template_used', sa.String(length=64), nullable=True),
        sa.Column('asset_mix', sa.JSON(), nullable=True),
        sa.Column('complexity', sa.String(length=32), nullable=True),
        sa.Column('creative_profile', sa.String(length=64), nullable=True),
        sa.Column('profile_detection', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dreamcut_refiner_analyzer_id', 'dreamcut_refiner', ['analyzer_id'])
    op.create_index('idx_dreamcut_refiner_created_at', 'dreamcut_refiner', ['created_at'])

    # 2. Script enhancer results (Step 3)
    op.create_table(
        'script_enhancer_results',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_prompt', sa.Text(), nullable=False),
        sa.Column('profile_id', sa.String(length=64), nullable=False),
        sa.Column('duration_seconds', sa.Float(), nullable=False),
        sa.Column('script_data', sa.JSON(), nullable=False),
        sa.Column('quality_assessment', sa.JSON(), nullable=True),
        sa.Column('processing_time_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_fallback', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_script_enhancer_results_profile_id', 'script_enhancer_results', ['profile_id'])
    op.create_index('idx_script_enhancer_results_created_at', 'script_enhancer_results', ['created_at'])


def downgrade() -> None:
    op.drop_index('idx_script_enhancer_results_created_at', table_name='script_enhancer_results')
    op.drop_index('ix_script_enhancer_results_profile_id', table_name='script_enhancer_results')
    op.drop_table('script_enhancer_results')

    op.drop_index('idx_dreamcut_refiner_created_at', table_name='dreamcut_refiner')
    op.drop_index('ix_dreamcut_refiner_analyzer_id', table_name='dreamcut_refiner')
    op.drop_table('dreamcut_refiner')
