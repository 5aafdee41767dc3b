"""Create inspection engine tables

Revision ID: a1c4e7f20b93
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b93'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Templates
    op.create_table(
        'inspection_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('facility_type_filter', sa.String(50), nullable=True),
        sa.Column('contract_id', sa.Uuid(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_templates_contract', 'inspection_templates', ['contract_id'])
    op.create_index('idx_templates_archived', 'inspection_templates', ['archived_at'])

    op.create_table(
        'inspection_template_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('item_text', sa.String(500), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['template_id'], ['inspection_templates.id'], ondelete='CASCADE'),
        sa.CheckConstraint('weight >= 1', name='ck_template_items_weight'),
    )
    op.create_index('idx_template_items_template', 'inspection_template_items', ['template_id'])

    # Inspections
    op.create_table(
        'inspections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_number', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('facility_id', sa.Uuid(), nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=True),
        sa.Column('inspector_id', sa.Uuid(), nullable=False),
        sa.Column('contract_id', sa.Uuid(), nullable=True),
        sa.Column('job_id', sa.Uuid(), nullable=True),
        sa.Column('appointment_id', sa.Uuid(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        sa.Column('reinspection_of_id', sa.Uuid(), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('overall_score', sa.Integer(), nullable=True),
        sa.Column('overall_rating', sa.String(20), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('inspection_number'),
        sa.ForeignKeyConstraint(['template_id'], ['inspection_templates.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reinspection_of_id'], ['inspections.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "(overall_score IS NULL AND overall_rating IS NULL) OR "
            "(overall_score IS NOT NULL AND overall_rating IS NOT NULL)",
            name='ck_inspections_score_rating',
        ),
    )
    op.create_index('idx_inspections_facility', 'inspections', ['facility_id'])
    op.create_index('idx_inspections_inspector', 'inspections', ['inspector_id'])
    op.create_index('idx_inspections_status', 'inspections', ['status'])
    op.create_index('idx_inspections_scheduled_date', 'inspections', ['scheduled_date'])
    op.create_index('idx_inspections_reinspection_of', 'inspections', ['reinspection_of_id'])

    op.create_table(
        'inspection_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('template_item_id', sa.Uuid(), nullable=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('item_text', sa.String(500), nullable=False),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('score', sa.String(10), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
        sa.CheckConstraint('weight >= 1', name='ck_inspection_items_weight'),
        sa.CheckConstraint('rating IS NULL OR (rating >= 1 AND rating <= 5)', name='ck_inspection_items_rating'),
    )
    op.create_index('idx_inspection_items_inspection', 'inspection_items', ['inspection_id'])

    # Corrective actions
    op.create_table(
        'inspection_corrective_actions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('inspection_item_id', sa.Uuid(), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('severity', sa.String(20), nullable=False, server_default='major'),
        sa.Column('status', sa.String(30), nullable=False, server_default='open'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('assignee_id', sa.Uuid(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('resolved_by_id', sa.Uuid(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('verified_by_id', sa.Uuid(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('follow_up_inspection_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['inspection_item_id'], ['inspection_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['follow_up_inspection_id'], ['inspections.id'], ondelete='SET NULL'),
    )
    op.create_index('idx_corrective_actions_inspection', 'inspection_corrective_actions', ['inspection_id'])
    op.create_index('idx_corrective_actions_item', 'inspection_corrective_actions', ['inspection_item_id'])
    op.create_index('idx_corrective_actions_status', 'inspection_corrective_actions', ['status'])
    op.create_index('idx_corrective_actions_severity', 'inspection_corrective_actions', ['severity'])
    op.create_index('idx_corrective_actions_due_date', 'inspection_corrective_actions', ['due_date'])

    # Sign-offs (append-only)
    op.create_table(
        'inspection_signoffs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('signer_type', sa.String(20), nullable=False),
        sa.Column('signer_name', sa.String(255), nullable=False),
        sa.Column('signer_title', sa.String(255), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('signed_by_id', sa.Uuid(), nullable=True),
        sa.Column('signed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_signoffs_inspection', 'inspection_signoffs', ['inspection_id'])
    op.create_index('idx_signoffs_signer_type', 'inspection_signoffs', ['signer_type'])

    # Activity log (append-only)
    op.create_table(
        'inspection_activities',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('performed_by_id', sa.Uuid(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_activities_inspection', 'inspection_activities', ['inspection_id'])
    op.create_index('idx_activities_action', 'inspection_activities', ['action'])


def downgrade() -> None:
    op.drop_table('inspection_activities')
    op.drop_table('inspection_signoffs')
    op.drop_table('inspection_corrective_actions')
    op.drop_table('inspection_items')
    op.drop_table('inspections')
    op.drop_table('inspection_template_items')
    op.drop_table('inspection_templates')
