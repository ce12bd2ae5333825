"""create_workflow_tables

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'workflow_definitions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('entity', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('sla_hours', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workflow_definitions_module', 'workflow_definitions', ['module'])
    op.create_index('ix_workflow_definitions_entity', 'workflow_definitions', ['entity'])

    op.create_table(
        'approval_levels',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('workflow_id', sa.Uuid(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('threshold', sa.Numeric(18, 2), nullable=True),
        sa.Column('escalate_to_role', sa.String(50), nullable=True),
        sa.Column('escalate_after_hours', sa.Integer(), nullable=True),
        sa.Column('sla_hours', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflow_definitions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approval_levels_workflow_id', 'approval_levels', ['workflow_id'])

    op.create_table(
        'sla_configs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('entity', sa.String(50), nullable=False),
        sa.Column('sla_hours', sa.Integer(), nullable=False),
        sa.Column('escalate_role', sa.String(50), nullable=True),
        sa.Column('notify_roles', sa.JSON(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sla_configs_module', 'sla_configs', ['module'])
    op.create_index('ix_sla_configs_entity', 'sla_configs', ['entity'])

    op.create_table(
        'governed_documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=False),
        sa.Column('entity_code', sa.String(100), nullable=True),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_type', 'entity_id', name='uq_governed_documents_entity'),
    )

    op.create_table(
        'approval_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('workflow_id', sa.Uuid(), nullable=False),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=False),
        sa.Column('entity_code', sa.String(100), nullable=True),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('current_level', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('required_role', sa.String(50), nullable=False),
        sa.Column('resolved_levels', sa.JSON(), nullable=False),
        sa.Column('escalated_levels', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('submitted_by', sa.String(100), nullable=False),
        sa.Column('submitted_by_name', sa.String(255), nullable=True),
        sa.Column('approved_by', sa.String(100), nullable=True),
        sa.Column('approved_by_name', sa.String(255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('level_entered_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['workflow_id'], ['workflow_definitions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approval_requests_workflow_id', 'approval_requests', ['workflow_id'])
    op.create_index('ix_approval_requests_entity_type', 'approval_requests', ['entity_type'])
    op.create_index('ix_approval_requests_entity_id', 'approval_requests', ['entity_id'])
    op.create_index('ix_approval_requests_status', 'approval_requests', ['status'])
    op.create_index('ix_approval_requests_required_role', 'approval_requests', ['required_role'])
    op.create_index('ix_approval_requests_due_at', 'approval_requests', ['due_at'])

    op.create_table(
        'approval_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('approval_id', sa.Uuid(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(100), nullable=False),
        sa.Column('actor_name', sa.String(255), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['approval_id'], ['approval_requests.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_approval_history_approval_id', 'approval_history', ['approval_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('actor_id', sa.String(100), nullable=True),
        sa.Column('actor_name', sa.String(255), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(100), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('before_state', sa.Text(), nullable=True),
        sa.Column('after_state', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_index('ix_approval_history_approval_id', table_name='approval_history')
    op.drop_table('approval_history')
    op.drop_table('approval_requests')
    op.drop_table('governed_documents')
    op.drop_table('sla_configs')
    op.drop_index('ix_approval_levels_workflow_id', table_name='approval_levels')
    op.drop_table('approval_levels')
    op.drop_table('workflow_definitions')
