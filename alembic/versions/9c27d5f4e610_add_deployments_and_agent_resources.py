"""add_deployments_and_agent_resources

Revision ID: 9c27d5f4e610
Revises: 3b8e41c07a12
Create Date: 2026-09-14 11:40:27.004512

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '9c27d5f4e610'
down_revision: Union[str, Sequence[str], None] = '3b8e41c07a12'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Add deployment, schedule and per-agent resource tables.

    Changes:
    1. Create workspace_deployed_teams with a partial unique index allowing one active row per workspace
    2. Create agent_schedules (templates and per-workspace clones)
    3. Create agent_profiles, channels and channel_members
    4. Create audit_logs and billing_alerts
    """
    op.create_table(
        'workspace_deployed_teams',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('source_team_id', sa.UUID(), nullable=True),
        sa.Column('source_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('base_config', sa.JSON(), nullable=False),
        sa.Column('customizations', sa.JSON(), nullable=False),
        sa.Column('active_config', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('previous_deployment_id', sa.UUID(), nullable=True),
        sa.Column('deployed_by', sa.UUID(), nullable=True),
        sa.Column('last_customized_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_customized_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_team_id'], ['teams.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_workspace_deployed_teams_workspace_id', 'workspace_deployed_teams', ['workspace_id'])
    op.create_index(
        'uq_workspace_deployed_teams_active', 'workspace_deployed_teams', ['workspace_id'],
        unique=True, postgresql_where=sa.text("status = 'active'")
    )

    op.create_table(
        'agent_schedules',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('cron_expression', sa.String(100), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=True),
        sa.Column('task_prompt', sa.Text(), nullable=True),
        sa.Column('is_template', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('next_run_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('agent_id', 'workspace_id', 'name', name='uq_agent_schedules_agent_workspace_name')
    )
    op.create_index('ix_agent_schedules_workspace_id', 'agent_schedules', ['workspace_id'])
    op.create_index('ix_agent_schedules_agent_template', 'agent_schedules', ['agent_id', 'is_template'])

    op.create_table(
        'agent_profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('avatar_url', sa.String(1024), nullable=True),
        sa.Column('is_agent', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('agent_slug', sa.String(255), nullable=False),
        sa.Column('linked_agent_id', sa.UUID(), nullable=False),
        sa.Column('agent_workspace_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['agent_workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('linked_agent_id', 'agent_workspace_id', name='uq_agent_profiles_agent_workspace')
    )
    op.create_index('ix_agent_profiles_workspace_id', 'agent_profiles', ['agent_workspace_id'])
    op.create_table(
        'channels',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_agent_channel', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('linked_agent_id', sa.UUID(), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'name', name='uq_channels_workspace_name')
    )
    op.create_table(
        'channel_members',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('channel_id', sa.UUID(), nullable=False),
        sa.Column('profile_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['channel_id'], ['channels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('channel_id', 'profile_id', name='uq_channel_members_channel_profile')
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.UUID(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_workspace_action', 'audit_logs', ['workspace_id', 'action'])
    op.create_table(
        'billing_alerts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=True),
        sa.Column('alert_type', sa.String(50), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_billing_alerts_workspace_id', 'billing_alerts', ['workspace_id'])


def downgrade() -> None:
    """
    Remove deployment, schedule and per-agent resource tables.
    """
    op.drop_index('ix_billing_alerts_workspace_id', table_name='billing_alerts')
    op.drop_table('billing_alerts')
    op.drop_index('ix_audit_logs_workspace_action', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('channel_members')
    op.drop_table('channels')
    op.drop_index('ix_agent_profiles_workspace_id', table_name='agent_profiles')
    op.drop_table('agent_profiles')
    op.drop_index('ix_agent_schedules_agent_template', table_name='agent_schedules')
    op.drop_index('ix_agent_schedules_workspace_id', table_name='agent_schedules')
    op.drop_table('agent_schedules')
    op.drop_index('uq_workspace_deployed_teams_active', table_name='workspace_deployed_teams')
    op.drop_index('ix_workspace_deployed_teams_workspace_id', table_name='workspace_deployed_teams')
    op.drop_table('workspace_deployed_teams')
