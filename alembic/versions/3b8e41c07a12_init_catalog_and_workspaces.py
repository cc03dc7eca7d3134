"""init_catalog_and_workspaces

Revision ID: 3b8e41c07a12
Revises:
Create Date: 2026-09-14 10:12:03.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b8e41c07a12'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema.

    Creates the team template catalog (teams, ai_agents and their tools,
    skills, knowledge, rules, team membership, delegations and shared
    knowledge) plus workspaces, workspace members, plans and billing.
    """
    op.create_table(
        'teams',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('head_agent_id', sa.UUID(), nullable=True),
        sa.Column('current_version', sa.Integer(), nullable=True, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_table(
        'ai_agents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(1024), nullable=True),
        sa.Column('system_prompt', sa.Text(), nullable=False, server_default=''),
        sa.Column('model', sa.String(100), nullable=True),
        sa.Column('provider', sa.String(100), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'agent_tools',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('input_schema', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'ai_agent_tools',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('tool_id', sa.UUID(), nullable=True),
        sa.ForeignKeyConstraint(['agent_id'], ['ai_agents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tool_id'], ['agent_tools.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ai_agent_tools_agent_id', 'ai_agent_tools', ['agent_id'])
    op.create_table(
        'agent_skills',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('skill_content', sa.Text(), nullable=False, server_default=''),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'ai_agent_skills',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('skill_id', sa.UUID(), nullable=True),
        sa.ForeignKeyConstraint(['agent_id'], ['ai_agents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['skill_id'], ['agent_skills.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ai_agent_skills_agent_id', 'ai_agent_skills', ['agent_id'])
    op.create_table(
        'agent_mind',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['agent_id'], ['ai_agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_agent_mind_agent_id', 'agent_mind', ['agent_id'])
    op.create_table(
        'agent_rules',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('rule_type', sa.String(50), nullable=False),
        sa.Column('rule_content', sa.Text(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=True),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['agent_id'], ['ai_agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_agent_rules_agent_id', 'agent_rules', ['agent_id'])
    op.create_table(
        'team_agents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('team_id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=True),
        sa.Column('role', sa.String(50), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['agent_id'], ['ai_agents.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_team_agents_team_id', 'team_agents', ['team_id'])
    op.create_table(
        'team_delegations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('team_id', sa.UUID(), nullable=False),
        sa.Column('from_agent_id', sa.UUID(), nullable=True),
        sa.Column('to_agent_id', sa.UUID(), nullable=True),
        sa.Column('condition', sa.Text(), nullable=True),
        sa.Column('context_template', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_agent_id'], ['ai_agents.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['to_agent_id'], ['ai_agents.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_team_delegations_team_id', 'team_delegations', ['team_id'])
    op.create_table(
        'team_mind',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('team_id', sa.UUID(), nullable=False),
        sa.Column('mind_id', sa.UUID(), nullable=True),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['mind_id'], ['agent_mind.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_team_mind_team_id', 'team_mind', ['team_id'])

    op.create_table(
        'workspaces',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'workspace_members',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('profile_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='member'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'profile_id', name='uq_workspace_members_workspace_profile')
    )
    op.create_table(
        'plans',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('team_id', sa.UUID(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_table(
        'workspace_billing',
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('agent_tier', sa.String(50), nullable=False, server_default='none'),
        sa.Column('agent_status', sa.String(50), nullable=True),
        sa.Column('agent_tier_pending', sa.String(50), nullable=True),
        sa.Column('agent_tier_pending_effective_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('agent_deploy_status', sa.String(50), nullable=True),
        sa.Column('agent_deploy_error', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('workspace_id')
    )
    op.create_index('ix_workspace_billing_pending', 'workspace_billing', ['agent_tier_pending'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_workspace_billing_pending', table_name='workspace_billing')
    op.drop_table('workspace_billing')
    op.drop_table('plans')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')
    op.drop_index('ix_team_mind_team_id', table_name='team_mind')
    op.drop_table('team_mind')
    op.drop_index('ix_team_delegations_team_id', table_name='team_delegations')
    op.drop_table('team_delegations')
    op.drop_index('ix_team_agents_team_id', table_name='team_agents')
    op.drop_table('team_agents')
    op.drop_index('ix_agent_rules_agent_id', table_name='agent_rules')
    op.drop_table('agent_rules')
    op.drop_index('ix_agent_mind_agent_id', table_name='agent_mind')
    op.drop_table('agent_mind')
    op.drop_index('ix_ai_agent_skills_agent_id', table_name='ai_agent_skills')
    op.drop_table('ai_agent_skills')
    op.drop_table('agent_skills')
    op.drop_index('ix_ai_agent_tools_agent_id', table_name='ai_agent_tools')
    op.drop_table('ai_agent_tools')
    op.drop_table('agent_tools')
    op.drop_table('ai_agents')
    op.drop_table('teams')
