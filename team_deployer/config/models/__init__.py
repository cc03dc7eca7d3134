from .base import Base
from .template_models import (
    TeamTemplate, AiAgent, AgentTool, AiAgentTool, AgentSkill, AiAgentSkill,
    AgentMind, AgentRule, TeamAgent, TeamDelegation, TeamMind,
)
from .workspace_models import Workspace, WorkspaceMember, Plan, WorkspaceBilling, BillingAlert
from .deployment_models import WorkspaceDeployedTeam, DEPLOYMENT_STATUSES
from .resource_models import AgentProfile, Channel, ChannelMember
from .schedule_models import AgentSchedule
from .audit_models import AuditLog

__all__ = [
    'Base', 'TeamTemplate', 'AiAgent', 'AgentTool', 'AiAgentTool', 'AgentSkill', 'AiAgentSkill',
    'AgentMind', 'AgentRule', 'TeamAgent', 'TeamDelegation', 'TeamMind',
    'Workspace', 'WorkspaceMember', 'Plan', 'WorkspaceBilling', 'BillingAlert',
    'WorkspaceDeployedTeam', 'DEPLOYMENT_STATUSES',
    'AgentProfile', 'Channel', 'ChannelMember', 'AgentSchedule', 'AuditLog',
]
