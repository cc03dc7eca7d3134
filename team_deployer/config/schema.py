from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Any


class DeployedTool(BaseModel):
    """Tool available to a deployed agent."""
    id: str
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)


class DeployedSkill(BaseModel):
    """Skill document attached to a deployed agent."""
    id: str
    name: str
    slug: str
    content: str = ""


class DeployedMind(BaseModel):
    """Knowledge entry (agent-owned or shared by the team)."""
    id: str
    name: str
    slug: str
    content: str = ""
    category: str = "general"


class DeployedRule(BaseModel):
    """Behavioural rule of a deployed agent."""
    id: str
    rule_type: str
    content: str
    priority: int = 0


class DeployedAgent(BaseModel):
    """Fully denormalized agent inside a deployment config."""
    id: str
    slug: str = Field(..., description="Stable key used by delegations and customizations")
    name: str
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    system_prompt: str = ""
    model: str
    provider: str
    is_enabled: bool = True
    tools: List[DeployedTool] = Field(default_factory=list)
    skills: List[DeployedSkill] = Field(default_factory=list)
    mind: List[DeployedMind] = Field(default_factory=list)
    rules: List[DeployedRule] = Field(default_factory=list)


class DeployedDelegation(BaseModel):
    """Delegation edge resolved to agent slugs."""
    id: str
    from_agent_slug: str = ""
    to_agent_slug: str = ""
    condition: Optional[str] = None
    context_template: Optional[str] = None
    is_enabled: bool = True


class DeployedTeamInfo(BaseModel):
    id: str
    name: str
    slug: str
    head_agent_id: Optional[str] = None


class DeployedTeamConfig(BaseModel):
    """Self-contained snapshot of a team template, as read by the agent runtime."""
    team: DeployedTeamInfo
    agents: List[DeployedAgent] = Field(default_factory=list)
    delegations: List[DeployedDelegation] = Field(default_factory=list)
    team_mind: List[DeployedMind] = Field(default_factory=list)

    def enabled_agents(self) -> List[DeployedAgent]:
        return [agent for agent in self.agents if agent.is_enabled]


class AgentOverride(BaseModel):
    """
    Per-agent override. Only the fields listed here can be overridden;
    a field left as None is not applied.
    """
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    is_enabled: Optional[bool] = None


class Customizations(BaseModel):
    """Tenant-authored deltas over a deployment's base snapshot."""
    disabled_agents: List[str] = Field(default_factory=list, description="Slugs of disabled agents")
    disabled_delegations: List[str] = Field(default_factory=list, description="Ids of disabled delegations")
    added_mind: List[DeployedMind] = Field(default_factory=list, description="Workspace-specific knowledge")
    agent_overrides: Dict[str, AgentOverride] = Field(default_factory=dict, description="Overrides keyed by agent slug")


class CustomizationsUpdate(BaseModel):
    """Partial customization write; fields left as None keep their current value."""
    disabled_agents: Optional[List[str]] = None
    disabled_delegations: Optional[List[str]] = None
    added_mind: Optional[List[DeployedMind]] = None
    agent_overrides: Optional[Dict[str, AgentOverride]] = None


class ResourceCounts(BaseModel):
    profiles: int = 0
    channels: int = 0
    schedules: int = 0


class ProvisioningSummary(BaseModel):
    """Outcome of provisioning plus completeness verification for one workspace."""
    is_complete: bool
    issues: List[str] = Field(default_factory=list)
    expected_agents: int
    profiles: int
    channels: int
    schedules: int
    templates: int = 0
    agents_without_templates: List[str] = Field(default_factory=list)
    attempts: int = 1


class DeployResult(BaseModel):
    """Structured result of a deployment attempt; deployment entry points never raise."""
    deployed: bool
    team_id: Optional[str] = None
    deployment_id: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    already_deployed: bool = False
    provisioning: Optional[ProvisioningSummary] = None


class CloneResult(BaseModel):
    """Outcome of cloning schedule templates into a workspace."""
    created: int = 0
    skipped: int = 0
    conflicts: int = 0
    errors: List[str] = Field(default_factory=list)


class AgentResources(BaseModel):
    """Runtime resources provisioned for one agent in a workspace."""
    agent_id: str
    agent_slug: str
    agent_name: str
    profile_id: Optional[str] = None
    channel_id: Optional[str] = None


class ProvisioningError(BaseModel):
    agent_slug: str
    step: str
    message: str


class ProvisioningReport(BaseModel):
    """Result of one provisioning pass; per-agent failures are collected, not raised."""
    resources: List[AgentResources] = Field(default_factory=list)
    errors: List[ProvisioningError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class TierChangeResult(BaseModel):
    """Result of applying a queued agent tier change."""
    applied: bool
    workspace_id: str
    tier: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    deploy_error: Optional[str] = None
    deployment_id: Optional[str] = None


class ResourceCleanup(BaseModel):
    """Rows removed when a workspace's agent resources are cleaned up."""
    profiles: int = 0
    channels: int = 0
    channel_members: int = 0
    workspace_members: int = 0


class WorkspaceDeployment(BaseModel):
    """One workspace that ended up running the team of a multi-workspace deploy."""
    workspace_id: str
    deployment_id: Optional[str] = None
    already_deployed: bool = False
    agent_resources: List[AgentResources] = Field(default_factory=list)


class WorkspaceDeployFailure(BaseModel):
    workspace_id: str
    error_code: Optional[str] = None
    error: Optional[str] = None


class BulkDeployResult(BaseModel):
    """Per-workspace outcome of deploying one team to many workspaces."""
    deployments: List[WorkspaceDeployment] = Field(default_factory=list)
    failed: List[WorkspaceDeployFailure] = Field(default_factory=list)


class RefreshFailure(BaseModel):
    deployment_id: str
    error: str


class RefreshResult(BaseModel):
    """Outcome of rebuilding every active deployment from its source team."""
    success: int = 0
    failed: List[RefreshFailure] = Field(default_factory=list)
