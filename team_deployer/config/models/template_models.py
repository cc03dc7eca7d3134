from sqlalchemy import Column, String, Text, Boolean, Integer, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
import uuid

from .base import Base


class TeamTemplate(Base):
    """Reusable, tenant-independent team-of-agents definition (read-only to the deployer)."""
    __tablename__ = 'teams'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the team template")
    name = Column(String(255), nullable=False, comment="Display name of the team")
    slug = Column(String(255), nullable=False, unique=True, comment="Stable identifier of the team")
    head_agent_id = Column(UUID(as_uuid=True), nullable=True, comment="Agent that leads the team (ai_agents.id)")
    current_version = Column(Integer, nullable=True, default=1, comment="Version bumped whenever the template changes")

    team_agents = relationship("TeamAgent", back_populates="team", order_by="TeamAgent.display_order")


class AiAgent(Base):
    """Agent template: identity, prompt and model of a single agent."""
    __tablename__ = 'ai_agents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the agent")
    name = Column(String(255), nullable=False, comment="Display name of the agent")
    slug = Column(String(255), nullable=True, comment="Stable slug used as cross-reference key inside a deployment")
    description = Column(Text, nullable=True, comment="What the agent does")
    avatar_url = Column(String(1024), nullable=True, comment="Avatar image reference")
    system_prompt = Column(Text, nullable=False, default="", comment="System prompt given to the agent")
    model = Column(String(100), nullable=True, comment="Model identifier (defaults to DEFAULT_AGENT_MODEL)")
    provider = Column(String(100), nullable=True, comment="Model provider (defaults to DEFAULT_AGENT_PROVIDER)")


class AgentTool(Base):
    """Tool definition that can be assigned to agents."""
    __tablename__ = 'agent_tools'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the tool")
    name = Column(String(255), nullable=False, comment="Tool name exposed to the model")
    description = Column(Text, nullable=True, comment="Tool description")
    input_schema = Column(JSON, nullable=True, comment="JSON schema of the tool input")


class AiAgentTool(Base):
    """Assignment of a tool to an agent."""
    __tablename__ = 'ai_agent_tools'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="CASCADE"), nullable=False)
    tool_id = Column(UUID(as_uuid=True), ForeignKey('agent_tools.id', ondelete="SET NULL"), nullable=True)
    __table_args__ = (
        Index('ix_ai_agent_tools_agent_id', 'agent_id'),
    )

    tool = relationship("AgentTool")


class AgentSkill(Base):
    """Skill (instruction document) that can be attached to agents."""
    __tablename__ = 'agent_skills'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the skill")
    name = Column(String(255), nullable=False, comment="Skill name")
    skill_content = Column(Text, nullable=False, default="", comment="Skill body")


class AiAgentSkill(Base):
    """Assignment of a skill to an agent."""
    __tablename__ = 'ai_agent_skills'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="CASCADE"), nullable=False)
    skill_id = Column(UUID(as_uuid=True), ForeignKey('agent_skills.id', ondelete="SET NULL"), nullable=True)
    __table_args__ = (
        Index('ix_ai_agent_skills_agent_id', 'agent_id'),
    )

    skill = relationship("AgentSkill")


class AgentMind(Base):
    """Knowledge document, either owned by one agent or shared through team_mind."""
    __tablename__ = 'agent_mind'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the knowledge entry")
    agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="CASCADE"), nullable=True,
                      comment="Owning agent; NULL for shared team knowledge")
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=True, comment="Knowledge category (defaults to 'general')")
    is_enabled = Column(Boolean, nullable=False, default=True)
    __table_args__ = (
        Index('ix_agent_mind_agent_id', 'agent_id'),
    )


class AgentRule(Base):
    """Behavioural rule attached to an agent."""
    __tablename__ = 'agent_rules'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="CASCADE"), nullable=False)
    rule_type = Column(String(50), nullable=False)
    rule_content = Column(Text, nullable=False)
    priority = Column(Integer, nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    __table_args__ = (
        Index('ix_agent_rules_agent_id', 'agent_id'),
    )


class TeamAgent(Base):
    """Ordered membership of an agent in a team template."""
    __tablename__ = 'team_agents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id', ondelete="CASCADE"), nullable=False)
    agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="SET NULL"), nullable=True)
    role = Column(String(50), nullable=True, comment="Role of the agent inside the team (head, member)")
    display_order = Column(Integer, nullable=False, default=0)
    __table_args__ = (
        Index('ix_team_agents_team_id', 'team_id'),
    )

    team = relationship("TeamTemplate", back_populates="team_agents")
    agent = relationship("AiAgent")


class TeamDelegation(Base):
    """Delegation edge between two agents of a team template."""
    __tablename__ = 'team_delegations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id', ondelete="CASCADE"), nullable=False)
    from_agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="SET NULL"), nullable=True)
    to_agent_id = Column(UUID(as_uuid=True), ForeignKey('ai_agents.id', ondelete="SET NULL"), nullable=True)
    condition = Column(Text, nullable=True, comment="When the delegation applies")
    context_template = Column(Text, nullable=True, comment="Context passed along with the delegation")
    __table_args__ = (
        Index('ix_team_delegations_team_id', 'team_id'),
    )

    from_agent = relationship("AiAgent", foreign_keys=[from_agent_id])
    to_agent = relationship("AiAgent", foreign_keys=[to_agent_id])


class TeamMind(Base):
    """Shared knowledge attached to a team template."""
    __tablename__ = 'team_mind'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id', ondelete="CASCADE"), nullable=False)
    mind_id = Column(UUID(as_uuid=True), ForeignKey('agent_mind.id', ondelete="SET NULL"), nullable=True)
    __table_args__ = (
        Index('ix_team_mind_team_id', 'team_id'),
    )

    mind = relationship("AgentMind")
