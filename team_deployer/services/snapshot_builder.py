"""
Config Snapshot Builder.

Materializes an immutable team template into a fully denormalized
DeployedTeamConfig that can be stored on a deployment row.
"""
import logging
import re
import uuid
from typing import List, Union

from sqlalchemy.orm import Session

from team_deployer.config.models import (
    TeamTemplate, AiAgent, AiAgentTool, AiAgentSkill, AgentMind, AgentRule,
    TeamAgent, TeamDelegation, TeamMind,
)
from team_deployer.config.schema import (
    DeployedTeamConfig, DeployedTeamInfo, DeployedAgent, DeployedDelegation,
    DeployedMind, DeployedRule, DeployedSkill, DeployedTool,
)
from team_deployer.config.settings import DEFAULT_AGENT_MODEL, DEFAULT_AGENT_PROVIDER
from team_deployer.services.errors import TemplateNotFound, IncompleteAgentReference

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def _as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _mind_entry(mind: AgentMind) -> DeployedMind:
    return DeployedMind(
        id=str(mind.id),
        name=mind.name,
        slug=mind.slug,
        content=mind.content or "",
        category=mind.category or "general",
    )


class ConfigSnapshotBuilder:
    """Service that reads a team template and builds its deployable snapshot."""

    @staticmethod
    def get_template_version(session: Session, team_id: Union[str, uuid.UUID]) -> int:
        """Return the template's current version (1 when unset)."""
        team = session.get(TeamTemplate, _as_uuid(team_id))
        if team is None:
            raise TemplateNotFound(f"Team not found: {team_id}")
        return team.current_version or 1

    @classmethod
    def build_config_snapshot(cls, session: Session, team_id: Union[str, uuid.UUID]) -> DeployedTeamConfig:
        """
        Build a complete config snapshot from a team template.

        Args:
            session: SQLAlchemy DB session
            team_id: UUID of the team template

        Returns:
            DeployedTeamConfig with every agent enabled

        Raises:
            TemplateNotFound: If the team does not exist
            IncompleteAgentReference: If a team-agent link has no agent
        """
        team = session.get(TeamTemplate, _as_uuid(team_id))
        if team is None:
            raise TemplateNotFound(f"Team not found: {team_id}")

        team_agents = session.query(TeamAgent) \
                             .filter(TeamAgent.team_id == team.id) \
                             .order_by(TeamAgent.display_order) \
                             .all()

        agents = []
        for link in team_agents:
            if link.agent is None:
                raise IncompleteAgentReference(
                    f"Team agent link {link.id} of team {team.id} has no associated agent"
                )
            agents.append(cls._build_agent(session, link.agent))

        delegations = [
            DeployedDelegation(
                id=str(d.id),
                from_agent_slug=(d.from_agent.slug or slugify(d.from_agent.name)) if d.from_agent else "",
                to_agent_slug=(d.to_agent.slug or slugify(d.to_agent.name)) if d.to_agent else "",
                condition=d.condition,
                context_template=d.context_template,
                is_enabled=True,
            )
            for d in session.query(TeamDelegation).filter(TeamDelegation.team_id == team.id).all()
        ]

        team_mind = [
            _mind_entry(tm.mind)
            for tm in session.query(TeamMind).filter(TeamMind.team_id == team.id).all()
            if tm.mind is not None
        ]

        return DeployedTeamConfig(
            team=DeployedTeamInfo(
                id=str(team.id),
                name=team.name,
                slug=team.slug,
                head_agent_id=str(team.head_agent_id) if team.head_agent_id else None,
            ),
            agents=agents,
            delegations=delegations,
            team_mind=team_mind,
        )

    @staticmethod
    def _build_agent(session: Session, agent: AiAgent) -> DeployedAgent:
        tools: List[DeployedTool] = [
            DeployedTool(
                id=str(link.tool.id),
                name=link.tool.name,
                description=link.tool.description or "",
                input_schema=link.tool.input_schema or {},
            )
            for link in session.query(AiAgentTool).filter(AiAgentTool.agent_id == agent.id).all()
            if link.tool is not None
        ]
        if not tools:
            logger.warning(f"Agent \"{agent.name}\" ({agent.id}) has no tools assigned")

        skills = [
            DeployedSkill(
                id=str(link.skill.id),
                name=link.skill.name,
                slug=slugify(link.skill.name),
                content=link.skill.skill_content or "",
            )
            for link in session.query(AiAgentSkill).filter(AiAgentSkill.agent_id == agent.id).all()
            if link.skill is not None
        ]

        mind = [
            _mind_entry(m)
            for m in session.query(AgentMind).filter(
                AgentMind.agent_id == agent.id,
                AgentMind.is_enabled == True,
            ).all()
        ]

        rules = [
            DeployedRule(id=str(r.id), rule_type=r.rule_type, content=r.rule_content, priority=r.priority or 0)
            for r in session.query(AgentRule).filter(
                AgentRule.agent_id == agent.id,
                AgentRule.is_enabled == True,
            ).order_by(AgentRule.priority).all()
        ]

        return DeployedAgent(
            id=str(agent.id),
            slug=agent.slug or slugify(agent.name),
            name=agent.name,
            description=agent.description,
            avatar_url=agent.avatar_url,
            system_prompt=agent.system_prompt or "",
            model=agent.model or DEFAULT_AGENT_MODEL,
            provider=agent.provider or DEFAULT_AGENT_PROVIDER,
            is_enabled=True,
            tools=tools,
            skills=skills,
            mind=mind,
            rules=rules,
        )
