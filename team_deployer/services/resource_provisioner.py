"""
Resource Provisioner.

Ensures every enabled agent of a deployment has an identity (agent profile),
workspace membership, an agent channel, and channel memberships.

Each step is check-then-insert. A uniqueness conflict on insert means a
concurrent caller created the row first, so the winner's row is re-read and
used. The core (`ResourceProvisioner.provision`) collects per-agent errors in
a ProvisioningReport; `ensure_agent_resources` is the log-and-continue adapter
used by orchestration code.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from team_deployer.config.models import AgentProfile, Channel, ChannelMember, WorkspaceMember
from team_deployer.config.schema import (
    AgentResources, DeployedAgent, DeployedTeamConfig, ProvisioningError, ProvisioningReport, ResourceCleanup,
)
from team_deployer.config.settings import AGENT_EMAIL_DOMAIN_SUFFIX
from team_deployer.services.errors import is_unique_violation

logger = logging.getLogger(__name__)

UUIDLike = Union[str, uuid.UUID]


def _as_uuid(value: UUIDLike) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def agent_email(agent_slug: str, workspace_id: UUIDLike) -> str:
    """Deterministic synthetic address: {slug}@agent.workspace-{first 8 of id}.local"""
    return f"{agent_slug}@agent.workspace-{str(workspace_id)[:8]}.{AGENT_EMAIL_DOMAIN_SUFFIX}"


def agent_channel_name(agent_slug: str) -> str:
    return f"agent-{agent_slug}"


def _ensure_row(session: Session, model, lookup: Dict[str, Any], values: Dict[str, Any]):
    """Return the row matching lookup, inserting it (with values) when absent."""
    existing = session.query(model).filter_by(**lookup).first()
    if existing is not None:
        return existing

    row = model(**lookup, **values)
    session.add(row)
    try:
        session.commit()
        return row
    except IntegrityError as e:
        session.rollback()
        if not is_unique_violation(e):
            raise
        winner = session.query(model).filter_by(**lookup).first()
        if winner is None:
            raise
        return winner


class ResourceProvisioner:
    """Service that provisions the per-agent runtime resources of a workspace."""

    @staticmethod
    def ensure_agent_profile(session: Session, workspace_id: uuid.UUID, agent: DeployedAgent) -> AgentProfile:
        return _ensure_row(
            session,
            AgentProfile,
            {"linked_agent_id": _as_uuid(agent.id), "agent_workspace_id": workspace_id},
            {
                "email": agent_email(agent.slug, workspace_id),
                "full_name": agent.name,
                "avatar_url": agent.avatar_url,
                "is_agent": True,
                "agent_slug": agent.slug,
            },
        )

    @staticmethod
    def ensure_workspace_member(session: Session, workspace_id: uuid.UUID, profile_id: uuid.UUID) -> WorkspaceMember:
        # Agents are members, never owners
        return _ensure_row(
            session,
            WorkspaceMember,
            {"workspace_id": workspace_id, "profile_id": profile_id},
            {"role": "member"},
        )

    @staticmethod
    def ensure_agent_channel(session: Session, workspace_id: uuid.UUID, agent: DeployedAgent,
                             creator_id: Optional[uuid.UUID]) -> Channel:
        return _ensure_row(
            session,
            Channel,
            {"workspace_id": workspace_id, "name": agent_channel_name(agent.slug)},
            {
                "description": f"Communication channel for {agent.name}",
                "is_agent_channel": True,
                "linked_agent_id": _as_uuid(agent.id),
                "created_by": creator_id,
            },
        )

    @staticmethod
    def ensure_channel_member(session: Session, channel_id: uuid.UUID, profile_id: uuid.UUID) -> ChannelMember:
        return _ensure_row(session, ChannelMember, {"channel_id": channel_id, "profile_id": profile_id}, {})

    @classmethod
    def provision(cls, session: Session, workspace_id: UUIDLike, config: DeployedTeamConfig,
                  channel_creator_id: Optional[UUIDLike] = None,
                  extra_member_ids: Iterable[UUIDLike] = ()) -> ProvisioningReport:
        """
        Provision identities, memberships and channels for every enabled agent.

        Failures of one agent never abort its siblings; they are collected in
        the returned report so the next run can pick up where this one stopped.
        """
        workspace_uuid = _as_uuid(workspace_id)
        creator_uuid = _as_uuid(channel_creator_id) if channel_creator_id else None
        extra_uuids = [_as_uuid(m) for m in extra_member_ids if m]
        report = ProvisioningReport()
        resources: Dict[str, AgentResources] = {}
        profile_ids: List[uuid.UUID] = []

        enabled = config.enabled_agents()

        # 1. Identities and workspace memberships
        for agent in enabled:
            resource = AgentResources(agent_id=agent.id, agent_slug=agent.slug, agent_name=agent.name)
            resources[agent.id] = resource
            try:
                profile = cls.ensure_agent_profile(session, workspace_uuid, agent)
                resource.profile_id = str(profile.id)
                profile_ids.append(profile.id)
            except Exception as e:
                session.rollback()
                report.errors.append(ProvisioningError(agent_slug=agent.slug, step="profile", message=str(e)))
                continue
            try:
                cls.ensure_workspace_member(session, workspace_uuid, profile.id)
            except Exception as e:
                session.rollback()
                report.errors.append(ProvisioningError(agent_slug=agent.slug, step="workspace_member", message=str(e)))

        # 2. Channels; every agent profile plus the human creator joins every agent channel
        for agent in enabled:
            try:
                channel = cls.ensure_agent_channel(session, workspace_uuid, agent, creator_uuid)
            except Exception as e:
                session.rollback()
                report.errors.append(ProvisioningError(agent_slug=agent.slug, step="channel", message=str(e)))
                continue
            resources[agent.id].channel_id = str(channel.id)

            members = list(profile_ids)
            if creator_uuid:
                members.append(creator_uuid)
            members.extend(m for m in extra_uuids if m != creator_uuid)
            for member_id in members:
                try:
                    cls.ensure_channel_member(session, channel.id, member_id)
                except Exception as e:
                    session.rollback()
                    report.errors.append(ProvisioningError(
                        agent_slug=agent.slug, step="channel_member", message=f"{member_id}: {e}",
                    ))

        report.resources = list(resources.values())
        return report

    @staticmethod
    def get_workspace_agent_resources(session: Session, workspace_id: UUIDLike) -> List[AgentResources]:
        """List the agent profiles of a workspace with their agent channels."""
        workspace_uuid = _as_uuid(workspace_id)
        profiles = session.query(AgentProfile).filter(
            AgentProfile.agent_workspace_id == workspace_uuid,
            AgentProfile.is_agent == True,
        ).all()
        channels = session.query(Channel).filter(
            Channel.workspace_id == workspace_uuid,
            Channel.is_agent_channel == True,
        ).all()
        channel_by_agent = {c.linked_agent_id: c.id for c in channels if c.linked_agent_id}
        return [
            AgentResources(
                agent_id=str(p.linked_agent_id),
                agent_slug=p.agent_slug,
                agent_name=p.full_name,
                profile_id=str(p.id),
                channel_id=str(channel_by_agent[p.linked_agent_id]) if p.linked_agent_id in channel_by_agent else None,
            )
            for p in profiles
        ]

    @staticmethod
    def cleanup_agent_resources(session: Session, workspace_id: UUIDLike) -> ResourceCleanup:
        """
        Remove the agent resources of a workspace in one transaction.

        Deletes channel memberships of agent profiles and of agent channels,
        the agents' workspace memberships, the agent channels and the agent
        profiles. Human channels and members are left untouched.
        """
        workspace_uuid = _as_uuid(workspace_id)
        profile_ids = [row.id for row in session.query(AgentProfile.id).filter(
            AgentProfile.agent_workspace_id == workspace_uuid,
            AgentProfile.is_agent == True,
        )]
        channel_ids = [row.id for row in session.query(Channel.id).filter(
            Channel.workspace_id == workspace_uuid,
            Channel.is_agent_channel == True,
        )]
        cleanup = ResourceCleanup()
        if not profile_ids and not channel_ids:
            return cleanup

        try:
            cleanup.channel_members = session.query(ChannelMember).filter(
                or_(ChannelMember.profile_id.in_(profile_ids), ChannelMember.channel_id.in_(channel_ids))
            ).delete(synchronize_session=False)
            cleanup.workspace_members = session.query(WorkspaceMember).filter(
                WorkspaceMember.workspace_id == workspace_uuid,
                WorkspaceMember.profile_id.in_(profile_ids),
            ).delete(synchronize_session=False)
            cleanup.channels = session.query(Channel).filter(
                Channel.id.in_(channel_ids)
            ).delete(synchronize_session=False)
            cleanup.profiles = session.query(AgentProfile).filter(
                AgentProfile.id.in_(profile_ids)
            ).delete(synchronize_session=False)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

        logger.info(
            f"Removed agent resources of workspace {workspace_uuid}: {cleanup.profiles} profiles, "
            f"{cleanup.channels} channels, {cleanup.channel_members} channel members"
        )
        return cleanup


def ensure_agent_resources(session: Session, workspace_id: UUIDLike, config: DeployedTeamConfig,
                           channel_creator_id: Optional[UUIDLike] = None,
                           extra_member_ids: Iterable[UUIDLike] = ()) -> None:
    """Provision agent resources, logging failures instead of raising."""
    try:
        report = ResourceProvisioner.provision(session, workspace_id, config, channel_creator_id, extra_member_ids)
    except Exception as e:
        session.rollback()
        logger.error(f"Provisioning agent resources for workspace {workspace_id} failed: {e}")
        return

    for error in report.errors:
        logger.error(
            f"Provisioning step {error.step} failed for agent {error.agent_slug} "
            f"in workspace {workspace_id}: {error.message}"
        )
