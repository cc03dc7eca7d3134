"""
Provisioning Verifier.

Runs the schedule cloner and the resource provisioner for a deployment config,
then checks that the workspace ended up with enough agent profiles, agent
channels and tenant schedules. An incomplete result is retried once and,
if still incomplete, recorded as a `deployment_provisioning_incomplete` audit
entry. Incompleteness is reported as data, never raised.
"""
import logging
import uuid
from typing import Iterable, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from team_deployer.config.models import AgentProfile, AgentSchedule, AuditLog, Channel
from team_deployer.config.schema import DeployedTeamConfig, ProvisioningSummary, ResourceCounts
from team_deployer.config.settings import PROVISIONING_RETRY_ONCE
from team_deployer.services.resource_provisioner import ensure_agent_resources
from team_deployer.services.schedule_cloner import ScheduleClonerService

logger = logging.getLogger(__name__)

UUIDLike = Union[str, uuid.UUID]

PROVISIONING_INCOMPLETE_ACTION = "deployment_provisioning_incomplete"


def get_provisioning_issues(expected_agents: int, counts: ResourceCounts) -> List[str]:
    """
    Completeness predicate.

    Returns the unmet conditions, always in the order
    profiles_missing, channels_missing, no_schedules.
    """
    issues = []
    if counts.profiles < expected_agents:
        issues.append("profiles_missing")
    if counts.channels < expected_agents:
        issues.append("channels_missing")
    if expected_agents > 0 and counts.schedules <= 0:
        issues.append("no_schedules")
    return issues


def count_workspace_resources(session: Session, workspace_id: UUIDLike) -> ResourceCounts:
    workspace_uuid = workspace_id if isinstance(workspace_id, uuid.UUID) else uuid.UUID(str(workspace_id))
    profiles = session.query(func.count(AgentProfile.id)).filter(
        AgentProfile.agent_workspace_id == workspace_uuid,
        AgentProfile.is_agent == True,
    ).scalar()
    channels = session.query(func.count(Channel.id)).filter(
        Channel.workspace_id == workspace_uuid,
        Channel.is_agent_channel == True,
    ).scalar()
    schedules = session.query(func.count(AgentSchedule.id)).filter(
        AgentSchedule.workspace_id == workspace_uuid,
        AgentSchedule.is_template == False,
    ).scalar()
    return ResourceCounts(profiles=profiles or 0, channels=channels or 0, schedules=schedules or 0)


def _template_coverage(session: Session, agent_ids: List[uuid.UUID]):
    """Return (template row count, ids of agents without any template)."""
    if not agent_ids:
        return 0, []
    rows = session.query(AgentSchedule.agent_id, func.count(AgentSchedule.id)) \
                  .filter(AgentSchedule.is_template == True, AgentSchedule.agent_id.in_(agent_ids)) \
                  .group_by(AgentSchedule.agent_id) \
                  .all()
    per_agent = {agent_id: count for agent_id, count in rows}
    missing = [str(a) for a in agent_ids if a not in per_agent]
    return sum(per_agent.values()), missing


class ProvisioningVerifier:
    """Service that provisions a deployment's resources and verifies them."""

    @staticmethod
    def run_provisioning(session: Session, workspace_id: UUIDLike, config: DeployedTeamConfig,
                         channel_creator_id: Optional[UUIDLike] = None,
                         created_by: Optional[UUIDLike] = None,
                         extra_member_ids: Iterable[UUIDLike] = ()) -> None:
        agent_ids = [agent.id for agent in config.enabled_agents()]
        clone = ScheduleClonerService.clone_schedule_templates(session, agent_ids, workspace_id, created_by)
        for error in clone.errors:
            logger.error(f"Schedule cloning error in workspace {workspace_id}: {error}")
        ensure_agent_resources(session, workspace_id, config, channel_creator_id, extra_member_ids)

    @classmethod
    def provision_and_verify(cls, session: Session, workspace_id: UUIDLike, config: DeployedTeamConfig,
                             channel_creator_id: Optional[UUIDLike] = None,
                             created_by: Optional[UUIDLike] = None,
                             retry_once: Optional[bool] = None,
                             deployment_id: Optional[UUIDLike] = None,
                             extra_member_ids: Iterable[UUIDLike] = ()) -> ProvisioningSummary:
        """
        Provision the enabled agents of config and verify the result.

        Args:
            session: SQLAlchemy DB session
            workspace_id: Workspace being provisioned
            config: Active config whose enabled agents need resources
            channel_creator_id: Human profile recorded as channel creator and added to every agent channel
            created_by: Profile recorded on cloned schedules
            retry_once: Re-run the whole provisioning once when incomplete (defaults to PROVISIONING_RETRY_ONCE)
            deployment_id: Deployment being verified, recorded in the audit entry
            extra_member_ids: Further profiles added to every agent channel

        Returns:
            ProvisioningSummary with counts, issues and number of attempts
        """
        if retry_once is None:
            retry_once = PROVISIONING_RETRY_ONCE
        extra_member_ids = list(extra_member_ids)
        workspace_uuid = workspace_id if isinstance(workspace_id, uuid.UUID) else uuid.UUID(str(workspace_id))
        expected = len(config.enabled_agents())
        max_attempts = 2 if retry_once else 1

        attempts = 0
        issues: List[str] = []
        counts = ResourceCounts()
        while attempts < max_attempts:
            attempts += 1
            cls.run_provisioning(session, workspace_uuid, config, channel_creator_id, created_by, extra_member_ids)
            counts = count_workspace_resources(session, workspace_uuid)
            issues = get_provisioning_issues(expected, counts)
            if not issues:
                break
            logger.warning(
                f"Provisioning attempt {attempts} for workspace {workspace_uuid} incomplete: {issues} "
                f"(expected={expected}, profiles={counts.profiles}, channels={counts.channels}, "
                f"schedules={counts.schedules})"
            )

        agent_uuids = [uuid.UUID(agent.id) for agent in config.enabled_agents()]
        templates, without_templates = _template_coverage(session, agent_uuids)

        summary = ProvisioningSummary(
            is_complete=not issues,
            issues=issues,
            expected_agents=expected,
            profiles=counts.profiles,
            channels=counts.channels,
            schedules=counts.schedules,
            templates=templates,
            agents_without_templates=without_templates,
            attempts=attempts,
        )
        if issues:
            cls.record_incomplete(session, workspace_uuid, summary, deployment_id)
        return summary

    @staticmethod
    def record_incomplete(session: Session, workspace_id: uuid.UUID, summary: ProvisioningSummary,
                          deployment_id: Optional[UUIDLike] = None) -> None:
        """Write the audit entry for a provisioning run that stayed incomplete."""
        entity_id = None
        if deployment_id:
            entity_id = deployment_id if isinstance(deployment_id, uuid.UUID) else uuid.UUID(str(deployment_id))
        entry = AuditLog(
            workspace_id=workspace_id,
            action=PROVISIONING_INCOMPLETE_ACTION,
            entity_type="workspace_deployed_team" if entity_id else "workspace",
            entity_id=entity_id or workspace_id,
            event_metadata={
                "expected": {
                    "profiles": summary.expected_agents,
                    "channels": summary.expected_agents,
                    "schedules_min": 1 if summary.expected_agents else 0,
                },
                "actual": {
                    "profiles": summary.profiles,
                    "channels": summary.channels,
                    "schedules": summary.schedules,
                },
                "issues": summary.issues,
                "templates": summary.templates,
                "agents_without_templates": summary.agents_without_templates,
                "attempts": summary.attempts,
            },
        )
        session.add(entry)
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to write provisioning audit entry for workspace {workspace_id}: {e}")
