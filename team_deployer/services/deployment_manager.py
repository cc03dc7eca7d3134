"""
Deployment Lifecycle Manager.

Creates, replaces and maintains the deployed team of a workspace. A new
deployment is staged as `pending`, provisioned and verified, and only then
swapped in for the previous active deployment, so a workspace never loses
its working team because a replacement failed half-way.

Deploy entry points never raise: every failure comes back as a DeployResult
with an error code. Admin operations on an existing deployment raise
DeploymentNotFound when the workspace has no active deployment.
"""
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from team_deployer.config.models import AgentSchedule, Plan, Workspace, WorkspaceDeployedTeam
from team_deployer.config.schema import (
    BulkDeployResult, Customizations, CustomizationsUpdate, DeployedTeamConfig, DeployResult, ProvisioningSummary,
    RefreshFailure, RefreshResult, WorkspaceDeployFailure, WorkspaceDeployment,
)
from team_deployer.config.settings import DEPLOYMENT_INSERT_RETRIES, DEPLOYMENT_RETRY_DELAY_SECONDS
from team_deployer.services.customization_overlay import (
    apply_customizations, empty_customizations, merge_customizations,
)
from team_deployer.services.errors import (
    ConflictError, DeploymentError, DeploymentNotFound, DeployTargetMissing, PlanNotFound,
    TransientStoreError, is_transient, is_unique_violation,
)
from team_deployer.services.provisioning_verifier import ProvisioningVerifier
from team_deployer.services.resource_provisioner import ResourceProvisioner
from team_deployer.services.snapshot_builder import ConfigSnapshotBuilder

logger = logging.getLogger(__name__)

UUIDLike = Union[str, uuid.UUID]


def _as_uuid(value: UUIDLike) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _as_json(model) -> Dict[str, Any]:
    return model.model_dump(mode="json")


def provisioning_incomplete_error(summary: ProvisioningSummary) -> str:
    details = {
        "issues": summary.issues,
        "expected_agents": summary.expected_agents,
        "profiles": summary.profiles,
        "channels": summary.channels,
        "schedules": summary.schedules,
        "templates": summary.templates,
    }
    return f"provisioning_incomplete:{json.dumps(details)}"


def deployment_to_dict(deployment: WorkspaceDeployedTeam) -> Dict[str, Any]:
    """Serialize a deployment row for API responses."""
    return {
        "id": str(deployment.id),
        "workspace_id": str(deployment.workspace_id),
        "source_team_id": str(deployment.source_team_id) if deployment.source_team_id else None,
        "source_version": deployment.source_version,
        "status": deployment.status,
        "previous_deployment_id": str(deployment.previous_deployment_id) if deployment.previous_deployment_id else None,
        "deployed_by": str(deployment.deployed_by) if deployment.deployed_by else None,
        "base_config": deployment.base_config,
        "customizations": deployment.customizations,
        "active_config": deployment.active_config,
        "last_customized_at": deployment.last_customized_at.isoformat() if deployment.last_customized_at else None,
        "last_customized_by": str(deployment.last_customized_by) if deployment.last_customized_by else None,
    }


class DeploymentLifecycleService:
    """Service managing the deployed team of each workspace."""

    # ---- lookups ----

    @staticmethod
    def get_workspace_deployment(session: Session, workspace_id: UUIDLike) -> Optional[WorkspaceDeployedTeam]:
        """Return the active deployment of the workspace, or None."""
        return session.query(WorkspaceDeployedTeam).filter(
            WorkspaceDeployedTeam.workspace_id == _as_uuid(workspace_id),
            WorkspaceDeployedTeam.status == "active",
        ).first()

    @classmethod
    def _require_deployment(cls, session: Session, workspace_id: UUIDLike) -> WorkspaceDeployedTeam:
        deployment = cls.get_workspace_deployment(session, workspace_id)
        if deployment is None:
            raise DeploymentNotFound(f"No active deployment found for workspace {workspace_id}")
        return deployment

    @staticmethod
    def _workspace_owner(session: Session, workspace_id: uuid.UUID) -> Optional[uuid.UUID]:
        workspace = session.get(Workspace, workspace_id)
        if workspace is None:
            logger.warning(f"Workspace {workspace_id} not found while resolving its owner")
            return None
        return workspace.owner_id

    @staticmethod
    def _resolve_plan_team(session: Session, plan_slug: str) -> uuid.UUID:
        plan = session.query(Plan).filter(Plan.slug == plan_slug, Plan.is_active == True).first()
        if plan is None:
            raise PlanNotFound(f"Plan not found: {plan_slug}")
        if plan.team_id is None:
            raise DeployTargetMissing(f"Plan {plan_slug} has no associated team")
        return plan.team_id

    @staticmethod
    def get_workspace_agent_resources(session: Session, workspace_id: UUIDLike):
        return ResourceProvisioner.get_workspace_agent_resources(session, workspace_id)

    # ---- deploy ----

    @classmethod
    def auto_deploy_team_for_plan(cls, session: Session, workspace_id: UUIDLike, plan_slug: str,
                                  created_by: Optional[UUIDLike] = None) -> DeployResult:
        """
        Deploy the team linked to a plan into the workspace.

        Re-running for a workspace that already runs the plan's team keeps the
        existing deployment and only re-verifies its resources.
        """
        try:
            team_id = cls._resolve_plan_team(session, plan_slug)
        except DeploymentError as e:
            logger.info(f"Auto-deploy for workspace {workspace_id} skipped: {e}")
            return DeployResult(deployed=False, error_code=e.error_code, error=str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Plan lookup for {plan_slug} failed: {e}")
            return DeployResult(deployed=False, error_code="store_error", error=str(e))
        return cls.deploy_team(session, workspace_id, team_id, created_by)

    @classmethod
    def deploy_team(cls, session: Session, workspace_id: UUIDLike, team_id: UUIDLike,
                    created_by: Optional[UUIDLike] = None,
                    channel_creator_id: Optional[UUIDLike] = None,
                    extra_member_ids: Iterable[UUIDLike] = (),
                    snapshot: Optional[Tuple[int, DeployedTeamConfig]] = None) -> DeployResult:
        """
        Deploy a team template into the workspace, replacing any other active team.

        channel_creator_id overrides the workspace owner as creator and member
        of the agent channels; extra_member_ids join every agent channel too.
        snapshot is a prebuilt (version, base_config) pair for team_id.
        """
        try:
            return cls._deploy_team(
                session, _as_uuid(workspace_id), _as_uuid(team_id),
                _as_uuid(created_by) if created_by else None,
                _as_uuid(channel_creator_id) if channel_creator_id else None,
                [_as_uuid(m) for m in extra_member_ids if m],
                snapshot,
            )
        except DeploymentError as e:
            session.rollback()
            logger.error(f"Deploying team {team_id} to workspace {workspace_id} failed: {e}")
            return DeployResult(deployed=False, team_id=str(team_id), error_code=e.error_code, error=str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Deploying team {team_id} to workspace {workspace_id} failed: {e}")
            return DeployResult(deployed=False, team_id=str(team_id), error_code="store_error", error=str(e))

    @classmethod
    def _deploy_team(cls, session: Session, workspace_id: uuid.UUID, team_id: uuid.UUID,
                     created_by: Optional[uuid.UUID], channel_creator_id: Optional[uuid.UUID] = None,
                     extra_member_ids: Sequence[uuid.UUID] = (),
                     snapshot: Optional[Tuple[int, DeployedTeamConfig]] = None) -> DeployResult:
        existing = cls.get_workspace_deployment(session, workspace_id)
        owner_id = cls._workspace_owner(session, workspace_id)
        channel_creator = channel_creator_id or owner_id or created_by
        schedule_creator = created_by or owner_id

        if existing is not None and existing.source_team_id == team_id:
            logger.info(f"Workspace {workspace_id} already has team {team_id} deployed")
            config = (DeployedTeamConfig.model_validate(existing.active_config) if existing.active_config
                      else ConfigSnapshotBuilder.build_config_snapshot(session, team_id))
            summary = ProvisioningVerifier.provision_and_verify(
                session, workspace_id, config, channel_creator, schedule_creator, deployment_id=existing.id,
                extra_member_ids=extra_member_ids,
            )
            if not summary.is_complete:
                return DeployResult(
                    deployed=False, already_deployed=True, team_id=str(team_id), deployment_id=str(existing.id),
                    error_code="provisioning_incomplete", error=provisioning_incomplete_error(summary),
                    provisioning=summary,
                )
            return DeployResult(deployed=True, already_deployed=True, team_id=str(team_id),
                                deployment_id=str(existing.id), provisioning=summary)

        version, base_config = snapshot or cls._build_snapshot(session, team_id)
        return cls._stage_and_activate(
            session, workspace_id, team_id, version, base_config, empty_customizations(),
            existing, created_by or owner_id, channel_creator, schedule_creator, extra_member_ids,
        )

    @staticmethod
    def _build_snapshot(session: Session, team_id: uuid.UUID) -> Tuple[int, DeployedTeamConfig]:
        version = ConfigSnapshotBuilder.get_template_version(session, team_id)
        base_config = ConfigSnapshotBuilder.build_config_snapshot(session, team_id)
        logger.info(
            f"Built snapshot of team {team_id} v{version}: {len(base_config.agents)} agents, "
            f"{len(base_config.delegations)} delegations, {len(base_config.team_mind)} team mind entries"
        )
        return version, base_config

    @classmethod
    def deploy_team_to_workspaces(cls, session: Session, team_id: UUIDLike, workspace_ids: Iterable[UUIDLike],
                                  deployed_by: Optional[UUIDLike] = None,
                                  channel_creators: Optional[Mapping[UUIDLike, UUIDLike]] = None,
                                  extra_channel_members: Optional[Mapping[UUIDLike, Iterable[UUIDLike]]] = None,
                                  ) -> BulkDeployResult:
        """
        Deploy one team to many workspaces, building its snapshot once.

        Args:
            session: SQLAlchemy DB session
            team_id: Team template to deploy
            workspace_ids: Target workspaces, deployed in order
            deployed_by: Profile recorded as deployer and on cloned schedules
            channel_creators: Per-workspace creator of the agent channels (defaults to the owner)
            extra_channel_members: Per-workspace profiles added to every agent channel

        Returns:
            BulkDeployResult listing deployed workspaces with their agent resources, and failures
        """
        result = BulkDeployResult()
        targets = [_as_uuid(w) for w in workspace_ids]
        creators = {str(k): v for k, v in (channel_creators or {}).items()}
        extras = {str(k): list(v) for k, v in (extra_channel_members or {}).items()}
        team_uuid = _as_uuid(team_id)

        try:
            snapshot = cls._build_snapshot(session, team_uuid)
        except (DeploymentError, SQLAlchemyError) as e:
            session.rollback()
            error_code = e.error_code if isinstance(e, DeploymentError) else "store_error"
            logger.error(f"Failed to build config snapshot of team {team_uuid}: {e}")
            result.failed = [
                WorkspaceDeployFailure(workspace_id=str(w), error_code=error_code,
                                       error=f"Failed to build config snapshot: {e}")
                for w in targets
            ]
            return result

        for workspace_id in targets:
            key = str(workspace_id)
            deployed = cls.deploy_team(
                session, workspace_id, team_uuid, deployed_by,
                channel_creator_id=creators.get(key),
                extra_member_ids=extras.get(key, ()),
                snapshot=snapshot,
            )
            if not deployed.deployed:
                result.failed.append(WorkspaceDeployFailure(
                    workspace_id=key, error_code=deployed.error_code, error=deployed.error,
                ))
                continue
            result.deployments.append(WorkspaceDeployment(
                workspace_id=key,
                deployment_id=deployed.deployment_id,
                already_deployed=deployed.already_deployed,
                agent_resources=ResourceProvisioner.get_workspace_agent_resources(session, workspace_id),
            ))

        logger.info(
            f"Deployed team {team_uuid} to {len(result.deployments)} of {len(targets)} workspaces"
        )
        return result

    @classmethod
    def _stage_and_activate(cls, session: Session, workspace_id: uuid.UUID, team_id: uuid.UUID, version: int,
                            base_config: DeployedTeamConfig, customizations: Customizations,
                            previous: Optional[WorkspaceDeployedTeam], deployed_by: Optional[uuid.UUID],
                            channel_creator: Optional[uuid.UUID],
                            schedule_creator: Optional[uuid.UUID],
                            extra_member_ids: Sequence[uuid.UUID] = ()) -> DeployResult:
        active_config = apply_customizations(base_config, customizations)
        previous_id = previous.id if previous is not None else None
        previous_config = previous.active_config if previous is not None else None

        deployment = cls._insert_deployment(session, {
            "workspace_id": workspace_id,
            "source_team_id": team_id,
            "source_version": version,
            "base_config": _as_json(base_config),
            "customizations": _as_json(customizations),
            "active_config": _as_json(active_config),
            "deployed_by": deployed_by,
            "status": "pending",
            "previous_deployment_id": previous_id,
        })

        summary = ProvisioningVerifier.provision_and_verify(
            session, workspace_id, active_config, channel_creator, schedule_creator, deployment_id=deployment.id,
            extra_member_ids=extra_member_ids,
        )

        if not summary.is_complete:
            # The previous deployment stays active
            deployment.status = "failed"
            session.commit()
            return DeployResult(
                deployed=False, team_id=str(team_id), deployment_id=str(deployment.id),
                error_code="provisioning_incomplete", error=provisioning_incomplete_error(summary),
                provisioning=summary,
            )

        cls._activate(session, deployment, previous_id)

        if previous_config:
            cls._remove_superseded_schedules(session, workspace_id, previous_config, active_config)

        logger.info(f"Deployed team {team_id} to workspace {workspace_id} as deployment {deployment.id}")
        return DeployResult(deployed=True, team_id=str(team_id), deployment_id=str(deployment.id),
                            provisioning=summary)

    @staticmethod
    def _insert_deployment(session: Session, values: Dict[str, Any]) -> WorkspaceDeployedTeam:
        """Insert a deployment row, retrying transient store failures."""
        attempt = 0
        while True:
            deployment = WorkspaceDeployedTeam(**values)
            session.add(deployment)
            try:
                session.commit()
                return deployment
            except SQLAlchemyError as e:
                session.rollback()
                if not is_transient(e):
                    raise
                if attempt >= DEPLOYMENT_INSERT_RETRIES:
                    raise TransientStoreError(f"Deployment insert failed: {e}") from e
                attempt += 1
                delay = DEPLOYMENT_RETRY_DELAY_SECONDS * attempt
                logger.warning(f"Deployment insert failed (attempt {attempt}), retrying in {delay}s: {e}")
                time.sleep(delay)

    @staticmethod
    def _activate(session: Session, deployment: WorkspaceDeployedTeam, previous_id: Optional[uuid.UUID]) -> None:
        """Replace the previous active deployment with deployment in one transaction."""
        try:
            if previous_id is not None:
                replaced = session.query(WorkspaceDeployedTeam).filter(
                    WorkspaceDeployedTeam.id == previous_id,
                    WorkspaceDeployedTeam.status == "active",
                ).update({"status": "replaced"}, synchronize_session=False)
                if replaced == 0:
                    logger.warning(f"Previous deployment {previous_id} was no longer active at cut-over")
            deployment.status = "active"
            session.commit()
        except IntegrityError as e:
            session.rollback()
            if not is_unique_violation(e):
                raise
            # A concurrent deployment became active first
            deployment.status = "failed"
            session.commit()
            raise ConflictError(
                f"Another deployment became active for workspace {deployment.workspace_id}"
            ) from e

    @staticmethod
    def _remove_superseded_schedules(session: Session, workspace_id: uuid.UUID, previous_config: Dict[str, Any],
                                     active_config: DeployedTeamConfig) -> None:
        """Best-effort delete of tenant schedules owned by agents the new deployment dropped."""
        previous_ids: Set[str] = {agent["id"] for agent in previous_config.get("agents", [])}
        superseded = previous_ids - {agent.id for agent in active_config.agents}
        if not superseded:
            return
        try:
            deleted = session.query(AgentSchedule).filter(
                AgentSchedule.workspace_id == workspace_id,
                AgentSchedule.is_template == False,
                AgentSchedule.agent_id.in_([uuid.UUID(a) for a in superseded]),
            ).delete(synchronize_session=False)
            session.commit()
            logger.info(f"Removed {deleted} schedules of {len(superseded)} superseded agents in workspace {workspace_id}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to remove schedules of superseded agents in workspace {workspace_id}: {e}")

    # ---- customizations ----

    @classmethod
    def update_customizations(cls, session: Session, workspace_id: UUIDLike, update: CustomizationsUpdate,
                              updated_by: Optional[UUIDLike] = None) -> WorkspaceDeployedTeam:
        """Merge a partial customization write and recompute the active config."""
        deployment = cls._require_deployment(session, workspace_id)
        current = Customizations.model_validate(deployment.customizations or {})
        return cls._write_customizations(session, deployment, merge_customizations(current, update), updated_by)

    @classmethod
    def reset_customizations(cls, session: Session, workspace_id: UUIDLike,
                             reset_by: Optional[UUIDLike] = None) -> WorkspaceDeployedTeam:
        deployment = cls._require_deployment(session, workspace_id)
        return cls._write_customizations(session, deployment, empty_customizations(), reset_by)

    @staticmethod
    def _write_customizations(session: Session, deployment: WorkspaceDeployedTeam, customizations: Customizations,
                              customized_by: Optional[UUIDLike]) -> WorkspaceDeployedTeam:
        base_config = DeployedTeamConfig.model_validate(deployment.base_config)
        deployment.customizations = _as_json(customizations)
        deployment.active_config = _as_json(apply_customizations(base_config, customizations))
        deployment.last_customized_at = datetime.now(timezone.utc)
        deployment.last_customized_by = _as_uuid(customized_by) if customized_by else None
        session.commit()
        session.refresh(deployment)
        return deployment

    @classmethod
    def toggle_agent_enabled(cls, session: Session, workspace_id: UUIDLike, agent_slug: str, enabled: bool,
                             modified_by: Optional[UUIDLike] = None) -> DeployResult:
        """
        Enable or disable one agent of the active deployment.

        Enabling provisions the agent's resources; the result reports
        provisioning_incomplete when verification fails.
        """
        try:
            deployment = cls._require_deployment(session, workspace_id)
            current = Customizations.model_validate(deployment.customizations or {})
            disabled = [slug for slug in current.disabled_agents if slug != agent_slug]
            if not enabled:
                disabled.append(agent_slug)
            customizations = current.model_copy(update={"disabled_agents": disabled})
            deployment = cls._write_customizations(session, deployment, customizations, modified_by)

            result = DeployResult(
                deployed=True,
                team_id=str(deployment.source_team_id) if deployment.source_team_id else None,
                deployment_id=str(deployment.id),
            )
            if not enabled:
                return result

            workspace_uuid = _as_uuid(workspace_id)
            creator = (_as_uuid(modified_by) if modified_by else None) or cls._workspace_owner(session, workspace_uuid)
            summary = ProvisioningVerifier.provision_and_verify(
                session, workspace_uuid, DeployedTeamConfig.model_validate(deployment.active_config),
                creator, creator, deployment_id=deployment.id,
            )
            result.provisioning = summary
            if not summary.is_complete:
                result.deployed = False
                result.error_code = "provisioning_incomplete"
                result.error = provisioning_incomplete_error(summary)
            return result
        except DeploymentError as e:
            session.rollback()
            return DeployResult(deployed=False, error_code=e.error_code, error=str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Toggling agent {agent_slug} in workspace {workspace_id} failed: {e}")
            return DeployResult(deployed=False, error_code="store_error", error=str(e))

    # ---- upgrade / undeploy ----

    @classmethod
    def upgrade_deployment(cls, session: Session, workspace_id: UUIDLike,
                           upgraded_by: Optional[UUIDLike] = None) -> DeployResult:
        """Rebuild the active deployment at its template's latest version, keeping customizations."""
        try:
            workspace_uuid = _as_uuid(workspace_id)
            current = cls._require_deployment(session, workspace_uuid)
            if current.source_team_id is None:
                raise DeployTargetMissing(f"Deployment {current.id} has no source team")

            latest = ConfigSnapshotBuilder.get_template_version(session, current.source_team_id)
            if current.source_version == latest:
                return DeployResult(deployed=True, already_deployed=True, team_id=str(current.source_team_id),
                                    deployment_id=str(current.id))

            base_config = ConfigSnapshotBuilder.build_config_snapshot(session, current.source_team_id)
            customizations = Customizations.model_validate(current.customizations or {})
            upgrader = _as_uuid(upgraded_by) if upgraded_by else None
            owner_id = cls._workspace_owner(session, workspace_uuid)
            logger.info(
                f"Upgrading deployment {current.id} of workspace {workspace_uuid} "
                f"from v{current.source_version} to v{latest}"
            )
            return cls._stage_and_activate(
                session, workspace_uuid, current.source_team_id, latest, base_config, customizations,
                current, upgrader or owner_id, owner_id or upgrader, upgrader or owner_id,
            )
        except DeploymentError as e:
            session.rollback()
            return DeployResult(deployed=False, error_code=e.error_code, error=str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Upgrading deployment of workspace {workspace_id} failed: {e}")
            return DeployResult(deployed=False, error_code="store_error", error=str(e))

    @staticmethod
    def refresh_all_deployments(session: Session, refreshed_by: Optional[UUIDLike] = None) -> RefreshResult:
        """
        Rebuild base_config of every active deployment from its source team.

        The snapshot is built once per source team and each deployment's stored
        customizations are re-applied to it. Rows are updated in place and keep
        their source_version; agent resources are not re-provisioned.
        """
        result = RefreshResult()
        refresher = _as_uuid(refreshed_by) if refreshed_by else None
        active = session.query(WorkspaceDeployedTeam).filter(
            WorkspaceDeployedTeam.status == "active",
        ).order_by(WorkspaceDeployedTeam.created_at, WorkspaceDeployedTeam.id).all()

        by_team: Dict[Optional[uuid.UUID], List[uuid.UUID]] = {}
        for deployment in active:
            by_team.setdefault(deployment.source_team_id, []).append(deployment.id)

        for team_id, deployment_ids in by_team.items():
            if team_id is None:
                result.failed.extend(
                    RefreshFailure(deployment_id=str(d), error="Deployment has no source team") for d in deployment_ids
                )
                continue
            try:
                base_config = ConfigSnapshotBuilder.build_config_snapshot(session, team_id)
            except (DeploymentError, SQLAlchemyError) as e:
                session.rollback()
                logger.error(f"Failed to build config for team {team_id}: {e}")
                result.failed.extend(
                    RefreshFailure(deployment_id=str(d), error=f"Failed to build config for team {team_id}: {e}")
                    for d in deployment_ids
                )
                continue

            for deployment_id in deployment_ids:
                try:
                    deployment = session.get(WorkspaceDeployedTeam, deployment_id)
                    customizations = Customizations.model_validate(deployment.customizations or {})
                    deployment.base_config = _as_json(base_config)
                    deployment.active_config = _as_json(apply_customizations(base_config, customizations))
                    deployment.last_customized_at = datetime.now(timezone.utc)
                    deployment.last_customized_by = refresher
                    session.commit()
                    result.success += 1
                except (SQLAlchemyError, ValidationError) as e:
                    session.rollback()
                    logger.error(f"Refreshing deployment {deployment_id} failed: {e}")
                    result.failed.append(RefreshFailure(deployment_id=str(deployment_id), error=str(e)))

        logger.info(f"Refreshed {result.success} deployments, {len(result.failed)} failed")
        return result

    @staticmethod
    def undeploy(session: Session, workspace_id: UUIDLike, cleanup_resources: bool = False) -> int:
        """
        Pause the active deployment of the workspace; returns the number of paused rows.

        With cleanup_resources the workspace's agent profiles, channels and
        memberships are removed as well.
        """
        paused = session.query(WorkspaceDeployedTeam).filter(
            WorkspaceDeployedTeam.workspace_id == _as_uuid(workspace_id),
            WorkspaceDeployedTeam.status == "active",
        ).update({"status": "paused"}, synchronize_session=False)
        session.commit()
        if paused == 0:
            raise DeploymentNotFound(f"No active deployment found for workspace {workspace_id}")
        logger.info(f"Paused deployed team of workspace {workspace_id}")
        if cleanup_resources:
            ResourceProvisioner.cleanup_agent_resources(session, workspace_id)
        return paused
