"""
Pending-Tier CAS Applier.

Applies a queued agent tier change of a workspace exactly once, even when the
reconciliation job and the billing webhook race for it. The only guard is a
conditional UPDATE on workspace_billing that succeeds only while the pending
tier still holds the value that was read.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from team_deployer.config.models import BillingAlert, WorkspaceBilling
from team_deployer.config.schema import DeployResult, TierChangeResult
from team_deployer.services.deployment_manager import DeploymentLifecycleService

logger = logging.getLogger(__name__)

UUIDLike = Union[str, uuid.UUID]
DeployFn = Callable[[Session, uuid.UUID, str, Optional[uuid.UUID]], DeployResult]


def _as_uuid(value: UUIDLike) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class PendingTierService:
    """Service applying queued agent tier changes."""

    @staticmethod
    def claim_pending_tier(session: Session, workspace_id: uuid.UUID, pending_tier: str) -> bool:
        """
        Commit pending_tier as the workspace's tier and clear the pending fields.

        Returns False when the pending tier no longer equals pending_tier,
        meaning another caller consumed it first.
        """
        updated = session.query(WorkspaceBilling).filter(
            WorkspaceBilling.workspace_id == workspace_id,
            WorkspaceBilling.agent_tier_pending == pending_tier,
        ).update({
            "agent_tier": pending_tier,
            "agent_tier_pending": None,
            "agent_tier_pending_effective_at": None,
            "agent_deploy_status": "deploying",
            "agent_deploy_error": None,
            "updated_at": datetime.now(timezone.utc),
        }, synchronize_session=False)
        session.commit()
        return updated == 1

    @classmethod
    def apply_pending_tier_change(cls, session: Session, workspace_id: UUIDLike,
                                  expected_pending_tier: Optional[str] = None, source: str = "system",
                                  deploy: Optional[DeployFn] = None) -> TierChangeResult:
        """
        Apply the pending agent tier change of a workspace.

        Args:
            session: SQLAlchemy DB session
            workspace_id: Workspace whose billing row holds the pending change
            expected_pending_tier: When given, the pending tier must equal it
            source: Caller tag recorded in logs and alerts (webhook, cron, admin)
            deploy: Deployment callable (defaults to auto_deploy_team_for_plan)

        Returns:
            TierChangeResult; applied=True once the tier is committed, even if the
            follow-up deployment failed (reported in deploy_error)
        """
        workspace_uuid = _as_uuid(workspace_id)
        deploy = deploy or DeploymentLifecycleService.auto_deploy_team_for_plan
        ws = str(workspace_uuid)

        billing = session.get(WorkspaceBilling, workspace_uuid)
        if billing is None:
            return TierChangeResult(applied=False, workspace_id=ws, error_code="billing_not_found",
                                    error=f"No billing record for workspace {ws}")

        pending = billing.agent_tier_pending
        if not pending:
            return TierChangeResult(applied=False, workspace_id=ws, error_code="no_pending_change",
                                    error="No pending tier change")
        if expected_pending_tier is not None and pending != expected_pending_tier:
            return TierChangeResult(applied=False, workspace_id=ws, tier=pending, error_code="pending_mismatch",
                                    error=f"Pending tier is {pending!r}, expected {expected_pending_tier!r}")
        if billing.agent_status != "active":
            return TierChangeResult(applied=False, workspace_id=ws, tier=pending,
                                    error_code="subscription_inactive",
                                    error=f"Agent subscription status is {billing.agent_status!r}")

        try:
            claimed = cls.claim_pending_tier(session, workspace_uuid, pending)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Applying pending tier {pending} for workspace {ws} failed: {e}")
            return TierChangeResult(applied=False, workspace_id=ws, tier=pending, error_code="store_error",
                                    error=str(e))
        if not claimed:
            logger.info(f"Pending tier {pending} for workspace {ws} already applied by another caller ({source})")
            return TierChangeResult(applied=False, workspace_id=ws, tier=pending, error_code="cas_conflict",
                                    error="Pending tier change was already applied")

        logger.info(f"Applied agent tier {pending} for workspace {ws} (source={source})")

        deploy_error = None
        deployment_id = None
        try:
            result = deploy(session, workspace_uuid, pending, None)
            deployment_id = result.deployment_id
            if not result.deployed:
                deploy_error = result.error or result.error_code or "deployment failed"
        except Exception as e:
            session.rollback()
            logger.exception(f"Deployment after tier change for workspace {ws} raised")
            deploy_error = str(e) or e.__class__.__name__

        cls.record_deploy_outcome(session, workspace_uuid, pending, source, deploy_error, deployment_id)
        return TierChangeResult(applied=True, workspace_id=ws, tier=pending, deploy_error=deploy_error,
                                deployment_id=deployment_id)

    @classmethod
    def record_deploy_outcome(cls, session: Session, workspace_id: uuid.UUID, tier: str, source: str,
                              deploy_error: Optional[str], deployment_id: Optional[str]) -> None:
        try:
            session.query(WorkspaceBilling).filter(WorkspaceBilling.workspace_id == workspace_id).update({
                "agent_deploy_status": "failed" if deploy_error else "deployed",
                "agent_deploy_error": deploy_error,
                "updated_at": datetime.now(timezone.utc),
            }, synchronize_session=False)
            if deploy_error:
                cls.record_billing_alert(session, workspace_id, tier, source, deploy_error, deployment_id)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to record deploy outcome for workspace {workspace_id}: {e}")

    @staticmethod
    def record_billing_alert(session: Session, workspace_id: uuid.UUID, tier: str, source: str,
                             deploy_error: str, deployment_id: Optional[str] = None) -> BillingAlert:
        logger.error(f"Deployment for tier {tier} in workspace {workspace_id} failed: {deploy_error}")
        alert = BillingAlert(
            workspace_id=workspace_id,
            alert_type="deploy_failed",
            severity="high",
            title=f"Agent team deployment failed after tier change to {tier}",
            description=deploy_error,
            alert_metadata={
                "tier": tier,
                "source": source,
                "deployment_id": deployment_id,
            },
        )
        session.add(alert)
        return alert

    @classmethod
    def apply_due_pending_tier_changes(cls, session: Session, now: Optional[datetime] = None,
                                       deploy: Optional[DeployFn] = None) -> List[TierChangeResult]:
        """Apply every pending tier change whose effective time has passed."""
        now = now or datetime.now(timezone.utc)
        due = session.query(WorkspaceBilling.workspace_id, WorkspaceBilling.agent_tier_pending).filter(
            WorkspaceBilling.agent_tier_pending.isnot(None),
            or_(
                WorkspaceBilling.agent_tier_pending_effective_at.is_(None),
                WorkspaceBilling.agent_tier_pending_effective_at <= now,
            ),
        ).all()
        logger.info(f"Found {len(due)} due pending tier changes")

        results = []
        for workspace_id, pending in due:
            results.append(cls.apply_pending_tier_change(
                session, workspace_id, expected_pending_tier=pending, source="cron", deploy=deploy,
            ))
        return results
