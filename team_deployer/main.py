from fastapi import FastAPI, HTTPException, Depends
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, UUID4

from sqlalchemy.orm import Session

from team_deployer.config.database import get_db
from team_deployer.config.schema import (
    AgentResources, BulkDeployResult, CustomizationsUpdate, DeployResult, RefreshResult, ResourceCleanup,
    TierChangeResult,
)
from team_deployer.config.settings import configure_logging
from team_deployer.services.deployment_manager import DeploymentLifecycleService, deployment_to_dict
from team_deployer.services.errors import NotFoundError
from team_deployer.services.resource_provisioner import ResourceProvisioner
from team_deployer.services.tier_applier import PendingTierService

configure_logging()

app = FastAPI(title="Team Deployer Service", version="1.0")

# Error codes that mean a referenced record is missing
NOT_FOUND_CODES = {
    "plan_not_found", "template_not_found", "deployment_not_found", "deploy_target_missing",
    "billing_not_found", "no_pending_change",
}
CONFLICT_CODES = {"cas_conflict", "conflict", "pending_mismatch", "subscription_inactive"}


class DeployRequest(BaseModel):
    """Request model for plan-based deployment."""
    plan_slug: str
    created_by: Optional[UUID4] = None


class TeamDeployRequest(BaseModel):
    """Request model for deploying one team to several workspaces."""
    workspace_ids: List[UUID4]
    deployed_by: Optional[UUID4] = None
    channel_creators: Dict[str, UUID4] = {}
    extra_channel_members: Dict[str, List[UUID4]] = {}


class CustomizationsRequest(CustomizationsUpdate):
    """Partial customization write."""
    updated_by: Optional[UUID4] = None


class ActorRequest(BaseModel):
    """Request model carrying the acting profile."""
    actor_id: Optional[UUID4] = None


class ToggleRequest(BaseModel):
    enabled: bool
    actor_id: Optional[UUID4] = None


class ApplyPendingTierRequest(BaseModel):
    """Webhook payload: the tier the billing provider expects to be pending."""
    expected_pending_tier: Optional[str] = None
    source: str = "webhook"


class DeploymentResponse(BaseModel):
    """Response model for deployment data."""
    id: str
    workspace_id: str
    source_team_id: Optional[str] = None
    source_version: int
    status: str
    previous_deployment_id: Optional[str] = None
    deployed_by: Optional[str] = None
    base_config: Dict[str, Any]
    customizations: Dict[str, Any]
    active_config: Dict[str, Any]
    last_customized_at: Optional[str] = None
    last_customized_by: Optional[str] = None


def _raise_for_result(error_code: Optional[str], error: Optional[str]):
    """Translate a failed result into an HTTP error."""
    if error_code in NOT_FOUND_CODES:
        raise HTTPException(status_code=404, detail={"error_code": error_code, "error": error})
    if error_code in CONFLICT_CODES:
        raise HTTPException(status_code=409, detail={"error_code": error_code, "error": error})
    raise HTTPException(status_code=500, detail={"error_code": error_code, "error": error})


def _deploy_response(result: DeployResult) -> DeployResult:
    # Incomplete provisioning is reported as data, not as an HTTP failure
    if not result.deployed and result.error_code != "provisioning_incomplete":
        _raise_for_result(result.error_code, result.error)
    return result


@app.post("/workspaces/{workspace_id}/deploy", response_model=DeployResult)
def deploy_workspace_team(workspace_id: UUID4, request: DeployRequest, db: Session = Depends(get_db)):
    """
    Deploy the team linked to a plan into a workspace.

    - Resolves the plan's team template
    - Stages, provisions and verifies the new deployment
    - Replaces the previous active deployment only when provisioning is complete
    """
    result = DeploymentLifecycleService.auto_deploy_team_for_plan(
        db, workspace_id, request.plan_slug, request.created_by,
    )
    return _deploy_response(result)


@app.get("/workspaces/{workspace_id}/deployment", response_model=DeploymentResponse)
def get_workspace_deployment(workspace_id: UUID4, db: Session = Depends(get_db)):
    """
    Get the active deployment of a workspace.
    """
    deployment = DeploymentLifecycleService.get_workspace_deployment(db, workspace_id)
    if not deployment:
        raise HTTPException(status_code=404, detail=f"No active deployment for workspace {workspace_id}")
    return deployment_to_dict(deployment)


@app.patch("/workspaces/{workspace_id}/customizations", response_model=DeploymentResponse)
def update_customizations(workspace_id: UUID4, request: CustomizationsRequest, db: Session = Depends(get_db)):
    """
    Update workspace customizations and recompute the active config.

    Fields missing from the request keep their current value.
    """
    update = CustomizationsUpdate(**request.model_dump(exclude={"updated_by"}))
    try:
        deployment = DeploymentLifecycleService.update_customizations(db, workspace_id, update, request.updated_by)
        return deployment_to_dict(deployment)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating customizations: {str(e)}")


@app.post("/workspaces/{workspace_id}/customizations/reset", response_model=DeploymentResponse)
def reset_customizations(workspace_id: UUID4, request: Optional[ActorRequest] = None, db: Session = Depends(get_db)):
    """
    Reset workspace customizations so the active config matches the base config.
    """
    actor_id = request.actor_id if request else None
    try:
        deployment = DeploymentLifecycleService.reset_customizations(db, workspace_id, actor_id)
        return deployment_to_dict(deployment)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resetting customizations: {str(e)}")


@app.post("/workspaces/{workspace_id}/agents/{agent_slug}/toggle", response_model=DeployResult)
def toggle_agent(workspace_id: UUID4, agent_slug: str, request: ToggleRequest, db: Session = Depends(get_db)):
    """
    Enable or disable one agent of the workspace's deployed team.
    """
    result = DeploymentLifecycleService.toggle_agent_enabled(
        db, workspace_id, agent_slug, request.enabled, request.actor_id,
    )
    return _deploy_response(result)


@app.post("/workspaces/{workspace_id}/upgrade", response_model=DeployResult)
def upgrade_deployment(workspace_id: UUID4, request: Optional[ActorRequest] = None, db: Session = Depends(get_db)):
    """
    Upgrade the workspace to the latest version of its team template, keeping customizations.
    """
    actor_id = request.actor_id if request else None
    result = DeploymentLifecycleService.upgrade_deployment(db, workspace_id, actor_id)
    return _deploy_response(result)


@app.post("/workspaces/{workspace_id}/undeploy")
def undeploy_workspace_team(workspace_id: UUID4, cleanup_resources: bool = False, db: Session = Depends(get_db)):
    """
    Pause the active deployment of a workspace.

    With cleanup_resources=true the agent profiles, channels and memberships are removed too.
    """
    try:
        DeploymentLifecycleService.undeploy(db, workspace_id, cleanup_resources)
        return {"workspace_id": str(workspace_id), "status": "paused"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error undeploying team: {str(e)}")


@app.get("/workspaces/{workspace_id}/agent_resources", response_model=List[AgentResources])
def get_agent_resources(workspace_id: UUID4, db: Session = Depends(get_db)):
    """
    List the agent profiles and agent channels provisioned in a workspace.
    """
    return DeploymentLifecycleService.get_workspace_agent_resources(db, workspace_id)


@app.delete("/workspaces/{workspace_id}/agent_resources", response_model=ResourceCleanup)
def cleanup_agent_resources(workspace_id: UUID4, db: Session = Depends(get_db)):
    """
    Remove the agent profiles, agent channels and their memberships from a workspace.
    """
    try:
        return ResourceProvisioner.cleanup_agent_resources(db, workspace_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error cleaning up agent resources: {str(e)}")


@app.post("/teams/{team_id}/deploy", response_model=BulkDeployResult)
def deploy_team_to_workspaces(team_id: UUID4, request: TeamDeployRequest, db: Session = Depends(get_db)):
    """
    Deploy one team template to several workspaces.

    Failures are reported per workspace; workspaces that succeeded keep their deployment.
    """
    return DeploymentLifecycleService.deploy_team_to_workspaces(
        db, team_id, request.workspace_ids, request.deployed_by,
        channel_creators=request.channel_creators,
        extra_channel_members=request.extra_channel_members,
    )


@app.post("/deployments/refresh", response_model=RefreshResult)
def refresh_deployments(request: Optional[ActorRequest] = None, db: Session = Depends(get_db)):
    """
    Rebuild every active deployment from the current state of its source team.
    """
    actor_id = request.actor_id if request else None
    try:
        return DeploymentLifecycleService.refresh_all_deployments(db, actor_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error refreshing deployments: {str(e)}")


@app.post("/workspaces/{workspace_id}/billing/apply_pending_tier", response_model=TierChangeResult)
def apply_pending_tier(workspace_id: UUID4, request: Optional[ApplyPendingTierRequest] = None,
                       db: Session = Depends(get_db)):
    """
    Apply the workspace's pending agent tier change (billing webhook).

    A change whose deployment failed is still applied; the failure is
    reported in deploy_error.
    """
    request = request or ApplyPendingTierRequest()
    result = PendingTierService.apply_pending_tier_change(
        db, workspace_id, request.expected_pending_tier, source=request.source,
    )
    if not result.applied:
        _raise_for_result(result.error_code, result.error)
    return result


@app.post("/billing/apply_due_pending_tiers", response_model=List[TierChangeResult])
def apply_due_pending_tiers(db: Session = Depends(get_db)):
    """
    Apply every pending tier change whose effective time has passed (reconciliation job).
    """
    return PendingTierService.apply_due_pending_tier_changes(db)


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
