"""
Tests for the deployment lifecycle: staging, cut-over, customizations,
upgrades, multi-workspace deploys, refresh and undeploy.
"""
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from team_deployer.config.models import AgentProfile, AgentSchedule, Channel, ChannelMember, WorkspaceDeployedTeam
from team_deployer.config.schema import (
    AgentOverride, CustomizationsUpdate, ProvisioningError, ProvisioningReport,
)
from team_deployer.services.deployment_manager import DeploymentLifecycleService
from team_deployer.services.errors import DeploymentNotFound
from team_deployer.services.provisioning_verifier import ProvisioningVerifier
from team_deployer.services.resource_provisioner import ResourceProvisioner
from team_deployer.services.snapshot_builder import ConfigSnapshotBuilder

from conftest import TestingSessionLocal, seed_plan, seed_team, seed_workspace, two_agent_team


def deployments(session, workspace_id):
    return {
        d.id: d.status
        for d in session.query(WorkspaceDeployedTeam).filter(WorkspaceDeployedTeam.workspace_id == workspace_id)
    }


def test_deploy_for_plan(db):
    team, _ = two_agent_team(db)
    seed_plan(db, "starter", team)
    workspace = seed_workspace(db)
    creator = uuid.uuid4()

    result = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter", creator)

    assert result.deployed
    assert result.error_code is None
    assert result.team_id == str(team.id)
    assert result.provisioning.is_complete
    deployment = DeploymentLifecycleService.get_workspace_deployment(db, workspace.id)
    assert str(deployment.id) == result.deployment_id
    assert deployment.status == "active"
    assert deployment.source_version == 1
    assert deployment.deployed_by == creator
    assert deployment.base_config == deployment.active_config
    assert deployment.customizations["disabled_agents"] == []
    assert db.query(AgentProfile).filter(AgentProfile.agent_workspace_id == workspace.id).count() == 2


def test_deploy_twice_returns_same_deployment(db):
    team, _ = two_agent_team(db)
    seed_plan(db, "starter", team)
    workspace = seed_workspace(db)

    first = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")
    second = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")

    assert first.deployed and second.deployed
    assert second.already_deployed
    assert first.deployment_id == second.deployment_id
    assert len(deployments(db, workspace.id)) == 1


def test_unknown_plan(db):
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "platinum")
    assert not result.deployed
    assert result.error_code == "plan_not_found"


def test_inactive_plan_is_not_found(db):
    team, _ = two_agent_team(db)
    seed_plan(db, "legacy", team, is_active=False)
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "legacy")
    assert result.error_code == "plan_not_found"


def test_plan_without_team(db):
    seed_plan(db, "starter", None)
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")
    assert not result.deployed
    assert result.error_code == "deploy_target_missing"


def test_unknown_team(db):
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.deploy_team(db, workspace.id, uuid.uuid4())
    assert not result.deployed
    assert result.error_code == "template_not_found"


def test_incomplete_provisioning_marks_deployment_failed(db):
    # No schedule templates, so the workspace never gets a tenant schedule
    team, _ = seed_team(db, [{"name": "Lead", "tools": ["x"]}])
    seed_plan(db, "starter", team)
    workspace = seed_workspace(db)

    result = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")

    assert not result.deployed
    assert result.error_code == "provisioning_incomplete"
    assert result.error.startswith("provisioning_incomplete:")
    assert result.provisioning.issues == ["no_schedules"]
    assert deployments(db, workspace.id) == {uuid.UUID(result.deployment_id): "failed"}
    assert DeploymentLifecycleService.get_workspace_deployment(db, workspace.id) is None


def test_failed_replacement_keeps_previous_deployment_active(db):
    old_team, _ = seed_team(db, [{"name": "Solo", "schedules": [("Daily", "0 9 * * *")]}], slug="solo")
    new_team, _ = two_agent_team(db, slug="duo")
    seed_plan(db, "starter", old_team)
    seed_plan(db, "teams", new_team)
    workspace = seed_workspace(db)
    old = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")
    assert old.deployed

    failing = ProvisioningReport(errors=[ProvisioningError(agent_slug="writer", step="profile", message="down")])
    with patch.object(ResourceProvisioner, "provision", return_value=failing):
        new = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "teams")

    assert not new.deployed
    assert new.error_code == "provisioning_incomplete"
    assert "profiles_missing" in new.provisioning.issues
    statuses = deployments(db, workspace.id)
    assert statuses[uuid.UUID(old.deployment_id)] == "active"
    assert statuses[uuid.UUID(new.deployment_id)] == "failed"
    assert str(DeploymentLifecycleService.get_workspace_deployment(db, workspace.id).id) == old.deployment_id


def test_replacement_supersedes_previous_deployment(db):
    old_team, old_agents = seed_team(db, [{"name": "Solo", "schedules": [("Daily", "0 9 * * *")]}], slug="solo")
    new_team, new_agents = two_agent_team(db, slug="duo")
    seed_plan(db, "starter", old_team)
    seed_plan(db, "teams", new_team)
    workspace = seed_workspace(db)
    old = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "starter")

    new = DeploymentLifecycleService.auto_deploy_team_for_plan(db, workspace.id, "teams")

    assert new.deployed
    statuses = deployments(db, workspace.id)
    assert statuses[uuid.UUID(old.deployment_id)] == "replaced"
    assert statuses[uuid.UUID(new.deployment_id)] == "active"
    active = DeploymentLifecycleService.get_workspace_deployment(db, workspace.id)
    assert str(active.previous_deployment_id) == old.deployment_id

    remaining = db.query(AgentSchedule).filter(
        AgentSchedule.workspace_id == workspace.id, AgentSchedule.is_template == False,
    ).all()
    assert {s.agent_id for s in remaining} == {a.id for a in new_agents}


def test_deployment_insert_is_retried_on_transient_error(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    real_commit = db.commit
    calls = []

    def flaky_commit():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("INSERT INTO workspace_deployed_teams", {},
                                   Exception("server closed the connection unexpectedly"))
        return real_commit()

    with patch.object(db, "commit", side_effect=flaky_commit), \
            patch("team_deployer.services.deployment_manager.time.sleep") as sleep:
        result = DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)

    assert result.deployed
    sleep.assert_called_once()
    assert len(deployments(db, workspace.id)) == 1


def test_update_and_reset_customizations(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)
    editor = uuid.uuid4()

    updated = DeploymentLifecycleService.update_customizations(db, workspace.id, CustomizationsUpdate(
        disabled_agents=["writer"],
        agent_overrides={"research-lead": AgentOverride(model="opus")},
    ), editor)

    agents = {a["slug"]: a for a in updated.active_config["agents"]}
    assert agents["writer"]["is_enabled"] is False
    assert agents["research-lead"]["model"] == "opus"
    assert updated.base_config["agents"][0]["model"] == "sonnet"
    assert updated.last_customized_by == editor
    assert updated.last_customized_at is not None

    # A partial write keeps the other fields
    updated = DeploymentLifecycleService.update_customizations(db, workspace.id, CustomizationsUpdate(
        disabled_delegations=[updated.base_config["delegations"][0]["id"]],
    ))
    assert updated.customizations["disabled_agents"] == ["writer"]
    assert updated.active_config["delegations"][0]["is_enabled"] is False

    reset = DeploymentLifecycleService.reset_customizations(db, workspace.id, editor)
    assert reset.active_config == reset.base_config
    assert reset.customizations["agent_overrides"] == {}


def test_customizations_require_active_deployment(db):
    workspace = seed_workspace(db)
    with pytest.raises(DeploymentNotFound):
        DeploymentLifecycleService.update_customizations(db, workspace.id, CustomizationsUpdate())
    with pytest.raises(DeploymentNotFound):
        DeploymentLifecycleService.reset_customizations(db, workspace.id)


def test_toggle_agent(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)

    disabled = DeploymentLifecycleService.toggle_agent_enabled(db, workspace.id, "writer", False)
    assert disabled.deployed
    active = DeploymentLifecycleService.get_workspace_deployment(db, workspace.id)
    assert active.customizations["disabled_agents"] == ["writer"]

    enabled = DeploymentLifecycleService.toggle_agent_enabled(db, workspace.id, "writer", True)
    assert enabled.deployed
    assert enabled.provisioning.is_complete
    active = DeploymentLifecycleService.get_workspace_deployment(db, workspace.id)
    assert active.customizations["disabled_agents"] == []


def test_toggle_without_deployment(db):
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.toggle_agent_enabled(db, workspace.id, "writer", True)
    assert not result.deployed
    assert result.error_code == "deployment_not_found"


def test_upgrade_preserves_customizations(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    first = DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)
    DeploymentLifecycleService.update_customizations(db, workspace.id, CustomizationsUpdate(
        agent_overrides={"writer": AgentOverride(system_prompt="Write tersely")},
    ))

    same = DeploymentLifecycleService.upgrade_deployment(db, workspace.id)
    assert same.already_deployed
    assert same.deployment_id == first.deployment_id

    team.current_version = 2
    db.commit()
    upgraded = DeploymentLifecycleService.upgrade_deployment(db, workspace.id)

    assert upgraded.deployed
    assert upgraded.deployment_id != first.deployment_id
    active = DeploymentLifecycleService.get_workspace_deployment(db, workspace.id)
    assert active.source_version == 2
    writer = next(a for a in active.active_config["agents"] if a["slug"] == "writer")
    assert writer["system_prompt"] == "Write tersely"
    assert deployments(db, workspace.id)[uuid.UUID(first.deployment_id)] == "replaced"


def test_undeploy(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)

    assert DeploymentLifecycleService.undeploy(db, workspace.id) == 1
    assert deployments(db, workspace.id) == {uuid.UUID(result.deployment_id): "paused"}
    with pytest.raises(DeploymentNotFound):
        DeploymentLifecycleService.undeploy(db, workspace.id)


def test_undeploy_with_resource_cleanup(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)

    DeploymentLifecycleService.undeploy(db, workspace.id, cleanup_resources=True)

    assert db.query(AgentProfile).filter(AgentProfile.agent_workspace_id == workspace.id).count() == 0
    assert db.query(Channel).filter(Channel.workspace_id == workspace.id).count() == 0
    # Redeploying recreates the resources
    again = DeploymentLifecycleService.deploy_team(db, workspace.id, team.id)
    assert again.deployed
    assert db.query(AgentProfile).filter(AgentProfile.agent_workspace_id == workspace.id).count() == 2


def test_concurrent_first_deploy_loses_cut_over(db):
    team, _ = two_agent_team(db)
    workspace = seed_workspace(db)
    workspace_id, team_id = workspace.id, team.id
    real_verify = ProvisioningVerifier.provision_and_verify
    winner = {}

    def verify_while_other_deploy_activates(*args, **kwargs):
        summary = real_verify(*args, **kwargs)
        other = TestingSessionLocal()
        try:
            row = WorkspaceDeployedTeam(
                workspace_id=workspace_id, source_team_id=team_id, source_version=1,
                base_config={"agents": []}, customizations={}, active_config={"agents": []}, status="active",
            )
            other.add(row)
            other.commit()
            winner["id"] = row.id
        finally:
            other.close()
        return summary

    with patch.object(ProvisioningVerifier, "provision_and_verify", side_effect=verify_while_other_deploy_activates):
        result = DeploymentLifecycleService.deploy_team(db, workspace_id, team_id)

    assert not result.deployed
    assert result.error_code == "conflict"
    statuses = deployments(db, workspace_id)
    assert sorted(statuses.values()) == ["active", "failed"]
    assert statuses[winner["id"]] == "active"
    assert DeploymentLifecycleService.get_workspace_deployment(db, workspace_id).id == winner["id"]


def test_deploy_team_to_workspaces(db):
    team, _ = two_agent_team(db)
    first = seed_workspace(db, owner_id=uuid.uuid4(), name="First")
    second = seed_workspace(db, owner_id=uuid.uuid4(), name="Second")
    first_id, second_id = first.id, second.id
    creator, guest = uuid.uuid4(), uuid.uuid4()

    with patch.object(ConfigSnapshotBuilder, "build_config_snapshot",
                      wraps=ConfigSnapshotBuilder.build_config_snapshot) as build:
        result = DeploymentLifecycleService.deploy_team_to_workspaces(
            db, team.id, [first_id, second_id], deployed_by=creator,
            channel_creators={str(first_id): creator},
            extra_channel_members={first_id: [guest]},
        )

    assert build.call_count == 1
    assert result.failed == []
    assert [d.workspace_id for d in result.deployments] == [str(first_id), str(second_id)]
    assert all(len(d.agent_resources) == 2 for d in result.deployments)
    for deployed in result.deployments:
        active = DeploymentLifecycleService.get_workspace_deployment(db, deployed.workspace_id)
        assert str(active.id) == deployed.deployment_id
        assert active.deployed_by == creator

    channels = db.query(Channel).filter(Channel.workspace_id == first_id).all()
    assert {c.created_by for c in channels} == {creator}
    for channel in channels:
        members = {m.profile_id for m in db.query(ChannelMember).filter(ChannelMember.channel_id == channel.id)}
        assert {creator, guest} <= members
    second_channel = db.query(Channel).filter(Channel.workspace_id == second_id).first()
    assert second_channel.created_by == second.owner_id


def test_deploy_team_to_workspaces_reports_failures_per_workspace(db):
    team, _ = two_agent_team(db)
    good = seed_workspace(db, name="Good")
    bad = seed_workspace(db, name="Bad")
    good_id, bad_id = good.id, bad.id
    real_provision = ResourceProvisioner.provision
    failing = ProvisioningReport(errors=[ProvisioningError(agent_slug="writer", step="profile", message="down")])

    def provision_unless_bad(session, workspace_id, *args, **kwargs):
        if workspace_id == bad_id:
            return failing
        return real_provision(session, workspace_id, *args, **kwargs)

    with patch.object(ResourceProvisioner, "provision", side_effect=provision_unless_bad):
        result = DeploymentLifecycleService.deploy_team_to_workspaces(db, team.id, [bad_id, good_id])

    assert [d.workspace_id for d in result.deployments] == [str(good_id)]
    assert [(f.workspace_id, f.error_code) for f in result.failed] == [(str(bad_id), "provisioning_incomplete")]
    assert DeploymentLifecycleService.get_workspace_deployment(db, bad_id) is None


def test_deploy_unknown_team_to_workspaces(db):
    workspace = seed_workspace(db)
    result = DeploymentLifecycleService.deploy_team_to_workspaces(db, uuid.uuid4(), [workspace.id])
    assert result.deployments == []
    assert [f.error_code for f in result.failed] == ["template_not_found"]
    assert result.failed[0].error.startswith("Failed to build config snapshot")


def test_refresh_all_deployments(db):
    team, agents = two_agent_team(db)
    first = seed_workspace(db, name="First")
    second = seed_workspace(db, name="Second")
    DeploymentLifecycleService.deploy_team(db, first.id, team.id)
    DeploymentLifecycleService.deploy_team(db, second.id, team.id)
    DeploymentLifecycleService.update_customizations(db, first.id, CustomizationsUpdate(
        agent_overrides={"writer": AgentOverride(model="opus")},
    ))
    # Active deployment whose source team no longer exists
    orphan_workspace = seed_workspace(db, name="Orphan")
    orphan = WorkspaceDeployedTeam(
        workspace_id=orphan_workspace.id, source_team_id=uuid.uuid4(), source_version=1,
        base_config={"agents": []}, customizations={}, active_config={"agents": []}, status="active",
    )
    db.add(orphan)
    db.commit()
    orphan_id = orphan.id

    agents[1].system_prompt = "Write in plain English."
    db.commit()
    refresher = uuid.uuid4()

    with patch.object(ConfigSnapshotBuilder, "build_config_snapshot",
                      wraps=ConfigSnapshotBuilder.build_config_snapshot) as build:
        result = DeploymentLifecycleService.refresh_all_deployments(db, refresher)

    assert build.call_count == 2
    assert result.success == 2
    assert [f.deployment_id for f in result.failed] == [str(orphan_id)]
    assert "Failed to build config" in result.failed[0].error

    for workspace_id in (first.id, second.id):
        active = DeploymentLifecycleService.get_workspace_deployment(db, workspace_id)
        base_writer = next(a for a in active.base_config["agents"] if a["slug"] == "writer")
        assert base_writer["system_prompt"] == "Write in plain English."
        assert active.last_customized_by == refresher
        assert active.source_version == 1

    customized = DeploymentLifecycleService.get_workspace_deployment(db, first.id)
    writer = next(a for a in customized.active_config["agents"] if a["slug"] == "writer")
    assert writer["model"] == "opus"
    assert writer["system_prompt"] == "Write in plain English."
