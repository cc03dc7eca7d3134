"""
Tests for the customization overlay engine.
"""
import json

import pytest

from team_deployer.config.schema import (
    AgentOverride, Customizations, CustomizationsUpdate, DeployedAgent, DeployedDelegation, DeployedMind,
    DeployedTeamConfig, DeployedTeamInfo,
)
from team_deployer.services.customization_overlay import (
    apply_customizations, empty_customizations, merge_customizations,
)


@pytest.fixture
def base_config():
    return DeployedTeamConfig(
        team=DeployedTeamInfo(id="t1", name="Starter", slug="starter"),
        agents=[
            DeployedAgent(id="a1", slug="lead", name="Lead", system_prompt="Lead the team", model="sonnet",
                          provider="anthropic"),
            DeployedAgent(id="a2", slug="writer", name="Writer", system_prompt="Write", model="sonnet",
                          provider="anthropic"),
        ],
        delegations=[DeployedDelegation(id="d1", from_agent_slug="lead", to_agent_slug="writer")],
        team_mind=[DeployedMind(id="m1", name="Handbook", slug="handbook", content="Be kind")],
    )


def test_empty_customizations_keep_config(base_config):
    assert apply_customizations(base_config, empty_customizations()) == base_config


def test_identical_inputs_give_identical_json(base_config):
    customizations = Customizations(
        disabled_agents=["writer"],
        added_mind=[DeployedMind(id="m2", name="Pricing", slug="pricing", content="Prices")],
        agent_overrides={"lead": AgentOverride(model="opus")},
    )
    first = apply_customizations(base_config, customizations).model_dump_json()
    second = apply_customizations(base_config, customizations).model_dump_json()
    assert first == second


def test_disable_agent_and_delegation(base_config):
    result = apply_customizations(base_config, Customizations(disabled_agents=["writer"],
                                                              disabled_delegations=["d1"]))
    assert [a.is_enabled for a in result.agents] == [True, False]
    assert result.delegations[0].is_enabled is False
    assert [a.slug for a in result.enabled_agents()] == ["lead"]


def test_added_mind_is_appended(base_config):
    extra = DeployedMind(id="m2", name="Pricing", slug="pricing", content="Prices")
    result = apply_customizations(base_config, Customizations(added_mind=[extra]))
    assert [m.id for m in result.team_mind] == ["m1", "m2"]


def test_override_applies_only_given_fields(base_config):
    result = apply_customizations(base_config, Customizations(
        agent_overrides={"lead": AgentOverride(system_prompt="Lead carefully")},
    ))
    lead = result.agents[0]
    assert lead.system_prompt == "Lead carefully"
    assert lead.model == "sonnet"
    assert lead.is_enabled is True


def test_override_can_reenable_disabled_agent(base_config):
    result = apply_customizations(base_config, Customizations(
        disabled_agents=["writer"],
        agent_overrides={"writer": AgentOverride(is_enabled=True)},
    ))
    assert result.agents[1].is_enabled is True


def test_unknown_slugs_and_ids_are_ignored(base_config):
    result = apply_customizations(base_config, Customizations(
        disabled_agents=["ghost"],
        disabled_delegations=["d-missing"],
        agent_overrides={"ghost": AgentOverride(model="opus")},
    ))
    assert json.loads(result.model_dump_json()) == json.loads(base_config.model_dump_json())


def test_base_config_is_not_modified(base_config):
    before = base_config.model_dump_json()
    apply_customizations(base_config, Customizations(
        disabled_agents=["lead"],
        agent_overrides={"writer": AgentOverride(model="haiku")},
    ))
    assert base_config.model_dump_json() == before


def test_merge_replaces_only_provided_fields():
    current = Customizations(disabled_agents=["writer"], disabled_delegations=["d1"])
    merged = merge_customizations(current, CustomizationsUpdate(
        agent_overrides={"lead": AgentOverride(model="opus")},
    ))
    assert merged.disabled_agents == ["writer"]
    assert merged.disabled_delegations == ["d1"]
    assert merged.agent_overrides["lead"].model == "opus"

    cleared = merge_customizations(merged, CustomizationsUpdate(disabled_agents=[]))
    assert cleared.disabled_agents == []
    assert cleared.agent_overrides["lead"].model == "opus"
