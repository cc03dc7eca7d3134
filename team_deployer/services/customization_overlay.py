"""
Customization Overlay Engine.

Pure functions turning (base_config, customizations) into the active config.
"""
import logging

from team_deployer.config.schema import DeployedTeamConfig, Customizations, CustomizationsUpdate

logger = logging.getLogger(__name__)


def empty_customizations() -> Customizations:
    return Customizations()


def apply_customizations(base_config: DeployedTeamConfig, customizations: Customizations) -> DeployedTeamConfig:
    """
    Apply workspace customizations to a base config to produce the active config.

    Order: disabled agents, disabled delegations, added knowledge, per-agent overrides.
    Slugs and ids that match nothing are ignored. The base config is not modified.
    """
    config = base_config.model_copy(deep=True)

    disabled_agents = set(customizations.disabled_agents)
    for agent in config.agents:
        agent.is_enabled = agent.slug not in disabled_agents

    disabled_delegations = set(customizations.disabled_delegations)
    for delegation in config.delegations:
        delegation.is_enabled = delegation.id not in disabled_delegations

    config.team_mind = config.team_mind + [m.model_copy(deep=True) for m in customizations.added_mind]

    agents_by_slug = {agent.slug: agent for agent in config.agents}
    for slug, override in customizations.agent_overrides.items():
        agent = agents_by_slug.get(slug)
        if agent is None:
            logger.debug(f"Ignoring override for unknown agent slug {slug!r}")
            continue
        if override.system_prompt is not None:
            agent.system_prompt = override.system_prompt
        if override.model is not None:
            agent.model = override.model
        if override.is_enabled is not None:
            agent.is_enabled = override.is_enabled

    unknown = disabled_agents - set(agents_by_slug)
    if unknown:
        logger.debug(f"Ignoring disabled agent slugs with no match: {sorted(unknown)}")

    return config


def merge_customizations(current: Customizations, update: CustomizationsUpdate) -> Customizations:
    """Replace only the customization fields the update provides."""
    return Customizations(
        disabled_agents=update.disabled_agents if update.disabled_agents is not None else current.disabled_agents,
        disabled_delegations=(update.disabled_delegations if update.disabled_delegations is not None
                              else current.disabled_delegations),
        added_mind=update.added_mind if update.added_mind is not None else current.added_mind,
        agent_overrides=update.agent_overrides if update.agent_overrides is not None else current.agent_overrides,
    )
