"""
Shared fixtures: a file-based SQLite database, sessions bound to it, a
TestClient wired to it, and helpers that seed team templates, workspaces,
plans and billing rows.
"""
import os
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from team_deployer.config.models import (
    Base, TeamTemplate, AiAgent, AgentTool, AiAgentTool, AgentSkill, AiAgentSkill, AgentMind, AgentRule,
    TeamAgent, TeamDelegation, TeamMind, Workspace, Plan, WorkspaceBilling, AgentSchedule,
)
from team_deployer.main import app, get_db

# Using a file-based database so several sessions (and the TestClient thread) share it
DB_FILE = tempfile.NamedTemporaryFile(delete=False).name
SQLALCHEMY_DATABASE_URL = f"sqlite:///{DB_FILE}"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def cleanup_db_file():
    if os.path.exists(DB_FILE):
        os.remove(DB_FILE)


def clear_database():
    """Clear all data from tables but keep the tables themselves"""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session")
def setup_db():
    """Create test database tables at session level"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    cleanup_db_file()


@pytest.fixture
def db(setup_db):
    clear_database()
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        clear_database()


@pytest.fixture(scope="session")
def override_dependency():
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(db, override_dependency):
    with TestClient(app) as test_client:
        yield test_client


def seed_team(session, agents, slug="starter-team", version=1, delegations=(), team_mind=()):
    """
    Create a team template.

    agents: list of dicts with name and optional slug, model, provider,
    system_prompt, tools (names), skills ((name, content)), mind (names),
    rules ((type, content, priority)) and schedules ((name, cron[, timezone])).
    delegations: (from index, to index) pairs; team_mind: knowledge names.
    Returns (team, [AiAgent]).
    """
    team = TeamTemplate(name=slug.replace("-", " ").title(), slug=slug, current_version=version)
    session.add(team)
    session.flush()

    created = []
    for order, agent_def in enumerate(agents):
        agent = AiAgent(
            name=agent_def["name"],
            slug=agent_def.get("slug"),
            description=agent_def.get("description"),
            system_prompt=agent_def.get("system_prompt", f"You are {agent_def['name']}."),
            model=agent_def.get("model"),
            provider=agent_def.get("provider"),
        )
        session.add(agent)
        session.flush()
        session.add(TeamAgent(team_id=team.id, agent_id=agent.id, role="member", display_order=order))

        for tool_name in agent_def.get("tools", []):
            tool = AgentTool(name=tool_name, description=f"{tool_name} tool", input_schema={"type": "object"})
            session.add(tool)
            session.flush()
            session.add(AiAgentTool(agent_id=agent.id, tool_id=tool.id))
        for skill_name, content in agent_def.get("skills", []):
            skill = AgentSkill(name=skill_name, skill_content=content)
            session.add(skill)
            session.flush()
            session.add(AiAgentSkill(agent_id=agent.id, skill_id=skill.id))
        for mind_name in agent_def.get("mind", []):
            session.add(AgentMind(agent_id=agent.id, name=mind_name, slug=mind_name.lower(), content=f"{mind_name} notes"))
        for rule_type, content, priority in agent_def.get("rules", []):
            session.add(AgentRule(agent_id=agent.id, rule_type=rule_type, rule_content=content, priority=priority))
        for schedule in agent_def.get("schedules", []):
            name, cron = schedule[0], schedule[1]
            tz = schedule[2] if len(schedule) > 2 else None
            session.add(AgentSchedule(
                agent_id=agent.id, workspace_id=None, name=name, cron_expression=cron, timezone=tz,
                task_prompt=f"Run {name}", is_template=True,
            ))
        created.append(agent)

    for from_index, to_index in delegations:
        session.add(TeamDelegation(
            team_id=team.id, from_agent_id=created[from_index].id, to_agent_id=created[to_index].id,
            condition="when asked",
        ))
    for mind_name in team_mind:
        mind = AgentMind(agent_id=None, name=mind_name, slug=mind_name.lower(), content="shared")
        session.add(mind)
        session.flush()
        session.add(TeamMind(team_id=team.id, mind_id=mind.id))

    session.commit()
    return team, created


def seed_workspace(session, owner_id=None, name="Acme"):
    workspace = Workspace(name=name, owner_id=owner_id or uuid.uuid4())
    session.add(workspace)
    session.commit()
    return workspace


def seed_plan(session, slug, team=None, is_active=True):
    plan = Plan(slug=slug, name=slug.title(), team_id=team.id if team else None, is_active=is_active)
    session.add(plan)
    session.commit()
    return plan


def seed_billing(session, workspace, pending=None, status="active", tier="none", effective_at=None):
    billing = WorkspaceBilling(
        workspace_id=workspace.id,
        agent_tier=tier,
        agent_status=status,
        agent_tier_pending=pending,
        agent_tier_pending_effective_at=effective_at,
    )
    session.add(billing)
    session.commit()
    return billing


def two_agent_team(session, slug="starter-team", version=1):
    return seed_team(session, [
        {"name": "Research Lead", "slug": "research-lead", "tools": ["web_search"],
         "schedules": [("Daily Summary", "0 9 * * *")]},
        {"name": "Writer", "tools": ["docs"], "schedules": [("Weekly Report", "0 17 * * 5", "Europe/Berlin")]},
    ], slug=slug, version=version, delegations=[(0, 1)])
