"""
Schedule Template Cloner.

Copies template schedules of agents into tenant-owned rows for a workspace.
Cloning is idempotent and converges under concurrent callers: a uniqueness
conflict on a batch falls back to per-row inserts, and per-row uniqueness
conflicts mean another caller already created the row.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from team_deployer.config.models import AgentSchedule
from team_deployer.config.schema import CloneResult
from team_deployer.config.settings import CLONE_BATCH_SIZE, DEFAULT_SCHEDULE_TIMEZONE
from team_deployer.services.cron_evaluator import next_run_at
from team_deployer.services.errors import InvalidScheduleError, is_unique_violation
from team_deployer.services.template_dedup import dedupe_schedule_templates, schedule_key

logger = logging.getLogger(__name__)

UUIDLike = Union[str, uuid.UUID]


def _as_uuid(value: UUIDLike) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class ScheduleClonerService:
    """Service responsible for cloning schedule templates into a workspace."""

    @staticmethod
    def fetch_templates(session: Session, agent_ids: List[uuid.UUID]) -> List[AgentSchedule]:
        """Template rows of the agents, oldest first; rows created together are ordered by id."""
        return session.query(AgentSchedule) \
                      .filter(AgentSchedule.is_template == True, AgentSchedule.agent_id.in_(agent_ids)) \
                      .order_by(AgentSchedule.created_at, AgentSchedule.id) \
                      .all()

    @staticmethod
    def fetch_existing_keys(session: Session, agent_ids: List[uuid.UUID],
                            workspace_id: uuid.UUID) -> Set[Tuple[str, str]]:
        rows = session.query(AgentSchedule.agent_id, AgentSchedule.name) \
                      .filter(
                          AgentSchedule.workspace_id == workspace_id,
                          AgentSchedule.is_template == False,
                          AgentSchedule.agent_id.in_(agent_ids),
                      ).all()
        return {(str(agent_id), name) for agent_id, name in rows}

    @classmethod
    def clone_schedule_templates(cls, session: Session, agent_ids: Iterable[UUIDLike],
                                 workspace_id: UUIDLike, created_by: Optional[UUIDLike] = None,
                                 batch_size: Optional[int] = None) -> CloneResult:
        """
        Clone the template schedules of the given agents into the workspace.

        Args:
            session: SQLAlchemy DB session
            agent_ids: Agent template ids whose schedules should exist in the workspace
            workspace_id: Target workspace
            created_by: Optional profile id recorded on the created rows
            batch_size: Rows per insert statement (defaults to CLONE_BATCH_SIZE)

        Returns:
            CloneResult with created/skipped/conflict counts and non-conflict errors
        """
        result = CloneResult()
        agent_uuids = [_as_uuid(a) for a in agent_ids]
        if not agent_uuids:
            return result
        workspace_uuid = _as_uuid(workspace_id)
        creator_uuid = _as_uuid(created_by) if created_by else None

        templates = dedupe_schedule_templates(cls.fetch_templates(session, agent_uuids))
        existing = cls.fetch_existing_keys(session, agent_uuids, workspace_uuid)

        rows = []
        for template in templates:
            if schedule_key(template) in existing:
                result.skipped += 1
                continue
            rows.append(cls._clone_row(template, workspace_uuid, creator_uuid))

        if not rows:
            return result

        size = max(1, min(batch_size or CLONE_BATCH_SIZE, CLONE_BATCH_SIZE))
        for start in range(0, len(rows), size):
            cls._insert_batch(session, rows[start:start + size], result)

        logger.info(
            f"Cloned {result.created} schedules into workspace {workspace_uuid} "
            f"(skipped={result.skipped}, conflicts={result.conflicts}, errors={len(result.errors)})"
        )
        return result

    @staticmethod
    def _clone_row(template: AgentSchedule, workspace_id: uuid.UUID,
                   created_by: Optional[uuid.UUID]) -> Dict[str, Any]:
        tz_name = template.timezone or DEFAULT_SCHEDULE_TIMEZONE
        try:
            next_run = next_run_at(template.cron_expression, tz_name)
        except InvalidScheduleError as e:
            logger.warning(f"Schedule template {template.id} ({template.name}) has no next run: {e}")
            next_run = None

        return {
            "id": uuid.uuid4(),
            "agent_id": template.agent_id,
            "workspace_id": workspace_id,
            "name": template.name,
            "description": template.description,
            "cron_expression": template.cron_expression,
            "timezone": tz_name,
            "task_prompt": template.task_prompt,
            "is_template": False,
            "is_enabled": template.is_enabled,
            "next_run_at": next_run,
            "created_by": created_by,
        }

    @classmethod
    def _insert_batch(cls, session: Session, batch: List[Dict[str, Any]], result: CloneResult) -> None:
        try:
            session.execute(insert(AgentSchedule), batch)
            session.commit()
            result.created += len(batch)
        except IntegrityError as e:
            session.rollback()
            if not is_unique_violation(e):
                logger.error(f"Schedule batch insert failed: {e}")
                result.errors.append(str(e.orig) if e.orig is not None else str(e))
                return
            logger.info(f"Schedule batch of {len(batch)} hit a uniqueness conflict, inserting row by row")
            for row in batch:
                cls._insert_row(session, row, result)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Schedule batch insert failed: {e}")
            result.errors.append(str(e))

    @staticmethod
    def _insert_row(session: Session, row: Dict[str, Any], result: CloneResult) -> None:
        try:
            session.execute(insert(AgentSchedule).values(**row))
            session.commit()
            result.created += 1
        except IntegrityError as e:
            session.rollback()
            if is_unique_violation(e):
                # Another caller cloned the same (agent, name) first
                result.conflicts += 1
                return
            logger.error(f"Schedule insert failed for {row['name']!r} (agent {row['agent_id']}): {e}")
            result.errors.append(str(e.orig) if e.orig is not None else str(e))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Schedule insert failed for {row['name']!r} (agent {row['agent_id']}): {e}")
            result.errors.append(str(e))
