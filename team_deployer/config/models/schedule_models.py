from sqlalchemy import Column, String, Text, Boolean, DateTime, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import func
import uuid

from .base import Base


class AgentSchedule(Base):
    """
    Recurring task definition.

    Rows with is_template=True (and no workspace) are template definitions owned by an
    agent template; rows with is_template=False are per-workspace clones.
    """
    __tablename__ = 'agent_schedules'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the schedule")
    agent_id = Column(UUID(as_uuid=True), nullable=False, comment="Agent template id (ai_agents.id)")
    workspace_id = Column(UUID(as_uuid=True), nullable=True, comment="Owning workspace; NULL for templates")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    cron_expression = Column(String(100), nullable=False)
    timezone = Column(String(64), nullable=True, comment="IANA timezone of the cron expression")
    task_prompt = Column(Text, nullable=True, comment="Instruction given to the agent when the schedule fires")
    is_template = Column(Boolean, nullable=False, default=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    next_run_at = Column(DateTime(timezone=True), nullable=True, comment="Next trigger time, read by the scheduler")
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        # NULL workspace ids never collide, so template rows are not constrained
        UniqueConstraint('agent_id', 'workspace_id', 'name', name='uq_agent_schedules_agent_workspace_name'),
        Index('ix_agent_schedules_workspace_id', 'workspace_id'),
        Index('ix_agent_schedules_agent_template', 'agent_id', 'is_template'),
    )
