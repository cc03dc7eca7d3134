from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, JSON, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import func
import uuid

from .base import Base

DEPLOYMENT_STATUSES = ("pending", "active", "replaced", "failed", "paused")


class WorkspaceDeployedTeam(Base):
    """Tenant-specific, versioned instantiation of a team template."""
    __tablename__ = 'workspace_deployed_teams'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the deployment")
    workspace_id = Column(UUID(as_uuid=True), ForeignKey('workspaces.id', ondelete="CASCADE"), nullable=False,
                          comment="Workspace the team is deployed to")
    source_team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id', ondelete="SET NULL"), nullable=True,
                            comment="Team template this deployment was built from")
    source_version = Column(Integer, nullable=False, default=1, comment="Template version at snapshot time")
    base_config = Column(JSON, nullable=False, comment="Denormalized template snapshot")
    customizations = Column(JSON, nullable=False, default=dict, comment="Tenant deltas over base_config")
    active_config = Column(JSON, nullable=False, comment="base_config with customizations applied")
    status = Column(String(20), nullable=False, default="pending", comment="pending | active | replaced | failed | paused")
    previous_deployment_id = Column(UUID(as_uuid=True), nullable=True, comment="Deployment this one supersedes")
    deployed_by = Column(UUID(as_uuid=True), nullable=True, comment="Profile that triggered the deployment")
    last_customized_at = Column(DateTime(timezone=True), nullable=True)
    last_customized_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        Index('ix_workspace_deployed_teams_workspace_id', 'workspace_id'),
        # At most one active deployment per workspace
        Index('uq_workspace_deployed_teams_active', 'workspace_id', unique=True,
              postgresql_where=text("status = 'active'"),
              sqlite_where=text("status = 'active'")),
    )
