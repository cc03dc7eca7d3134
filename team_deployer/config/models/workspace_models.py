from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import func
import uuid

from .base import Base


class Workspace(Base):
    """Tenant workspace that receives a deployed team."""
    __tablename__ = 'workspaces'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the workspace")
    name = Column(String(255), nullable=False, comment="Workspace display name")
    owner_id = Column(UUID(as_uuid=True), nullable=True, comment="Profile id of the human owner")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class WorkspaceMember(Base):
    """Membership of a (human or agent) profile in a workspace."""
    __tablename__ = 'workspace_members'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id = Column(UUID(as_uuid=True), ForeignKey('workspaces.id', ondelete="CASCADE"), nullable=False)
    profile_id = Column(UUID(as_uuid=True), nullable=False, comment="Human or agent profile id")
    role = Column(String(50), nullable=False, default="member", comment="owner | admin | member")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (
        UniqueConstraint('workspace_id', 'profile_id', name='uq_workspace_members_workspace_profile'),
    )


class Plan(Base):
    """Subscription plan; its slug doubles as the agent tier name."""
    __tablename__ = 'plans'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String(100), nullable=False, unique=True, comment="Plan slug (starter, teams, enterprise)")
    name = Column(String(255), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id', ondelete="SET NULL"), nullable=True,
                     comment="Team template deployed for this plan")
    is_active = Column(Boolean, nullable=False, default=True)


class WorkspaceBilling(Base):
    """Billing state of a workspace, including the queued agent tier change."""
    __tablename__ = 'workspace_billing'
    workspace_id = Column(UUID(as_uuid=True), ForeignKey('workspaces.id', ondelete="CASCADE"), primary_key=True)
    agent_tier = Column(String(50), nullable=False, default="none", comment="Committed agent tier")
    agent_status = Column(String(50), nullable=True, comment="Subscription status of the agent tier (active, trialing, ...)")
    agent_tier_pending = Column(String(50), nullable=True, comment="Tier change waiting to be applied")
    agent_tier_pending_effective_at = Column(DateTime(timezone=True), nullable=True,
                                             comment="When the pending tier change becomes due")
    agent_deploy_status = Column(String(50), nullable=True, comment="deploying | deployed | failed")
    agent_deploy_error = Column(Text, nullable=True, comment="Last deployment error for the committed tier")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        Index('ix_workspace_billing_pending', 'agent_tier_pending'),
    )


class BillingAlert(Base):
    """Alert raised for operator attention (e.g. a tier was applied but deploy failed)."""
    __tablename__ = 'billing_alerts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id = Column(UUID(as_uuid=True), nullable=True, comment="Workspace the alert is about")
    alert_type = Column(String(50), nullable=False, comment="deploy_failed | payment_failed | ...")
    severity = Column(String(20), nullable=False, default="medium", comment="low | medium | high | critical")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    alert_metadata = Column("metadata", JSON, nullable=False, default=dict)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (
        Index('ix_billing_alerts_workspace_id', 'workspace_id'),
    )
