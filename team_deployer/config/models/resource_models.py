from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy import func
import uuid

from .base import Base


class AgentProfile(Base):
    """Identity of an agent inside one workspace, so it can appear as a channel member."""
    __tablename__ = 'agent_profiles'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, comment="Primary key (UUID) for the profile")
    email = Column(String(320), nullable=False, unique=True, comment="Deterministic synthetic address of the agent")
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=True)
    is_agent = Column(Boolean, nullable=False, default=True)
    agent_slug = Column(String(255), nullable=False)
    linked_agent_id = Column(UUID(as_uuid=True), nullable=False, comment="Agent template id (ai_agents.id)")
    agent_workspace_id = Column(UUID(as_uuid=True), ForeignKey('workspaces.id', ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (
        UniqueConstraint('linked_agent_id', 'agent_workspace_id', name='uq_agent_profiles_agent_workspace'),
        Index('ix_agent_profiles_workspace_id', 'agent_workspace_id'),
    )


class Channel(Base):
    """Messaging channel; agent channels are named agent-{slug}."""
    __tablename__ = 'channels'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id = Column(UUID(as_uuid=True), ForeignKey('workspaces.id', ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_agent_channel = Column(Boolean, nullable=False, default=False)
    linked_agent_id = Column(UUID(as_uuid=True), nullable=True, comment="Agent the channel talks to")
    created_by = Column(UUID(as_uuid=True), nullable=True, comment="Profile that created the channel")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (
        UniqueConstraint('workspace_id', 'name', name='uq_channels_workspace_name'),
    )


class ChannelMember(Base):
    """Membership of a profile in a channel."""
    __tablename__ = 'channel_members'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    channel_id = Column(UUID(as_uuid=True), ForeignKey('channels.id', ondelete="CASCADE"), nullable=False)
    profile_id = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    __table_args__ = (
        UniqueConstraint('channel_id', 'profile_id', name='uq_channel_members_channel_profile'),
    )
