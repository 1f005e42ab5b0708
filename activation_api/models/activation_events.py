"""
ActivationEvent model: append-only audit log for a trial pipeline.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped

from .base import Base


class ActivationEvent(Base):
    __tablename__ = "activation_events"

    id: Mapped[UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trial_pipeline_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("trial_pipeline.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    event_type: Mapped[str] = Column(Text, nullable=False)
    # Null for system-triggered events (cron, Control Tower signals)
    actor_user_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("members.id"), nullable=True
    )
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[Optional[dict]] = Column("metadata", JSON, default=dict)
    created_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
