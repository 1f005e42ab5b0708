"""
TrialPipeline model: maps to the trial_pipeline table.
One row per lead that started a trial; activation_status is driven by
activation_api.services.activation.state_machine.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped

from .base import Base
from .enums import ActivationStatus


class TrialPipeline(Base):
    __tablename__ = "trial_pipeline"

    id: Mapped[UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    crm_lead_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("leads.id"), nullable=False, index=True
    )
    assigned_activator_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("members.id"), nullable=True
    )
    activation_status: Mapped[str] = Column(
        Text, nullable=False, default=ActivationStatus.queued.value
    )

    # Counters
    reschedule_count: Mapped[int] = Column(Integer, nullable=False, default=0)
    attempts_count: Mapped[int] = Column(Integer, nullable=False, default=0)
    no_show_count: Mapped[int] = Column(Integer, nullable=False, default=0)
    credits_remaining: Mapped[int] = Column(Integer, nullable=False, default=20)

    # Denormalized copy of the current meeting
    scheduled_start_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    scheduled_end_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    scheduled_timezone: Mapped[Optional[str]] = Column(Text, nullable=True)
    scheduled_with_name: Mapped[Optional[str]] = Column(Text, nullable=True)
    scheduled_with_role: Mapped[Optional[str]] = Column(Text, nullable=True)
    scheduled_by_user_id: Mapped[Optional[UUID]] = Column(UUID(as_uuid=True), nullable=True)
    scheduled_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)

    # Follow-up
    last_contact_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    next_action: Mapped[Optional[str]] = Column(Text, nullable=True)
    next_followup_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    followup_owner_role: Mapped[Optional[str]] = Column(Text, nullable=True)
    followup_reason: Mapped[Optional[str]] = Column(Text, nullable=True)

    # Meeting outcomes
    last_meeting_outcome: Mapped[Optional[str]] = Column(Text, nullable=True)
    no_show_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    block_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    block_owner: Mapped[Optional[str]] = Column(Text, nullable=True)
    next_step: Mapped[Optional[str]] = Column(Text, nullable=True)
    install_url: Mapped[Optional[str]] = Column(Text, nullable=True)
    calculator_installed_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    first_lead_received_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    activated_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)

    # Kill
    marked_lost_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    lost_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    activation_kill_reason: Mapped[Optional[str]] = Column(Text, nullable=True)

    # Control Tower correlation key
    jcc_user_id: Mapped[Optional[str]] = Column(Text, nullable=True, index=True)

    created_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
