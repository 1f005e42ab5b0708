"""
ActivationMeeting model: maps to the activation_meetings table.
Meetings are never deleted; they move through MeetingStatus values only.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base
from .enums import MeetingStatus


class ActivationMeeting(Base):
    __tablename__ = "activation_meetings"
    __table_args__ = (
        Index("idx_activation_meetings_activator", "activator_user_id", "scheduled_start_at"),
        Index("idx_activation_meetings_status", "status", "scheduled_start_at"),
    )

    id: Mapped[UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trial_pipeline_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("trial_pipeline.id", ondelete="SET NULL"), nullable=True
    )
    lead_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("leads.id", ondelete="SET NULL"), nullable=True
    )
    organization_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )

    # Scheduling
    scheduled_start_at: Mapped[datetime] = Column(DateTime(timezone=True), nullable=False)
    scheduled_end_at: Mapped[datetime] = Column(DateTime(timezone=True), nullable=False)
    scheduled_timezone: Mapped[str] = Column(Text, nullable=False)
    scheduled_via: Mapped[Optional[str]] = Column(Text, nullable=True)

    # Assignment
    activator_user_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("members.id"), nullable=False
    )
    scheduled_by_sdr_user_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("members.id"), nullable=False
    )

    status: Mapped[str] = Column(Text, nullable=False, default=MeetingStatus.scheduled.value)

    # Attendee
    attendee_name: Mapped[str] = Column(Text, nullable=False)
    attendee_role: Mapped[str] = Column(Text, nullable=False)
    phone: Mapped[str] = Column(Text, nullable=False)
    email: Mapped[Optional[str]] = Column(Text, nullable=True)

    # Context captured by the SDR
    website_platform: Mapped[str] = Column(Text, nullable=False)
    website_url: Mapped[Optional[str]] = Column(Text, nullable=True)
    goal: Mapped[str] = Column(Text, nullable=False)
    objections: Mapped[Optional[str]] = Column(Text, nullable=True)
    notes: Mapped[Optional[str]] = Column(Text, nullable=True)
    access_method: Mapped[Optional[str]] = Column(Text, nullable=True)
    web_person_email: Mapped[Optional[str]] = Column(Text, nullable=True)
    sdr_confirmed_understands_install: Mapped[bool] = Column(Boolean, nullable=False, default=False)
    sdr_confirmed_agreed_install: Mapped[bool] = Column(Boolean, nullable=False, default=False)
    sdr_confirmed_will_attend: Mapped[bool] = Column(Boolean, nullable=False, default=False)

    # Email tracking
    confirmation_sent_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    reminder_24h_sent_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)

    # Attempts
    attempt_number: Mapped[int] = Column(Integer, nullable=False, default=1)
    parent_meeting_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("activation_meetings.id"), nullable=True
    )

    # Completion
    completed_at: Mapped[Optional[datetime]] = Column(DateTime(timezone=True), nullable=True)
    completed_by_user_id: Mapped[Optional[UUID]] = Column(
        UUID(as_uuid=True), ForeignKey("members.id"), nullable=True
    )
    outcome_notes: Mapped[Optional[str]] = Column(Text, nullable=True)
    proof_method: Mapped[Optional[str]] = Column(Text, nullable=True)
    lead_delivery_methods: Mapped[Optional[List[str]]] = Column(JSON, nullable=True)
    primary_recipient: Mapped[Optional[str]] = Column(Text, nullable=True)
    client_confirmed_receipt: Mapped[bool] = Column(Boolean, nullable=False, default=False)
    install_url: Mapped[Optional[str]] = Column(Text, nullable=True)
    block_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    block_owner: Mapped[Optional[str]] = Column(Text, nullable=True)
    next_step: Mapped[Optional[str]] = Column(Text, nullable=True)
    reschedule_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    web_person_invited: Mapped[bool] = Column(Boolean, nullable=False, default=False)
    canceled_by: Mapped[Optional[str]] = Column(Text, nullable=True)
    cancel_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    kill_reason: Mapped[Optional[str]] = Column(Text, nullable=True)
    contact_attempted: Mapped[Optional[List[str]]] = Column(JSON, nullable=True)

    created_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    activator: Mapped["Member"] = relationship("Member", foreign_keys=[activator_user_id])
    scheduled_by: Mapped["Member"] = relationship("Member", foreign_keys=[scheduled_by_sdr_user_id])
