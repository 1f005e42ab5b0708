"""
ActivatorSchedule model: weekly availability shifts for activators.
"""

import uuid
from datetime import datetime, time, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text, Time
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped

from .base import Base


class ActivatorSchedule(Base):
    __tablename__ = "activator_schedules"

    id: Mapped[UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    day_of_week: Mapped[int] = Column(Integer, nullable=False)  # Monday=0, Sunday=6
    start_time: Mapped[time] = Column(Time, nullable=False)
    end_time: Mapped[time] = Column(Time, nullable=False)
    timezone: Mapped[str] = Column(Text, nullable=False, default="America/New_York")
    is_active: Mapped[bool] = Column(Boolean, nullable=False, default=True)
    is_accepting_meetings: Mapped[bool] = Column(Boolean, nullable=False, default=True)
    meeting_duration_minutes: Mapped[int] = Column(Integer, nullable=False, default=30)
    buffer_before_minutes: Mapped[int] = Column(Integer, nullable=False, default=15)
    buffer_after_minutes: Mapped[int] = Column(Integer, nullable=False, default=15)
    max_meetings_per_day: Mapped[int] = Column(Integer, nullable=False, default=6)
    min_notice_hours: Mapped[int] = Column(Integer, nullable=False, default=2)
    booking_window_days: Mapped[int] = Column(Integer, nullable=False, default=14)
    meeting_link: Mapped[Optional[str]] = Column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
