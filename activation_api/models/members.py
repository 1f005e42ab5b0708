"""
Member model: maps to the members table (user profile within an organization).
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base
from .enums import OrganizationMemberType


class Member(Base):
    __tablename__ = "members"

    id: Mapped[UUID] = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = Column(Text, nullable=False)
    email: Mapped[str] = Column(Text, nullable=False)
    organization_id: Mapped[UUID] = Column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    default_role: Mapped[str] = Column(
        Text, nullable=False, default=OrganizationMemberType.member.value
    )
    is_activator: Mapped[bool] = Column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", foreign_keys=[organization_id])

    @property
    def is_admin(self) -> bool:
        return self.default_role == OrganizationMemberType.admin.value

    @property
    def is_elevated(self) -> bool:
        """Activators and admins bypass the SDR reschedule limit."""
        return bool(self.is_activator) or self.is_admin
