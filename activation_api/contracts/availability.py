"""
Contracts for activator availability.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from .base import BaseContract


class SlotResponse(BaseContract):
    start: datetime
    end: datetime
    activatorId: UUID
    activatorName: str
    meetingLink: Optional[str] = None
    viewerDate: str


class SlotListResponse(BaseContract):
    success: bool = True
    slots: List[SlotResponse]
    activatorCount: int = 0
    message: Optional[str] = None
