"""
Meeting conflict checks for activator calendars.

Intervals are half-open: a meeting ending at 10:30 does not collide with
one starting at 10:30.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import MeetingStatus
from activation_api.services.utils.dates import ensure_utc


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """True when [a_start, a_end) and [b_start, b_end) share any instant."""
    return ensure_utc(a_start) < ensure_utc(b_end) and ensure_utc(a_end) > ensure_utc(b_start)


async def find_conflicts(
    db: AsyncSession,
    activator_user_id: UUID,
    proposed_start: datetime,
    proposed_end: datetime,
    exclude_meeting_id: Optional[UUID] = None,
) -> List[ActivationMeeting]:
    """Return the activator's scheduled meetings overlapping the proposed window."""
    stmt = select(ActivationMeeting).where(
        ActivationMeeting.activator_user_id == activator_user_id,
        ActivationMeeting.status == MeetingStatus.scheduled.value,
        ActivationMeeting.scheduled_start_at < ensure_utc(proposed_end),
        ActivationMeeting.scheduled_end_at > ensure_utc(proposed_start),
    )
    if exclude_meeting_id:
        stmt = stmt.where(ActivationMeeting.id != exclude_meeting_id)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def has_conflict(
    db: AsyncSession,
    activator_user_id: UUID,
    proposed_start: datetime,
    proposed_end: datetime,
    exclude_meeting_id: Optional[UUID] = None,
) -> bool:
    conflicts = await find_conflicts(
        db, activator_user_id, proposed_start, proposed_end, exclude_meeting_id
    )
    return len(conflicts) > 0
