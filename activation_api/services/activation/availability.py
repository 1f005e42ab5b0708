"""
Bookable activator slots.

Slots are generated per activator from their weekly shifts, then filtered
against existing scheduled meetings (buffers included), the minimum notice,
the per-day meeting cap and the booking window.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.activator_schedules import ActivatorSchedule
from activation_api.models.enums import MeetingStatus
from activation_api.models.members import Member
from activation_api.services.utils.dates import ensure_utc, get_zone, utcnow

from .conflicts import intervals_overlap
from .errors import ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_BOOKING_WINDOW_DAYS = 14


@dataclass
class Slot:
    start: datetime
    end: datetime
    activator_id: UUID
    activator_name: str
    meeting_link: Optional[str]
    viewer_date: str


def build_day_slots(
    slot_date: date,
    shift: ActivatorSchedule,
    busy: Sequence[Tuple[datetime, datetime]],
    now: datetime,
) -> List[Tuple[datetime, datetime]]:
    """
    Slots for one shift on one day in the activator's timezone.

    Slots step by duration plus both buffers; a slot is dropped when its
    buffered window overlaps a busy interval or it starts inside the
    minimum notice period.
    """
    if shift.end_time <= shift.start_time:
        # Shifts crossing midnight are not supported
        return []

    zone = get_zone(shift.timezone or DEFAULT_TIMEZONE)
    day_start = datetime.combine(slot_date, shift.start_time, tzinfo=zone).astimezone(timezone.utc)
    day_end = datetime.combine(slot_date, shift.end_time, tzinfo=zone).astimezone(timezone.utc)

    duration = timedelta(minutes=shift.meeting_duration_minutes or 30)
    before = timedelta(minutes=shift.buffer_before_minutes or 0)
    after = timedelta(minutes=shift.buffer_after_minutes or 0)
    earliest = now + timedelta(hours=shift.min_notice_hours or 0)

    slots = []
    current = day_start
    while current + duration <= day_end:
        slot_end = current + duration
        blocked = any(
            intervals_overlap(current - before, slot_end + after, b_start, b_end) for b_start, b_end in busy
        )
        if current > earliest and not blocked:
            slots.append((current, slot_end))
        current += duration + before + after
    return slots


class AvailabilityService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _activator_shifts(self, organization_id: UUID) -> Dict[UUID, Tuple[Member, List[ActivatorSchedule]]]:
        result = await self.db.execute(
            select(Member, ActivatorSchedule)
            .join(ActivatorSchedule, ActivatorSchedule.user_id == Member.id)
            .where(
                Member.organization_id == organization_id,
                Member.is_activator.is_(True),
                ActivatorSchedule.is_accepting_meetings.is_(True),
            )
        )
        shifts: Dict[UUID, Tuple[Member, List[ActivatorSchedule]]] = {}
        for member, schedule in result.all():
            shifts.setdefault(member.id, (member, []))[1].append(schedule)
        return shifts

    async def _busy(self, organization_id: UUID, start: datetime, end: datetime) -> Dict[UUID, List[Tuple[datetime, datetime]]]:
        result = await self.db.execute(
            select(ActivationMeeting).where(
                ActivationMeeting.organization_id == organization_id,
                ActivationMeeting.status == MeetingStatus.scheduled.value,
                ActivationMeeting.scheduled_start_at < end,
                ActivationMeeting.scheduled_end_at > start,
            )
        )
        busy: Dict[UUID, List[Tuple[datetime, datetime]]] = defaultdict(list)
        for meeting in result.scalars().all():
            busy[meeting.activator_user_id].append(
                (ensure_utc(meeting.scheduled_start_at), ensure_utc(meeting.scheduled_end_at))
            )
        return busy

    async def list_slots(
        self,
        actor: Member,
        start_date: Optional[date],
        end_date: Optional[date],
        viewer_timezone: str = DEFAULT_TIMEZONE,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Slot], int]:
        """
        Open slots across every activator of the caller's organization.

        Returns the slots sorted by start time and the number of activators
        currently accepting meetings.
        """
        if not start_date or not end_date:
            raise ValidationFailed("startDate and endDate required")
        try:
            viewer_zone: ZoneInfo = get_zone(viewer_timezone)
        except ValueError as e:
            raise ValidationFailed(str(e))

        now = ensure_utc(now) or utcnow()
        shifts = await self._activator_shifts(actor.organization_id)
        if not shifts:
            return [], 0

        window_days = min(
            [s.booking_window_days or DEFAULT_BOOKING_WINDOW_DAYS for _, sched in shifts.values() for s in sched]
            + [DEFAULT_BOOKING_WINDOW_DAYS]
        )
        last_day = min(end_date, (now + timedelta(days=window_days)).date())

        # Pad one day either side so shifts in far-off zones are covered
        range_start = datetime.combine(start_date - timedelta(days=1), time.min, tzinfo=timezone.utc)
        range_end = datetime.combine(last_day + timedelta(days=2), time.min, tzinfo=timezone.utc)
        busy = await self._busy(actor.organization_id, range_start, range_end)

        slots: List[Slot] = []
        day = start_date
        while day <= last_day:
            for activator_id, (member, schedules) in shifts.items():
                day_shifts = [s for s in schedules if s.is_active and s.day_of_week == day.weekday()]
                if not day_shifts:
                    continue

                first = day_shifts[0]
                zone = get_zone(first.timezone or DEFAULT_TIMEZONE)
                meetings_today = sum(
                    1 for b_start, _ in busy[activator_id] if b_start.astimezone(zone).date() == day
                )
                if meetings_today >= (first.max_meetings_per_day or 6):
                    continue

                link = next((s.meeting_link for s in schedules if s.meeting_link), None)
                for shift in day_shifts:
                    for start, end in build_day_slots(day, shift, busy[activator_id], now):
                        slots.append(Slot(
                            start=start,
                            end=end,
                            activator_id=activator_id,
                            activator_name=member.name or "Activator",
                            meeting_link=link,
                            viewer_date=start.astimezone(viewer_zone).date().isoformat(),
                        ))
            day += timedelta(days=1)

        slots.sort(key=lambda s: s.start)
        logger.info("Generated %d slots for %d activator(s)", len(slots), len(shifts))
        return slots, len(shifts)
