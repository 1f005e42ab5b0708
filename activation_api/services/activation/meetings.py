"""
Booking and listing of activation meetings.

A booking inserts the meeting and moves the linked trial pipeline to
``scheduled`` in a single transaction; if the pipeline cannot be moved the
meeting is never committed.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.activation_meeting import ActivationMeetingCreate
from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import AttendeeRole, MeetingStatus, WebsitePlatform
from activation_api.models.leads import Lead
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.crud import CRUDBase
from activation_api.services.utils.dates import ensure_utc, is_valid_timezone, utcnow

from .booking_lock import BookingLock
from .conflicts import find_conflicts
from .errors import ActivationError, NotFound, PipelineUpdateFailed, SlotConflict, ValidationFailed
from .events import record_event
from .pipeline import record_schedule

logger = logging.getLogger(__name__)

MEETING_DURATION = timedelta(minutes=30)
DEFAULT_SCHEDULED_VIA = "activations_page"

# (attribute, name reported to the client)
REQUIRED_FIELDS = [
    ("scheduled_start_at", "scheduledStartAt"),
    ("scheduled_timezone", "scheduledTimezone"),
    ("activator_user_id", "activatorUserId"),
    ("attendee_name", "attendeeName"),
    ("attendee_role", "attendeeRole"),
    ("phone", "phone"),
    ("website_platform", "websitePlatform"),
    ("goal", "goal"),
]


def validate_booking(payload: ActivationMeetingCreate) -> None:
    for attr, name in REQUIRED_FIELDS:
        value = getattr(payload, attr)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationFailed(f"Missing required field: {name}")

    if not is_valid_timezone(payload.scheduled_timezone):
        raise ValidationFailed(f"Invalid timezone: {payload.scheduled_timezone}")
    if payload.attendee_role not in {r.value for r in AttendeeRole}:
        raise ValidationFailed(f"Invalid attendeeRole: {payload.attendee_role}")
    if payload.website_platform not in {p.value for p in WebsitePlatform}:
        raise ValidationFailed(f"Invalid websitePlatform: {payload.website_platform}")


async def ensure_activator(db: AsyncSession, activator_user_id: UUID, organization_id: UUID) -> Member:
    activator = await CRUDBase(Member, db).get_in_org(activator_user_id, organization_id)
    if not activator or not activator.is_activator:
        raise ValidationFailed("Activator not found in this organization")
    return activator


async def ensure_slot_free(
    db: AsyncSession,
    activator_user_id: UUID,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[UUID] = None,
) -> None:
    conflicts = await find_conflicts(db, activator_user_id, start, end, exclude_meeting_id)
    if conflicts:
        logger.info(
            "Slot %s-%s for activator %s collides with %d meeting(s)",
            start.isoformat(), end.isoformat(), activator_user_id, len(conflicts),
        )
        raise SlotConflict("This time slot is no longer available")


class MeetingBookingService:
    def __init__(self, db: AsyncSession, booking_lock: BookingLock) -> None:
        self.db = db
        self.booking_lock = booking_lock

    async def _load_pipeline(self, pipeline_id: UUID, organization_id: UUID) -> TrialPipeline:
        pipeline = await CRUDBase(TrialPipeline, self.db).get_in_org(
            pipeline_id, organization_id, for_update=True
        )
        if not pipeline:
            raise NotFound("Trial pipeline not found")
        return pipeline

    async def _website_for(self, lead_id: Optional[UUID]) -> Optional[str]:
        if not lead_id:
            return None
        lead = await self.db.get(Lead, lead_id)
        return lead.website if lead else None

    async def create(self, actor: Member, payload: ActivationMeetingCreate) -> ActivationMeeting:
        """
        Book a 30 minute meeting on an activator's calendar.

        Raises:
            ValidationFailed: missing/invalid fields or unknown activator.
            SlotConflict: the activator already has a meeting in the window.
            NotFound, InvalidTransition: the linked pipeline cannot be scheduled.
        """
        validate_booking(payload)
        await ensure_activator(self.db, payload.activator_user_id, actor.organization_id)

        start = ensure_utc(payload.scheduled_start_at)
        end = start + MEETING_DURATION

        async with self.booking_lock.hold(payload.activator_user_id):
            try:
                await ensure_slot_free(self.db, payload.activator_user_id, start, end)

                pipeline = None
                lead_id = payload.lead_id
                if payload.trial_pipeline_id:
                    pipeline = await self._load_pipeline(payload.trial_pipeline_id, actor.organization_id)
                    lead_id = lead_id or pipeline.crm_lead_id

                meeting = ActivationMeeting(
                    trial_pipeline_id=pipeline.id if pipeline else None,
                    lead_id=payload.lead_id,
                    organization_id=actor.organization_id,
                    scheduled_start_at=start,
                    scheduled_end_at=end,
                    scheduled_timezone=payload.scheduled_timezone,
                    scheduled_via=payload.scheduled_via or DEFAULT_SCHEDULED_VIA,
                    activator_user_id=payload.activator_user_id,
                    scheduled_by_sdr_user_id=actor.id,
                    status=MeetingStatus.scheduled.value,
                    attendee_name=payload.attendee_name,
                    attendee_role=payload.attendee_role,
                    phone=payload.phone,
                    email=payload.email or None,
                    website_platform=payload.website_platform,
                    website_url=await self._website_for(lead_id),
                    goal=payload.goal,
                    objections=payload.objections or None,
                    notes=payload.notes or None,
                    access_method=payload.access_method or None,
                    web_person_email=payload.web_person_email or None,
                    sdr_confirmed_understands_install=payload.sdr_confirmed_understands_install,
                    sdr_confirmed_agreed_install=payload.sdr_confirmed_agreed_install,
                    sdr_confirmed_will_attend=payload.sdr_confirmed_will_attend,
                )
                self.db.add(meeting)

                if pipeline:
                    record_schedule(pipeline, meeting, actor.id, utcnow())

                await self.db.commit()
            except ActivationError:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("Failed to book meeting for activator %s: %s", payload.activator_user_id, e)
                raise PipelineUpdateFailed("Failed to save meeting and trial pipeline")

        await self.db.refresh(meeting)
        logger.info("Meeting %s booked with activator %s", meeting.id, meeting.activator_user_id)

        if meeting.trial_pipeline_id:
            await record_event(
                self.db,
                meeting.trial_pipeline_id,
                "scheduled",
                actor.id,
                {
                    "meeting_id": str(meeting.id),
                    "scheduled_start_at": start.isoformat(),
                    "scheduled_end_at": end.isoformat(),
                    "scheduled_timezone": meeting.scheduled_timezone,
                    "scheduled_via": meeting.scheduled_via,
                    "activator_user_id": str(meeting.activator_user_id),
                    "attendee_name": meeting.attendee_name,
                    "attendee_role": meeting.attendee_role,
                },
                reload=(meeting,),
            )
        return meeting

    async def list_meetings(
        self,
        actor: Member,
        activator_only: bool = True,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Tuple[ActivationMeeting, Optional[str]]]:
        """Meetings of the caller's organization, soonest first, with the activator's name."""
        stmt = (
            select(ActivationMeeting, Member.name)
            .outerjoin(Member, ActivationMeeting.activator_user_id == Member.id)
            .where(ActivationMeeting.organization_id == actor.organization_id)
        )
        # Activators see their own calendar unless they ask for everything
        if actor.is_activator and activator_only:
            stmt = stmt.where(ActivationMeeting.activator_user_id == actor.id)
        if status:
            stmt = stmt.where(ActivationMeeting.status == status)
        if start_date:
            stmt = stmt.where(
                ActivationMeeting.scheduled_start_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc)
            )
        if end_date:
            stmt = stmt.where(
                ActivationMeeting.scheduled_start_at <= datetime.combine(end_date, time.max, tzinfo=timezone.utc)
            )
        stmt = stmt.order_by(ActivationMeeting.scheduled_start_at.asc())

        result = await self.db.execute(stmt)
        return [(meeting, name) for meeting, name in result.all()]
