"""
Moving a scheduled meeting to a new slot.

Policy: the SDR who booked a meeting may move it once per pipeline;
activators and admins may move it any number of times.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.activation_meeting import RescheduleRequest
from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import MeetingStatus, PipelineEvent
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.crud import CRUDBase
from activation_api.services.utils.dates import ensure_utc

from .booking_lock import BookingLock
from .errors import (
    ActivationError,
    AlreadyFinalized,
    NotFound,
    PermissionDenied,
    PipelineUpdateFailed,
    PolicyViolation,
    ValidationFailed,
)
from .events import record_event
from .meetings import ensure_slot_free
from .pipeline import apply_transition

logger = logging.getLogger(__name__)

SDR_RESCHEDULE_LIMIT = 1


@dataclass
class RescheduleResult:
    meeting: ActivationMeeting
    rescheduled_by: str
    reschedule_count: Optional[int] = None


def check_reschedule_permission(actor: Member, meeting: ActivationMeeting) -> None:
    """Only the booking SDR, activators and admins may move a meeting."""
    if not actor.is_elevated and meeting.scheduled_by_sdr_user_id != actor.id:
        raise PermissionDenied("You can only reschedule meetings you scheduled or are assigned to")


def check_reschedule_allowed(actor: Member, meeting: ActivationMeeting, pipeline: Optional[TrialPipeline]) -> None:
    """
    Raises PermissionDenied for strangers to the meeting and PolicyViolation
    once an SDR has used up their reschedule.
    """
    check_reschedule_permission(actor, meeting)
    if actor.is_elevated:
        return
    if pipeline is not None and (pipeline.reschedule_count or 0) >= SDR_RESCHEDULE_LIMIT:
        raise PolicyViolation("SDRs can only reschedule once. Only the Activator can reschedule now.")


class RescheduleService:
    def __init__(self, db: AsyncSession, booking_lock: BookingLock) -> None:
        self.db = db
        self.booking_lock = booking_lock

    async def reschedule(self, actor: Member, payload: RescheduleRequest) -> RescheduleResult:
        if not payload.meeting_id or not payload.new_slot_start_at or not payload.new_slot_end_at:
            raise ValidationFailed("meetingId, newSlotStartAt, and newSlotEndAt are required")

        new_start = ensure_utc(payload.new_slot_start_at)
        new_end = ensure_utc(payload.new_slot_end_at)
        if new_end <= new_start:
            raise ValidationFailed("newSlotEndAt must be after newSlotStartAt")

        meeting = await CRUDBase(ActivationMeeting, self.db).get_in_org(
            payload.meeting_id, actor.organization_id
        )
        if not meeting:
            raise NotFound("Meeting not found")
        check_reschedule_permission(actor, meeting)

        async with self.booking_lock.hold(meeting.activator_user_id):
            try:
                # Re-read under the lock so status and counters are current
                await self.db.refresh(meeting, with_for_update=True)
                if meeting.status != MeetingStatus.scheduled.value:
                    raise AlreadyFinalized(f"Cannot reschedule a meeting that is {meeting.status}")

                pipeline = None
                if meeting.trial_pipeline_id:
                    pipeline = await CRUDBase(TrialPipeline, self.db).get(
                        meeting.trial_pipeline_id, for_update=True
                    )

                check_reschedule_allowed(actor, meeting, pipeline)
                await ensure_slot_free(
                    self.db, meeting.activator_user_id, new_start, new_end, exclude_meeting_id=meeting.id
                )

                old_start = ensure_utc(meeting.scheduled_start_at)
                old_end = ensure_utc(meeting.scheduled_end_at)
                meeting.scheduled_start_at = new_start
                meeting.scheduled_end_at = new_end

                reschedule_count = None
                if pipeline is not None:
                    apply_transition(pipeline, PipelineEvent.reschedule)
                    pipeline.scheduled_start_at = new_start
                    pipeline.scheduled_end_at = new_end
                    if not actor.is_elevated:
                        pipeline.reschedule_count = (pipeline.reschedule_count or 0) + 1
                    reschedule_count = pipeline.reschedule_count

                await self.db.commit()
            except ActivationError:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("Failed to reschedule meeting %s: %s", payload.meeting_id, e)
                raise PipelineUpdateFailed("Failed to save the rescheduled meeting")

        rescheduled_by = "activator" if actor.is_elevated else "sdr"
        logger.info("Meeting %s moved to %s by %s", meeting.id, new_start.isoformat(), rescheduled_by)

        if meeting.trial_pipeline_id:
            await record_event(
                self.db,
                meeting.trial_pipeline_id,
                "rescheduled",
                actor.id,
                {
                    "meeting_id": str(meeting.id),
                    "old_start_at": old_start.isoformat(),
                    "old_end_at": old_end.isoformat(),
                    "new_start_at": new_start.isoformat(),
                    "new_end_at": new_end.isoformat(),
                    "reason": payload.reason or None,
                    "rescheduled_by": rescheduled_by,
                },
                reload=(meeting,),
            )

        return RescheduleResult(meeting=meeting, rescheduled_by=rescheduled_by, reschedule_count=reschedule_count)
