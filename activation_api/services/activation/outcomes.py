"""
Meeting outcomes recorded by the activator after a call.

Every outcome closes the meeting (it can only be closed once) and moves the
linked pipeline through the state machine. Repeated no-shows and excessive
reschedules kill the trial automatically.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.activation_meeting import MeetingCompleteRequest, MeetingStatusUpdate
from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import (
    FollowupOwnerRole,
    KillReason,
    MeetingOutcome,
    MeetingStatus,
    PipelineEvent,
)
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.crud import CRUDBase
from activation_api.services.utils.dates import add_business_days, ensure_utc, utcnow

from .booking_lock import BookingLock
from .errors import ActivationError, AlreadyFinalized, NotFound, PipelineUpdateFailed, ValidationFailed
from .events import record_event
from .meetings import MEETING_DURATION, ensure_slot_free
from .pipeline import apply_transition, assign_followup, mark_killed, record_schedule
from .state_machine import is_terminal

logger = logging.getLogger(__name__)

NO_SHOW_KILL_THRESHOLD = 2
RESCHEDULE_KILL_THRESHOLD = 3
REBOOK_NEXT_ACTION = "Reschedule install"

O = MeetingOutcome


@dataclass
class OutcomeResult:
    meeting: ActivationMeeting
    outcome: str
    pipeline_status: Optional[str] = None
    new_meeting: Optional[ActivationMeeting] = None
    event_metadata: Dict[str, Any] = field(default_factory=dict)


def validate_outcome(body: MeetingCompleteRequest) -> None:
    """Raise ValidationFailed when the fields an outcome needs are missing."""
    outcome = body.outcome
    if outcome is None:
        raise ValidationFailed("Outcome is required")

    if outcome == O.installed_proven:
        if not body.install_url:
            raise ValidationFailed("Install URL is required")
        if not body.proof_method:
            raise ValidationFailed("Proof method is required")
        if not body.lead_delivery_methods:
            raise ValidationFailed("Lead delivery methods are required")
    elif outcome in (O.blocked, O.partial):
        if not body.block_reason:
            raise ValidationFailed("Block reason is required")
        if not body.block_owner:
            raise ValidationFailed("Block owner is required")
        if not body.next_step:
            raise ValidationFailed("Next step is required")
    elif outcome == O.rescheduled:
        if not body.new_datetime:
            raise ValidationFailed("New date/time is required")
        if not body.reschedule_reason:
            raise ValidationFailed("Reschedule reason is required")
    elif outcome == O.no_show:
        if not body.contact_attempted:
            raise ValidationFailed("At least one contact attempt method is required")
    elif outcome == O.canceled:
        if not body.canceled_by:
            raise ValidationFailed("Canceled by is required")
        if not body.cancel_reason:
            raise ValidationFailed("Cancel reason is required")
    elif outcome == O.killed:
        if not body.kill_reason:
            raise ValidationFailed("Kill reason is required")


class MeetingOutcomeService:
    def __init__(self, db: AsyncSession, booking_lock: BookingLock) -> None:
        self.db = db
        self.booking_lock = booking_lock

    async def _load(self, meeting_id: UUID, actor: Member):
        meeting = await CRUDBase(ActivationMeeting, self.db).get_in_org(
            meeting_id, actor.organization_id, for_update=True
        )
        if not meeting:
            raise NotFound("Meeting not found")
        if meeting.status != MeetingStatus.scheduled.value:
            raise AlreadyFinalized("Meeting already completed. Create a new meeting to continue.")

        pipeline = None
        if meeting.trial_pipeline_id:
            pipeline = await CRUDBase(TrialPipeline, self.db).get(meeting.trial_pipeline_id, for_update=True)
            if pipeline and is_terminal(pipeline.activation_status):
                raise AlreadyFinalized(
                    f"Cannot modify pipeline in terminal state: {pipeline.activation_status}"
                )
        return meeting, pipeline

    def _close(self, meeting: ActivationMeeting, status: MeetingStatus, actor: Member, now: datetime,
               notes: Optional[str] = None) -> None:
        meeting.status = status.value
        meeting.completed_at = now
        meeting.completed_by_user_id = actor.id
        if notes:
            meeting.outcome_notes = notes

    def _no_show(self, meeting, pipeline, actor, now, contact_attempted=None, notes=None) -> None:
        self._close(meeting, MeetingStatus.no_show, actor, now, notes)
        meeting.contact_attempted = contact_attempted
        if pipeline is None:
            return
        pipeline.no_show_count = (pipeline.no_show_count or 0) + 1
        pipeline.no_show_at = now
        if pipeline.no_show_count >= NO_SHOW_KILL_THRESHOLD:
            logger.info("Pipeline %s killed after %d no-shows", pipeline.id, pipeline.no_show_count)
            mark_killed(pipeline, KillReason.repeated_no_show.value, now=now)
            return
        apply_transition(pipeline, PipelineEvent.no_show, now)
        assign_followup(pipeline, FollowupOwnerRole.sdr, add_business_days(now, 1), "Customer did not show up")
        pipeline.next_action = REBOOK_NEXT_ACTION

    def _cancel(self, meeting, pipeline, actor, now, canceled_by=None, cancel_reason=None, notes=None) -> None:
        self._close(meeting, MeetingStatus.canceled, actor, now, notes)
        meeting.canceled_by = canceled_by
        meeting.cancel_reason = cancel_reason
        if pipeline is None:
            return
        apply_transition(pipeline, PipelineEvent.cancel, now)
        assign_followup(pipeline, FollowupOwnerRole.sdr, add_business_days(now, 1), cancel_reason or "Meeting canceled")
        pipeline.next_action = REBOOK_NEXT_ACTION

    async def _rebook(self, meeting: ActivationMeeting, pipeline: Optional[TrialPipeline],
                      new_start: datetime, now: datetime) -> ActivationMeeting:
        """Book the next attempt on the same activator's calendar."""
        new_start = ensure_utc(new_start)
        new_end = new_start + MEETING_DURATION
        await ensure_slot_free(
            self.db, meeting.activator_user_id, new_start, new_end, exclude_meeting_id=meeting.id
        )
        new_meeting = ActivationMeeting(
            organization_id=meeting.organization_id,
            trial_pipeline_id=meeting.trial_pipeline_id,
            lead_id=meeting.lead_id,
            scheduled_by_sdr_user_id=meeting.scheduled_by_sdr_user_id,
            activator_user_id=meeting.activator_user_id,
            scheduled_start_at=new_start,
            scheduled_end_at=new_end,
            scheduled_timezone=meeting.scheduled_timezone,
            scheduled_via=meeting.scheduled_via,
            status=MeetingStatus.scheduled.value,
            attendee_name=meeting.attendee_name,
            attendee_role=meeting.attendee_role,
            phone=meeting.phone,
            email=meeting.email,
            website_platform=meeting.website_platform,
            website_url=meeting.website_url,
            goal=meeting.goal,
            attempt_number=(meeting.attempt_number or 1) + 1,
            parent_meeting_id=meeting.id,
        )
        self.db.add(new_meeting)
        if pipeline is not None:
            record_schedule(pipeline, new_meeting, meeting.scheduled_by_sdr_user_id, now)
        return new_meeting

    async def _apply(self, body: MeetingCompleteRequest, meeting, pipeline, actor: Member,
                     now: datetime) -> Optional[ActivationMeeting]:
        outcome = body.outcome
        new_meeting = None

        if pipeline is not None:
            pipeline.last_meeting_outcome = outcome.value

        if outcome == O.installed_proven:
            self._close(meeting, MeetingStatus.completed, actor, now, body.outcome_notes)
            meeting.proof_method = body.proof_method.value
            meeting.lead_delivery_methods = body.lead_delivery_methods
            meeting.primary_recipient = body.primary_recipient
            meeting.client_confirmed_receipt = bool(body.client_confirmed_receipt)
            meeting.install_url = body.install_url
            if pipeline is not None:
                apply_transition(pipeline, PipelineEvent.install_proven, now)
                pipeline.calculator_installed_at = now
                pipeline.install_url = body.install_url
                pipeline.block_reason = None
                pipeline.block_owner = None
                pipeline.next_step = None
                assign_followup(pipeline, None)

        elif outcome in (O.blocked, O.partial):
            self._close(meeting, MeetingStatus.completed, actor, now, body.outcome_notes)
            meeting.block_reason = body.block_reason
            meeting.block_owner = body.block_owner
            meeting.next_step = body.next_step
            if pipeline is not None:
                apply_transition(pipeline, PipelineEvent.block, now)
                due = ensure_utc(body.followup_date) or add_business_days(now, 1 if outcome == O.blocked else 2)
                assign_followup(
                    pipeline,
                    FollowupOwnerRole.activator,
                    due,
                    body.block_reason or "Install blocked, follow up required",
                )
                pipeline.block_reason = body.block_reason
                pipeline.block_owner = body.block_owner
                pipeline.next_step = body.next_step

        elif outcome == O.rescheduled:
            self._close(meeting, MeetingStatus.rescheduled, actor, now, body.outcome_notes)
            meeting.reschedule_reason = body.reschedule_reason
            meeting.web_person_invited = bool(body.web_person_invited)
            if pipeline is not None:
                pipeline.reschedule_count = (pipeline.reschedule_count or 0) + 1
                if pipeline.reschedule_count >= RESCHEDULE_KILL_THRESHOLD:
                    logger.info("Pipeline %s killed after %d reschedules", pipeline.id, pipeline.reschedule_count)
                    mark_killed(pipeline, KillReason.excessive_reschedules.value, now=now)
                    return None
                apply_transition(pipeline, PipelineEvent.requeue, now)
                assign_followup(pipeline, None)
            new_meeting = await self._rebook(meeting, pipeline, body.new_datetime, now)

        elif outcome == O.no_show:
            self._no_show(meeting, pipeline, actor, now, body.contact_attempted, body.outcome_notes)

        elif outcome == O.canceled:
            self._cancel(
                meeting, pipeline, actor, now,
                body.canceled_by.value, body.cancel_reason, body.outcome_notes,
            )

        elif outcome == O.killed:
            self._close(meeting, MeetingStatus.completed, actor, now, body.outcome_notes)
            meeting.kill_reason = body.kill_reason
            if pipeline is not None:
                mark_killed(pipeline, body.kill_reason, body.outcome_notes, now=now)

        return new_meeting

    async def complete(self, meeting_id: UUID, actor: Member, body: MeetingCompleteRequest) -> OutcomeResult:
        """
        Record the outcome of a meeting.

        Raises:
            ValidationFailed: the outcome's required fields are missing.
            NotFound: no such meeting in the caller's organization.
            AlreadyFinalized: the meeting was already closed or the pipeline is terminal.
            SlotConflict: a rescheduled outcome collides with another meeting.
        """
        validate_outcome(body)
        now = utcnow()

        try:
            meeting, pipeline = await self._load(meeting_id, actor)
            async with self.booking_lock.hold(meeting.activator_user_id):
                new_meeting = await self._apply(body, meeting, pipeline, actor, now)
                await self.db.commit()
        except ActivationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to record outcome for meeting %s: %s", meeting_id, e)
            raise PipelineUpdateFailed("Failed to save meeting outcome")

        metadata = body.model_dump(mode="json", exclude_none=True)
        metadata["meeting_id"] = str(meeting.id)
        if new_meeting is not None:
            metadata["new_meeting_id"] = str(new_meeting.id)

        result = OutcomeResult(
            meeting=meeting,
            outcome=body.outcome.value,
            pipeline_status=pipeline.activation_status if pipeline is not None else None,
            new_meeting=new_meeting,
            event_metadata=metadata,
        )
        if meeting.trial_pipeline_id:
            reload = (meeting,) if new_meeting is None else (meeting, new_meeting)
            await record_event(
                self.db, meeting.trial_pipeline_id, body.outcome.value, actor.id, metadata,
                reload=reload,
            )
        return result

    async def update_status(self, meeting_id: UUID, actor: Member, body: MeetingStatusUpdate) -> OutcomeResult:
        """
        Short form of ``complete`` used by the calendar: attended, no-show
        or canceled without the outcome details.
        """
        if not body.status:
            raise ValidationFailed("Status is required")
        now = utcnow()

        try:
            meeting, pipeline = await self._load(meeting_id, actor)
            if body.notes:
                meeting.notes = body.notes

            if body.status == MeetingStatus.completed.value:
                self._close(meeting, MeetingStatus.completed, actor, now)
                if pipeline is not None:
                    apply_transition(pipeline, PipelineEvent.attend, now)
                    pipeline.last_meeting_outcome = "attended"
                event_type = "attended"
            elif body.status == MeetingStatus.no_show.value:
                self._no_show(meeting, pipeline, actor, now)
                event_type = "no_show"
            else:
                self._cancel(meeting, pipeline, actor, now)
                event_type = "canceled"

            await self.db.commit()
        except ActivationError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to update status of meeting %s: %s", meeting_id, e)
            raise PipelineUpdateFailed("Failed to update meeting")

        pipeline_status = pipeline.activation_status if pipeline is not None else None
        if meeting.trial_pipeline_id:
            await record_event(
                self.db, meeting.trial_pipeline_id, event_type, actor.id,
                {"meeting_id": str(meeting.id), "notes": body.notes},
                reload=(meeting,),
            )
        return OutcomeResult(meeting=meeting, outcome=event_type, pipeline_status=pipeline_status)
