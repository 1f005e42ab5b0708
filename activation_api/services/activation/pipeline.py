"""
Helpers that mutate TrialPipeline rows.

They only touch the in-memory object; callers own the transaction.
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import ActivationStatus, FollowupOwnerRole, PipelineEvent
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.utils.dates import ensure_utc, utcnow

from .state_machine import TERMINAL_STATES, next_state

NON_TERMINAL_VALUES = [s.value for s in ActivationStatus if s not in TERMINAL_STATES]


async def get_active_pipeline_for_lead(
    db: AsyncSession,
    lead_id: UUID,
    organization_id: Optional[UUID] = None,
) -> Optional[TrialPipeline]:
    """The non-terminal pipeline of a lead, if any."""
    stmt = select(TrialPipeline).where(
        TrialPipeline.crm_lead_id == lead_id,
        TrialPipeline.activation_status.in_(NON_TERMINAL_VALUES),
    )
    if organization_id:
        stmt = stmt.where(TrialPipeline.organization_id == organization_id)
    result = await db.execute(stmt.order_by(TrialPipeline.created_at.desc()))
    return result.scalars().first()


def apply_transition(
    pipeline: TrialPipeline,
    event: Union[str, PipelineEvent],
    now: Optional[datetime] = None,
) -> ActivationStatus:
    """
    Move the pipeline through the state machine.

    Raises InvalidTransition without touching the row when the event is
    not allowed from the current state.
    """
    new_status = next_state(pipeline.activation_status, event)
    pipeline.activation_status = new_status.value
    if new_status == ActivationStatus.activated and pipeline.activated_at is None:
        pipeline.activated_at = now or utcnow()
    return new_status


def assign_followup(
    pipeline: TrialPipeline,
    owner: Optional[FollowupOwnerRole],
    due_at: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> None:
    """
    Hand the next follow-up to an owner, or clear it when ``owner`` is None.

    Handing off to a different owner starts that owner with a fresh
    reschedule allowance.
    """
    new_role = owner.value if owner else None
    if new_role is not None and new_role != pipeline.followup_owner_role:
        pipeline.reschedule_count = 0
    pipeline.followup_owner_role = new_role
    pipeline.next_followup_at = due_at if owner else None
    pipeline.followup_reason = reason if owner else None


def mark_killed(
    pipeline: TrialPipeline,
    kill_reason: str,
    lost_reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> None:
    apply_transition(pipeline, PipelineEvent.kill, now)
    pipeline.marked_lost_at = now or utcnow()
    pipeline.activation_kill_reason = kill_reason
    pipeline.lost_reason = lost_reason
    pipeline.next_action = None
    assign_followup(pipeline, None)


def record_schedule(
    pipeline: TrialPipeline,
    meeting: ActivationMeeting,
    scheduled_by_user_id: UUID,
    now: Optional[datetime] = None,
) -> None:
    """
    Move the pipeline to ``scheduled`` for a newly booked meeting and copy
    the meeting's slot onto it.
    """
    now = now or utcnow()
    apply_transition(pipeline, PipelineEvent.schedule, now)
    pipeline.attempts_count = (pipeline.attempts_count or 0) + 1
    pipeline.scheduled_start_at = meeting.scheduled_start_at
    pipeline.scheduled_end_at = meeting.scheduled_end_at
    pipeline.scheduled_timezone = meeting.scheduled_timezone
    pipeline.scheduled_with_name = meeting.attendee_name
    pipeline.scheduled_with_role = meeting.attendee_role
    pipeline.assigned_activator_id = meeting.activator_user_id
    pipeline.scheduled_by_user_id = scheduled_by_user_id
    pipeline.scheduled_at = now
    pipeline.last_contact_at = now
    pipeline.next_action = (
        f"Onboarding scheduled for {ensure_utc(meeting.scheduled_start_at).strftime('%Y-%m-%d')}"
    )
