"""
Activation meeting routes: POST /, GET /, POST /{id}/complete,
PATCH /{id}/status, POST /{id}/send-confirmation
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.activation_meeting import (
    ActivationMeetingCreate,
    ActivationMeetingResponse,
    ConfirmationResponse,
    MeetingCompleteRequest,
    MeetingCompleteResponse,
    MeetingCreatedResponse,
    MeetingListResponse,
    MeetingStatusResponse,
    MeetingStatusUpdate,
)
from activation_api.dependencies.activation import (
    get_booking_service,
    get_notifier,
    get_outcome_service,
)
from activation_api.dependencies.auth import get_current_member
from activation_api.dependencies.db import get_db
from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.members import Member
from activation_api.services.activation.errors import ActivationError
from activation_api.services.activation.meetings import MeetingBookingService
from activation_api.services.activation.notifier import ActivationNotifier
from activation_api.services.activation.outcomes import MeetingOutcomeService
from activation_api.services.crud import CRUDBase

from .errors import to_http_error

router = APIRouter()


def meeting_response(meeting: ActivationMeeting, activator_name: Optional[str] = None) -> ActivationMeetingResponse:
    response = ActivationMeetingResponse.model_validate(meeting)
    response.activator_name = activator_name
    return response


@router.post("", response_model=MeetingCreatedResponse, status_code=201)
async def create_meeting(
    payload: ActivationMeetingCreate,
    background_tasks: BackgroundTasks,
    member: Member = Depends(get_current_member),
    service: MeetingBookingService = Depends(get_booking_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    try:
        meeting = await service.create(member, payload)
    except ActivationError as e:
        raise to_http_error(e) from e

    if meeting.trial_pipeline_id:
        background_tasks.add_task(
            notifier.sync_pipeline, meeting.trial_pipeline_id, meeting.notes or meeting.goal
        )
    background_tasks.add_task(notifier.send_confirmation, meeting.id)

    return MeetingCreatedResponse(meeting=meeting_response(meeting))


@router.get("", response_model=MeetingListResponse)
async def list_meetings(
    activator_only: bool = Query(True, alias="activatorOnly"),
    status: Optional[str] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    member: Member = Depends(get_current_member),
    service: MeetingBookingService = Depends(get_booking_service),
):
    rows = await service.list_meetings(
        member,
        activator_only=activator_only,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return MeetingListResponse(meetings=[meeting_response(m, name) for m, name in rows])


@router.post("/{meeting_id}/complete", response_model=MeetingCompleteResponse)
async def complete_meeting(
    meeting_id: UUID,
    payload: MeetingCompleteRequest,
    background_tasks: BackgroundTasks,
    member: Member = Depends(get_current_member),
    service: MeetingOutcomeService = Depends(get_outcome_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    """
    Record the activator's call summary for a meeting.
    """
    try:
        result = await service.complete(meeting_id, member, payload)
    except ActivationError as e:
        raise to_http_error(e) from e

    if result.meeting.trial_pipeline_id:
        background_tasks.add_task(
            notifier.sync_pipeline, result.meeting.trial_pipeline_id, payload.outcome_notes
        )
    if result.new_meeting is not None:
        background_tasks.add_task(notifier.send_confirmation, result.new_meeting.id, True)

    return MeetingCompleteResponse(
        outcome=result.outcome,
        meeting_id=result.meeting.id,
        pipeline_status=result.pipeline_status,
        new_meeting_id=result.new_meeting.id if result.new_meeting is not None else None,
    )


@router.patch("/{meeting_id}/status", response_model=MeetingStatusResponse)
async def update_meeting_status(
    meeting_id: UUID,
    payload: MeetingStatusUpdate,
    background_tasks: BackgroundTasks,
    member: Member = Depends(get_current_member),
    service: MeetingOutcomeService = Depends(get_outcome_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    try:
        result = await service.update_status(meeting_id, member, payload)
    except ActivationError as e:
        raise to_http_error(e) from e

    if result.meeting.trial_pipeline_id:
        background_tasks.add_task(notifier.sync_pipeline, result.meeting.trial_pipeline_id, payload.notes)

    return MeetingStatusResponse(
        meeting_id=result.meeting.id,
        status=result.meeting.status,
        pipeline_status=result.pipeline_status,
    )


@router.post("/{meeting_id}/send-confirmation", response_model=ConfirmationResponse)
async def send_confirmation(
    meeting_id: UUID,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    """Resend the booking confirmation emails now and report what went out."""
    meeting = await CRUDBase(ActivationMeeting, db).get_in_org(meeting_id, member.organization_id)
    if not meeting:
        raise HTTPException(status_code=404, detail="Meeting not found")

    sent = await notifier.deliver_confirmation(db, meeting)
    return ConfirmationResponse(**sent)
