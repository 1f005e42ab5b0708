"""
Trial activation routes: POST /reschedule, GET /events, POST /{lead_id}/killed
"""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.activation import (
    ActivationEventList,
    ActivationEventResponse,
    EventActor,
    KillLeadRequest,
    KillLeadResponse,
)
from activation_api.contracts.activation_meeting import RescheduleRequest, RescheduleResponse
from activation_api.dependencies.activation import (
    get_kill_service,
    get_notifier,
    get_reschedule_service,
)
from activation_api.dependencies.auth import get_current_member
from activation_api.dependencies.db import get_db
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.activation.errors import ActivationError
from activation_api.services.activation.events import list_events
from activation_api.services.activation.kills import KillService
from activation_api.services.activation.notifier import ActivationNotifier
from activation_api.services.activation.reschedule import RescheduleService
from activation_api.services.crud import CRUDBase

from .activation_meetings import meeting_response
from .errors import to_http_error

router = APIRouter()


@router.post("/reschedule", response_model=RescheduleResponse)
async def reschedule_meeting(
    payload: RescheduleRequest,
    background_tasks: BackgroundTasks,
    member: Member = Depends(get_current_member),
    service: RescheduleService = Depends(get_reschedule_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    """
    Move a scheduled meeting to a new slot.

    SDRs may reschedule a meeting they booked once; activators and admins
    have no limit.
    """
    try:
        result = await service.reschedule(member, payload)
    except ActivationError as e:
        raise to_http_error(e) from e

    meeting = result.meeting
    background_tasks.add_task(notifier.send_confirmation, meeting.id, True)
    if meeting.trial_pipeline_id:
        background_tasks.add_task(notifier.sync_pipeline, meeting.trial_pipeline_id, payload.reason)

    return RescheduleResponse(
        meeting=meeting_response(meeting),
        reschedule_count=result.reschedule_count,
        rescheduled_by=result.rescheduled_by,
    )


@router.get("/events", response_model=ActivationEventList)
async def get_events(
    trial_pipeline_id: UUID = Query(..., alias="trialPipelineId"),
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    pipeline = await CRUDBase(TrialPipeline, db).get_in_org(trial_pipeline_id, member.organization_id)
    if not pipeline:
        raise HTTPException(status_code=404, detail="Trial pipeline not found")

    rows = await list_events(db, trial_pipeline_id)
    return ActivationEventList(
        events=[
            ActivationEventResponse(
                id=event.id,
                trial_pipeline_id=event.trial_pipeline_id,
                event_type=event.event_type,
                actor_user_id=event.actor_user_id,
                metadata=event.event_metadata or {},
                created_at=event.created_at,
                actor=EventActor(name=actor.name, email=actor.email) if actor else None,
            )
            for event, actor in rows
        ]
    )


@router.post("/{lead_id}/killed", response_model=KillLeadResponse)
async def kill_lead(
    lead_id: UUID,
    payload: KillLeadRequest,
    background_tasks: BackgroundTasks,
    member: Member = Depends(get_current_member),
    service: KillService = Depends(get_kill_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    try:
        pipeline = await service.kill_lead(
            lead_id, member, reason=payload.reason, kill_reason=payload.kill_reason, notes=payload.notes
        )
    except ActivationError as e:
        raise to_http_error(e) from e

    background_tasks.add_task(notifier.sync_pipeline, pipeline.id, payload.notes or payload.reason)
    return KillLeadResponse(trial_pipeline_id=pipeline.id, activation_status=pipeline.activation_status)
