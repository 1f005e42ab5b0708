"""
Admin routes: POST /kill-trials-by-contact
"""

from fastapi import APIRouter, BackgroundTasks, Depends

from activation_api.contracts.activation import (
    KillByContactRequest,
    KillByContactResponse,
    KilledTrial,
)
from activation_api.dependencies.activation import get_kill_service, get_notifier
from activation_api.dependencies.auth import require_admin
from activation_api.models.members import Member
from activation_api.services.activation.errors import ActivationError
from activation_api.services.activation.kills import KillService
from activation_api.services.activation.notifier import ActivationNotifier

from .errors import to_http_error

router = APIRouter()


@router.post("/kill-trials-by-contact", response_model=KillByContactResponse)
async def kill_trials_by_contact(
    payload: KillByContactRequest,
    background_tasks: BackgroundTasks,
    admin: Member = Depends(require_admin),
    service: KillService = Depends(get_kill_service),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    """Kill every open trial whose lead matches a phone number or email."""
    try:
        report = await service.kill_by_contact(admin, phone=payload.phone, email=payload.email)
    except ActivationError as e:
        raise to_http_error(e) from e

    for pipeline_id in report.pipeline_ids:
        background_tasks.add_task(notifier.sync_pipeline, pipeline_id)

    if not report.killed and not report.errors:
        message = "No open trials found matching the provided phone or email"
    else:
        message = f"Killed {len(report.killed)} trial(s)"
    return KillByContactResponse(
        message=message,
        killed=[KilledTrial(**k) for k in report.killed],
        errors=report.errors or None,
    )
