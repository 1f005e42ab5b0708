"""
Server-to-server signals from Control Tower: POST /first-lead
"""

from fastapi import APIRouter, Depends

from activation_api.contracts.activation import FirstLeadResponse, FirstLeadSignal
from activation_api.dependencies.activation import get_kill_service
from activation_api.dependencies.auth import require_service_api_key
from activation_api.services.activation.errors import ActivationError
from activation_api.services.activation.kills import KillService

from .errors import to_http_error

router = APIRouter(dependencies=[Depends(require_service_api_key)])


@router.post("/first-lead", response_model=FirstLeadResponse)
async def first_lead_received(
    payload: FirstLeadSignal,
    service: KillService = Depends(get_kill_service),
):
    """The account's first real lead arrived; its trial is activated."""
    try:
        pipeline = await service.record_first_lead(payload.user_id, payload.first_lead_at)
    except ActivationError as e:
        raise to_http_error(e) from e

    return FirstLeadResponse(
        trial_pipeline_id=pipeline.id,
        activation_status=pipeline.activation_status,
        activated_at=pipeline.activated_at,
    )
