"""
Activator availability routes: GET /slots
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from activation_api.contracts.availability import SlotListResponse, SlotResponse
from activation_api.dependencies.activation import get_availability_service
from activation_api.dependencies.auth import get_current_member
from activation_api.models.members import Member
from activation_api.services.activation.availability import DEFAULT_TIMEZONE, AvailabilityService
from activation_api.services.activation.errors import ActivationError

from .errors import to_http_error

router = APIRouter()


@router.get("/slots", response_model=SlotListResponse)
async def list_slots(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    timezone: str = Query(DEFAULT_TIMEZONE),
    member: Member = Depends(get_current_member),
    service: AvailabilityService = Depends(get_availability_service),
):
    try:
        slots, activator_count = await service.list_slots(member, start_date, end_date, timezone)
    except ActivationError as e:
        raise to_http_error(e) from e

    return SlotListResponse(
        slots=[
            SlotResponse(
                start=s.start,
                end=s.end,
                activatorId=s.activator_id,
                activatorName=s.activator_name,
                meetingLink=s.meeting_link,
                viewerDate=s.viewer_date,
            )
            for s in slots
        ],
        activatorCount=activator_count,
        message=None if activator_count else "No activators accepting meetings",
    )
