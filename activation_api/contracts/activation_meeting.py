"""
Contracts for activation meetings.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field

from activation_api.models.enums import CanceledBy, MeetingOutcome, ProofMethod

from .base import BaseContract, CamelRequest, TimestampedContract


class ActivationMeetingCreate(CamelRequest):
    """
    Booking request. Required fields are checked by the booking service so
    that a missing one yields ``Missing required field: <name>``.
    """
    scheduled_start_at: Optional[datetime] = None
    scheduled_timezone: Optional[str] = None
    activator_user_id: Optional[UUID] = None
    attendee_name: Optional[str] = None
    attendee_role: Optional[str] = None
    phone: Optional[str] = None
    website_platform: Optional[str] = None
    goal: Optional[str] = None

    trial_pipeline_id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    email: Optional[str] = None
    objections: Optional[str] = None
    notes: Optional[str] = None
    access_method: Optional[str] = None
    web_person_email: Optional[str] = None
    scheduled_via: Optional[str] = None
    sdr_confirmed_understands_install: bool = False
    sdr_confirmed_agreed_install: bool = False
    sdr_confirmed_will_attend: bool = False


class ActivationMeetingResponse(TimestampedContract):
    id: UUID
    trial_pipeline_id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    organization_id: UUID
    scheduled_start_at: datetime
    scheduled_end_at: datetime
    scheduled_timezone: str
    scheduled_via: Optional[str] = None
    activator_user_id: UUID
    scheduled_by_sdr_user_id: UUID
    status: str
    attendee_name: str
    attendee_role: str
    phone: str
    email: Optional[str] = None
    website_platform: str
    website_url: Optional[str] = None
    goal: str
    objections: Optional[str] = None
    notes: Optional[str] = None
    access_method: Optional[str] = None
    web_person_email: Optional[str] = None
    sdr_confirmed_understands_install: bool = False
    sdr_confirmed_agreed_install: bool = False
    sdr_confirmed_will_attend: bool = False
    confirmation_sent_at: Optional[datetime] = None
    reminder_24h_sent_at: Optional[datetime] = None
    attempt_number: int = 1
    parent_meeting_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    completed_by_user_id: Optional[UUID] = None
    outcome_notes: Optional[str] = None
    # Joined fields
    activator_name: Optional[str] = None


class MeetingCreatedResponse(BaseContract):
    success: bool = True
    meeting: ActivationMeetingResponse


class MeetingListResponse(BaseContract):
    success: bool = True
    meetings: List[ActivationMeetingResponse]


class MeetingCompleteRequest(BaseContract):
    outcome: Optional[MeetingOutcome] = None

    # installed_proven
    install_url: Optional[str] = None
    proof_method: Optional[ProofMethod] = None
    lead_delivery_methods: Optional[List[str]] = None
    primary_recipient: Optional[str] = None
    client_confirmed_receipt: Optional[bool] = None

    # blocked / partial
    block_reason: Optional[str] = None
    block_owner: Optional[str] = None
    next_step: Optional[str] = None
    followup_date: Optional[datetime] = None
    outcome_notes: Optional[str] = None

    # rescheduled
    new_datetime: Optional[datetime] = None
    reschedule_reason: Optional[str] = None
    web_person_invited: Optional[bool] = None

    # no_show
    contact_attempted: Optional[List[str]] = None

    # canceled
    canceled_by: Optional[CanceledBy] = None
    cancel_reason: Optional[str] = None

    # killed
    kill_reason: Optional[str] = None


class MeetingCompleteResponse(BaseContract):
    success: bool = True
    outcome: MeetingOutcome
    meeting_id: UUID
    pipeline_status: Optional[str] = None
    new_meeting_id: Optional[UUID] = None


class MeetingStatusUpdate(BaseContract):
    status: Optional[Literal["completed", "no_show", "canceled"]] = None
    notes: Optional[str] = None


class MeetingStatusResponse(BaseContract):
    success: bool = True
    meeting_id: UUID
    status: str
    pipeline_status: Optional[str] = None


class ConfirmationResponse(BaseContract):
    success: bool = True
    customer_email_sent: bool = False
    activator_email_sent: bool = False


class RescheduleRequest(CamelRequest):
    meeting_id: Optional[UUID] = None
    new_slot_start_at: Optional[datetime] = None
    new_slot_end_at: Optional[datetime] = None
    reason: Optional[str] = None


class RescheduleResponse(BaseContract):
    success: bool = True
    meeting: ActivationMeetingResponse
    reschedule_count: Optional[int] = None
    rescheduled_by: str = Field(description="'sdr' or 'activator'")
