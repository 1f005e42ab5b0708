"""
This module contains the contracts for the application.
"""

from .base import BaseContract, CamelRequest, TimestampedContract
from .activation_meeting import (
    ActivationMeetingCreate,
    ActivationMeetingResponse,
    ConfirmationResponse,
    MeetingCompleteRequest,
    MeetingCompleteResponse,
    MeetingCreatedResponse,
    MeetingListResponse,
    MeetingStatusResponse,
    MeetingStatusUpdate,
    RescheduleRequest,
    RescheduleResponse,
)
from .activation import (
    ActivationEventList,
    ActivationEventResponse,
    EventActor,
    FirstLeadResponse,
    FirstLeadSignal,
    KillByContactRequest,
    KillByContactResponse,
    KilledTrial,
    KillLeadRequest,
    KillLeadResponse,
)
from .availability import SlotListResponse, SlotResponse
from .cron import AutoKillRunResponse, KilledCounts, ReminderRunResponse
from .member import MeResponse, MemberResponse, OrganizationResponse
