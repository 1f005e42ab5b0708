"""
Contracts for trial pipeline events, kills and Control Tower signals.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseContract


class EventActor(BaseContract):
    name: Optional[str] = None
    email: Optional[str] = None


class ActivationEventResponse(BaseContract):
    id: UUID
    trial_pipeline_id: UUID
    event_type: str
    actor_user_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    actor: Optional[EventActor] = None


class ActivationEventList(BaseContract):
    success: bool = True
    events: List[ActivationEventResponse]


class KillLeadRequest(BaseContract):
    reason: Optional[str] = None
    kill_reason: Optional[str] = None
    notes: Optional[str] = None


class KillLeadResponse(BaseContract):
    success: bool = True
    trial_pipeline_id: UUID
    activation_status: str


class KillByContactRequest(BaseContract):
    phone: Optional[str] = None
    email: Optional[str] = None


class KilledTrial(BaseContract):
    leadId: str
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    jccUserId: Optional[str] = None


class KillByContactResponse(BaseContract):
    success: bool = True
    message: str
    killed: List[KilledTrial]
    errors: Optional[List[Dict[str, Any]]] = None


class FirstLeadSignal(BaseContract):
    user_id: str
    first_lead_at: Optional[datetime] = None


class FirstLeadResponse(BaseContract):
    success: bool = True
    trial_pipeline_id: UUID
    activation_status: str
    activated_at: Optional[datetime] = None
