"""
Enum definitions for the activation tables.
Uses (str, Enum) pattern so values serialize correctly in Pydantic.
Columns store the plain text value.
"""

from enum import Enum


class OrganizationMemberType(str, Enum):
    admin = "admin"
    member = "member"


class MeetingStatus(str, Enum):
    scheduled = "scheduled"
    rescheduled = "rescheduled"
    completed = "completed"
    no_show = "no_show"
    canceled = "canceled"


class ActivationStatus(str, Enum):
    queued = "queued"
    scheduled = "scheduled"
    completed = "completed"
    no_show = "no_show"
    blocked = "blocked"
    activated = "activated"
    killed = "killed"


class PipelineEvent(str, Enum):
    schedule = "schedule"
    reschedule = "reschedule"
    attend = "attend"
    install_proven = "install_proven"
    block = "block"
    no_show = "no_show"
    cancel = "cancel"
    requeue = "requeue"
    first_lead_received = "first_lead_received"
    kill = "kill"


class FollowupOwnerRole(str, Enum):
    sdr = "sdr"
    activator = "activator"


class AttendeeRole(str, Enum):
    owner = "owner"
    web_guy = "web_guy"
    office_manager = "office_manager"
    other = "other"


class WebsitePlatform(str, Enum):
    wordpress = "wordpress"
    wix = "wix"
    squarespace = "squarespace"
    shopify = "shopify"
    none = "none"
    unknown = "unknown"
    other = "other"


class MeetingOutcome(str, Enum):
    installed_proven = "installed_proven"
    blocked = "blocked"
    partial = "partial"
    rescheduled = "rescheduled"
    no_show = "no_show"
    canceled = "canceled"
    killed = "killed"


class ProofMethod(str, Enum):
    credits_decremented = "credits_decremented"
    test_lead_confirmed = "test_lead_confirmed"
    both = "both"


class CanceledBy(str, Enum):
    client = "client"
    us = "us"


class KillReason(str, Enum):
    no_website = "no_website"
    not_buying_junk_cars = "not_buying_junk_cars"
    pricing_objection = "pricing_objection"
    not_decision_maker = "not_decision_maker"
    competitor = "competitor"
    ghosted = "ghosted"
    repeated_no_show = "repeated_no_show"
    stalled_install = "stalled_install"
    excessive_reschedules = "excessive_reschedules"
    no_access = "no_access"
    no_response = "no_response"
    no_technical_owner = "no_technical_owner"
    no_urgency = "no_urgency"
    other = "other"
