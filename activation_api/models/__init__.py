from .base import Base

# Enums
from .enums import (
    ActivationStatus,
    AttendeeRole,
    CanceledBy,
    FollowupOwnerRole,
    KillReason,
    MeetingOutcome,
    MeetingStatus,
    OrganizationMemberType,
    PipelineEvent,
    ProofMethod,
    WebsitePlatform,
)

# Tier 1: no FKs
from .organizations import Organization

# Tier 2
from .members import Member
from .leads import Lead

# Tier 3
from .trial_pipeline import TrialPipeline
from .activator_schedules import ActivatorSchedule

# Tier 4
from .activation_meetings import ActivationMeeting
from .activation_events import ActivationEvent
