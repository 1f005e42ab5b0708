"""
Activation service dependency injection.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.config import get_settings
from activation_api.core.brevo import get_mailer
from activation_api.core.control_tower import get_control_tower_client
from activation_api.db import session as db_session
from activation_api.dependencies.db import get_db
from activation_api.dependencies.redis_client import get_redis_client
from activation_api.services.activation.availability import AvailabilityService
from activation_api.services.activation.booking_lock import BookingLock
from activation_api.services.activation.kills import KillService
from activation_api.services.activation.meetings import MeetingBookingService
from activation_api.services.activation.notifier import ActivationNotifier
from activation_api.services.activation.outcomes import MeetingOutcomeService
from activation_api.services.activation.reschedule import RescheduleService


def get_booking_lock(redis=Depends(get_redis_client)) -> BookingLock:
    """Per-activator lock; a no-op when Redis is not configured."""
    return BookingLock(redis, timeout=get_settings().booking_lock_timeout_seconds)


def get_notifier() -> ActivationNotifier:
    """
    Notifier for background work. It opens its own sessions because
    background tasks run after the request session is closed.
    """
    if db_session.async_session is None:
        raise HTTPException(status_code=500, detail="Database is not configured")
    return ActivationNotifier(
        session_factory=db_session.async_session,
        control_tower=get_control_tower_client(),
        mailer=get_mailer(),
    )


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    booking_lock: BookingLock = Depends(get_booking_lock),
) -> MeetingBookingService:
    return MeetingBookingService(db, booking_lock)


def get_reschedule_service(
    db: AsyncSession = Depends(get_db),
    booking_lock: BookingLock = Depends(get_booking_lock),
) -> RescheduleService:
    return RescheduleService(db, booking_lock)


def get_outcome_service(
    db: AsyncSession = Depends(get_db),
    booking_lock: BookingLock = Depends(get_booking_lock),
) -> MeetingOutcomeService:
    return MeetingOutcomeService(db, booking_lock)


def get_kill_service(db: AsyncSession = Depends(get_db)) -> KillService:
    return KillService(db)


def get_availability_service(db: AsyncSession = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)
