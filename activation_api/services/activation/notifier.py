"""
Downstream notifications for activation changes.

Two kinds of work happen after a booking, reschedule, completion or kill:
confirmation emails (Brevo) and workflow sync to Control Tower. Both are
best-effort. The ``send_*`` / ``sync_*`` entry points run as background
tasks, open their own session, and only ever log failures.
"""

import logging
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.core.brevo import BrevoMailer, EmailDeliveryError
from activation_api.core.control_tower import ControlTowerClient, map_kill_reason, map_status
from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.activator_schedules import ActivatorSchedule
from activation_api.models.enums import ActivationStatus
from activation_api.models.members import Member
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.utils.dates import ensure_utc, utcnow

from . import emails

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def build_workflow_payload(pipeline: TrialPipeline, notes: Optional[str] = None) -> Dict[str, Any]:
    """Translate the pipeline's current state into a Control Tower workflow update."""
    payload: Dict[str, Any] = {
        "user_id": pipeline.jcc_user_id,
        "activation_status": map_status(pipeline.activation_status),
        "assigned_activator_id": str(pipeline.assigned_activator_id) if pipeline.assigned_activator_id else None,
        "crm_next_action": pipeline.next_action,
        "last_contact_at": _iso(pipeline.last_contact_at),
    }

    if pipeline.activation_status == ActivationStatus.scheduled.value:
        payload.update({
            "scheduled_install_at": _iso(pipeline.scheduled_start_at),
            "scheduled_timezone": pipeline.scheduled_timezone,
            "scheduled_with_name": pipeline.scheduled_with_name,
            "scheduled_with_role": pipeline.scheduled_with_role,
            "scheduled_by_user_id": str(pipeline.scheduled_by_user_id) if pipeline.scheduled_by_user_id else None,
            "technical_owner_name": pipeline.scheduled_with_name,
            "notes": notes,
        })
    elif pipeline.activation_status == ActivationStatus.killed.value:
        payload.update({
            "killed_at": _iso(pipeline.marked_lost_at),
            "kill_reason": map_kill_reason(pipeline.activation_kill_reason),
            "kill_note": notes or pipeline.lost_reason,
        })
    return payload


class ActivationNotifier:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        control_tower: ControlTowerClient,
        mailer: BrevoMailer,
    ) -> None:
        self.session_factory = session_factory
        self.control_tower = control_tower
        self.mailer = mailer

    async def _meeting_link(self, db: AsyncSession, activator_user_id: UUID) -> Optional[str]:
        result = await db.execute(
            select(ActivatorSchedule.meeting_link)
            .where(
                ActivatorSchedule.user_id == activator_user_id,
                ActivatorSchedule.meeting_link.is_not(None),
            )
            .limit(1)
        )
        return result.scalars().first()

    async def _send_quietly(self, to: str, subject: str, html: str, tag: str) -> bool:
        try:
            await self.mailer.send([to], subject, html, tags=[tag])
        except EmailDeliveryError as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to, e)
            return False
        return True

    async def deliver_confirmation(
        self,
        db: AsyncSession,
        meeting: ActivationMeeting,
        rescheduled: bool = False,
    ) -> Dict[str, bool]:
        """
        Email the customer (when an address is on file) and the activator,
        then stamp ``confirmation_sent_at`` if anything went out.
        """
        meeting_link = await self._meeting_link(db, meeting.activator_user_id)
        activator = await db.get(Member, meeting.activator_user_id)
        sdr = await db.get(Member, meeting.scheduled_by_sdr_user_id)

        customer_sent = False
        if meeting.email:
            customer_sent = await self._send_quietly(
                meeting.email,
                emails.CUSTOMER_RESCHEDULED_SUBJECT if rescheduled else emails.CUSTOMER_SUBJECT,
                emails.customer_confirmation(meeting, meeting_link, rescheduled),
                "activation-confirmation",
            )

        activator_sent = False
        if activator and activator.email:
            activator_sent = await self._send_quietly(
                activator.email,
                emails.ACTIVATOR_RESCHEDULED_SUBJECT if rescheduled else emails.ACTIVATOR_SUBJECT,
                emails.activator_notification(meeting, meeting_link, sdr.name if sdr else None, rescheduled),
                "activation-activator-notice",
            )

        if customer_sent or activator_sent:
            meeting.confirmation_sent_at = utcnow()
            await db.commit()

        return {"customer_email_sent": customer_sent, "activator_email_sent": activator_sent}

    async def deliver_reminder(self, db: AsyncSession, meeting: ActivationMeeting) -> bool:
        if not meeting.email:
            return False
        meeting_link = await self._meeting_link(db, meeting.activator_user_id)
        return await self._send_quietly(
            meeting.email,
            emails.REMINDER_SUBJECT,
            emails.customer_reminder(meeting, meeting_link),
            "activation-reminder",
        )

    async def send_confirmation(self, meeting_id: UUID, rescheduled: bool = False) -> None:
        """Background entry point; never raises."""
        try:
            async with self.session_factory() as db:
                meeting = await db.get(ActivationMeeting, meeting_id)
                if not meeting:
                    logger.warning("Confirmation skipped, meeting %s not found", meeting_id)
                    return
                await self.deliver_confirmation(db, meeting, rescheduled=rescheduled)
        except Exception as e:
            logger.error("Failed to send confirmation for meeting %s: %s", meeting_id, e)

    async def sync_pipeline(self, trial_pipeline_id: UUID, notes: Optional[str] = None) -> None:
        """Background entry point; never raises."""
        try:
            async with self.session_factory() as db:
                pipeline = await db.get(TrialPipeline, trial_pipeline_id)
                if not pipeline or not pipeline.jcc_user_id:
                    return
                if not self.control_tower.configured:
                    logger.warning("Control Tower sync skipped for %s: API key not configured", pipeline.id)
                    return
                await self.control_tower.sync_workflow(build_workflow_payload(pipeline, notes))
        except Exception as e:
            logger.error("Failed to sync pipeline %s to Control Tower: %s", trial_pipeline_id, e)
