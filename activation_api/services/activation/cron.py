"""
Periodic jobs triggered by the external scheduler.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.models.activation_meetings import ActivationMeeting
from activation_api.models.enums import ActivationStatus, KillReason, MeetingStatus
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.utils.dates import utcnow

from .events import record_event
from .notifier import ActivationNotifier
from .outcomes import NO_SHOW_KILL_THRESHOLD, RESCHEDULE_KILL_THRESHOLD
from .pipeline import NON_TERMINAL_VALUES, mark_killed

logger = logging.getLogger(__name__)

REMINDER_WINDOW = (timedelta(hours=23), timedelta(hours=25))
STALLED_AFTER = timedelta(days=14)


@dataclass
class AutoKillReport:
    stalled_installs: int = 0
    repeated_no_shows: int = 0
    excessive_reschedules: int = 0
    errors: List[str] = field(default_factory=list)
    pipeline_ids: List[UUID] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.stalled_installs + self.repeated_no_shows + self.excessive_reschedules


async def send_meeting_reminders(
    db: AsyncSession,
    notifier: ActivationNotifier,
    now: Optional[datetime] = None,
) -> int:
    """Email customers whose meeting starts in 23 to 25 hours; returns the number sent."""
    now = now or utcnow()
    result = await db.execute(
        select(ActivationMeeting).where(
            ActivationMeeting.status == MeetingStatus.scheduled.value,
            ActivationMeeting.reminder_24h_sent_at.is_(None),
            ActivationMeeting.scheduled_start_at >= now + REMINDER_WINDOW[0],
            ActivationMeeting.scheduled_start_at <= now + REMINDER_WINDOW[1],
        )
    )
    sent = 0
    for meeting in result.scalars().all():
        if await notifier.deliver_reminder(db, meeting):
            meeting.reminder_24h_sent_at = now
            await db.commit()
            sent += 1
    logger.info("Sent %d meeting reminder(s)", sent)
    return sent


async def _kill_matching(db: AsyncSession, stmt, reason: KillReason, now: datetime, report: AutoKillReport) -> int:
    try:
        pipelines = list((await db.execute(stmt)).scalars().all())
        for pipeline in pipelines:
            mark_killed(pipeline, reason.value, now=now)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Auto-kill for %s failed: %s", reason.value, e)
        report.errors.append(f"{reason.value}: {e}")
        return 0

    ids = [pipeline.id for pipeline in pipelines]
    for pipeline_id in ids:
        report.pipeline_ids.append(pipeline_id)
        await record_event(
            db, pipeline_id, "auto_killed", None, {"reason": reason.value, "triggered_by": "cron"}
        )
    return len(ids)


async def auto_kill_stale(db: AsyncSession, now: Optional[datetime] = None) -> AutoKillReport:
    """
    Safety net for trials that should already be dead: installs blocked for
    more than two weeks past their follow-up, and counters over the limits.
    """
    now = now or utcnow()
    report = AutoKillReport()

    report.stalled_installs = await _kill_matching(
        db,
        select(TrialPipeline).where(
            TrialPipeline.activation_status == ActivationStatus.blocked.value,
            TrialPipeline.next_followup_at <= now - STALLED_AFTER,
            TrialPipeline.marked_lost_at.is_(None),
        ),
        KillReason.stalled_install, now, report,
    )
    report.repeated_no_shows = await _kill_matching(
        db,
        select(TrialPipeline).where(
            TrialPipeline.no_show_count >= NO_SHOW_KILL_THRESHOLD,
            TrialPipeline.activation_status.in_(NON_TERMINAL_VALUES),
        ),
        KillReason.repeated_no_show, now, report,
    )
    report.excessive_reschedules = await _kill_matching(
        db,
        select(TrialPipeline).where(
            TrialPipeline.reschedule_count >= RESCHEDULE_KILL_THRESHOLD,
            TrialPipeline.activation_status.in_(NON_TERMINAL_VALUES),
        ),
        KillReason.excessive_reschedules, now, report,
    )

    logger.info(
        "Auto-kill killed %d pipeline(s): stalled=%d no_show=%d reschedules=%d",
        report.total, report.stalled_installs, report.repeated_no_shows, report.excessive_reschedules,
    )
    return report
