"""
Scheduler routes, authenticated with the cron secret:
GET /send-meeting-reminders, GET /auto-kill-stale
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.contracts.cron import AutoKillRunResponse, KilledCounts, ReminderRunResponse
from activation_api.dependencies.activation import get_notifier
from activation_api.dependencies.auth import require_cron_secret
from activation_api.dependencies.db import get_db
from activation_api.services.activation import cron
from activation_api.services.activation.notifier import ActivationNotifier
from activation_api.services.utils.dates import utcnow

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.get("/send-meeting-reminders", response_model=ReminderRunResponse)
async def send_meeting_reminders(
    db: AsyncSession = Depends(get_db),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    sent = await cron.send_meeting_reminders(db, notifier)
    return ReminderRunResponse(sent=sent)


@router.get("/auto-kill-stale", response_model=AutoKillRunResponse)
async def auto_kill_stale(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: ActivationNotifier = Depends(get_notifier),
):
    now = utcnow()
    report = await cron.auto_kill_stale(db, now)
    for pipeline_id in report.pipeline_ids:
        background_tasks.add_task(notifier.sync_pipeline, pipeline_id)

    return AutoKillRunResponse(
        timestamp=now,
        killed=KilledCounts(
            total=report.total,
            stalledInstalls=report.stalled_installs,
            repeatedNoShows=report.repeated_no_shows,
            excessiveReschedules=report.excessive_reschedules,
        ),
        errors=report.errors or None,
    )
