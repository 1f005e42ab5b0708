"""
Scheduler job tests.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import select

from activation_api.core.brevo import BrevoMailer
from activation_api.core.control_tower import ControlTowerClient
from activation_api.models import ActivationEvent, ActivationMeeting, Lead, TrialPipeline
from activation_api.services.activation.cron import auto_kill_stale, send_meeting_reminders
from activation_api.services.activation.notifier import ActivationNotifier

CRON_AUTH = {"Authorization": "Bearer test-cron-secret"}


class TestMeetingReminders:

    @pytest.mark.asyncio
    async def test_sends_once_for_tomorrows_meetings(self, async_client, make_meeting, fetch, brevo_transport):
        now = datetime.now(timezone.utc)
        tomorrow = await make_meeting(now + timedelta(hours=24))
        await make_meeting(now + timedelta(days=3))
        await make_meeting(now + timedelta(hours=24, minutes=30), status="canceled")

        response = await async_client.get("/cron/send-meeting-reminders", headers=CRON_AUTH)
        assert response.status_code == 200
        assert response.json() == {"success": True, "sent": 1}

        payload = json.loads(brevo_transport.requests[0].content)
        assert payload["to"] == [{"email": "joe@junkcars.example"}]
        assert (await fetch(ActivationMeeting, tomorrow.id)).reminder_24h_sent_at is not None

        again = await async_client.get("/cron/send-meeting-reminders", headers=CRON_AUTH)
        assert again.json()["sent"] == 0
        assert len(brevo_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_meeting_without_email_is_skipped(self, db_session, notifier, make_meeting, brevo_transport):
        now = datetime.now(timezone.utc)
        await make_meeting(now + timedelta(hours=24), email=None)
        assert await send_meeting_reminders(db_session, notifier, now) == 0
        assert brevo_transport.requests == []

    @pytest.mark.asyncio
    async def test_garbled_email_reply_does_not_stop_the_run(self, db_session, session_factory, make_meeting,
                                                            control_tower_transport):
        replies = []

        def handler(request):
            replies.append(request)
            return httpx.Response(200, text="<html>maintenance</html>")

        notifier = ActivationNotifier(
            session_factory,
            ControlTowerClient("https://ct.test", "key", transport=control_tower_transport.transport()),
            BrevoMailer("https://brevo.test", "key", "a@example.com", "A", transport=httpx.MockTransport(handler)),
        )
        now = datetime.now(timezone.utc)
        first = await make_meeting(now + timedelta(hours=24))
        await make_meeting(now + timedelta(hours=24, minutes=30))

        assert await send_meeting_reminders(db_session, notifier, now) == 0
        assert len(replies) == 2
        assert first.reminder_24h_sent_at is None


class TestAutoKillStale:

    @pytest.fixture
    def make_pipeline(self, db_session, organization):
        async def _make(**fields):
            lead = Lead(organization_id=organization.id, name="Lead")
            db_session.add(lead)
            await db_session.flush()
            pipeline = TrialPipeline(organization_id=organization.id, crm_lead_id=lead.id, **fields)
            db_session.add(pipeline)
            await db_session.commit()
            return pipeline

        return _make

    @pytest.mark.asyncio
    async def test_kills_each_category(self, async_client, make_pipeline, fetch, db_session):
        now = datetime.now(timezone.utc)
        stalled = await make_pipeline(activation_status="blocked", next_followup_at=now - timedelta(days=20))
        fresh_block = await make_pipeline(activation_status="blocked", next_followup_at=now - timedelta(days=3))
        no_shows = await make_pipeline(activation_status="no_show", no_show_count=2)
        reschedules = await make_pipeline(activation_status="queued", reschedule_count=3)
        activated = await make_pipeline(activation_status="activated", reschedule_count=5)

        response = await async_client.get("/cron/auto-kill-stale", headers=CRON_AUTH)
        assert response.status_code == 200
        data = response.json()
        assert data["killed"] == {
            "total": 3,
            "stalledInstalls": 1,
            "repeatedNoShows": 1,
            "excessiveReschedules": 1,
        }
        assert data["errors"] is None

        assert (await fetch(TrialPipeline, stalled.id)).activation_kill_reason == "stalled_install"
        assert (await fetch(TrialPipeline, no_shows.id)).activation_kill_reason == "repeated_no_show"
        assert (await fetch(TrialPipeline, reschedules.id)).activation_kill_reason == "excessive_reschedules"
        assert (await fetch(TrialPipeline, fresh_block.id)).activation_status == "blocked"
        assert (await fetch(TrialPipeline, activated.id)).activation_status == "activated"

        events = (await db_session.execute(
            select(ActivationEvent).where(ActivationEvent.event_type == "auto_killed")
        )).scalars().all()
        assert len(events) == 3
        assert all(e.actor_user_id is None for e in events)
        assert {e.event_metadata["triggered_by"] for e in events} == {"cron"}

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, db_session, make_pipeline):
        await make_pipeline(activation_status="no_show", no_show_count=2)
        first = await auto_kill_stale(db_session)
        second = await auto_kill_stale(db_session)
        assert first.total == 1
        assert second.total == 0
        assert second.pipeline_ids == []
