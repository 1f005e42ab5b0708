"""
Reschedule policy tests.
"""

import json
from datetime import timedelta
from uuid import uuid4

import pytest

from activation_api.models import ActivationMeeting, Member, TrialPipeline
from activation_api.services.activation.errors import PermissionDenied, PolicyViolation
from activation_api.services.activation.reschedule import check_reschedule_allowed
from activation_api.services.utils.dates import ensure_utc


def slot(start, minutes=30):
    return {
        "newSlotStartAt": start.isoformat(),
        "newSlotEndAt": (start + timedelta(minutes=minutes)).isoformat(),
    }


@pytest.fixture
def book(async_client, act_as, sdr, booking_payload):
    """Book the default payload as the SDR and return the meeting id."""
    async def _book():
        act_as(sdr)
        response = await async_client.post("/activation-meetings", json=booking_payload)
        assert response.status_code == 201
        return response.json()["meeting"]["id"]

    return _book


class TestReschedulePolicy:
    """check_reschedule_allowed without a database."""

    def _members(self):
        booker = Member(id=uuid4(), name="SDR", email="a@example.com", is_activator=False, default_role="member")
        stranger = Member(id=uuid4(), name="SDR 2", email="b@example.com", is_activator=False, default_role="member")
        activator = Member(id=uuid4(), name="Act", email="c@example.com", is_activator=True, default_role="member")
        admin = Member(id=uuid4(), name="Admin", email="d@example.com", is_activator=False, default_role="admin")
        return booker, stranger, activator, admin

    def test_booker_gets_one_reschedule(self):
        booker, *_ = self._members()
        meeting = ActivationMeeting(scheduled_by_sdr_user_id=booker.id)
        check_reschedule_allowed(booker, meeting, TrialPipeline(reschedule_count=0))
        with pytest.raises(PolicyViolation):
            check_reschedule_allowed(booker, meeting, TrialPipeline(reschedule_count=1))

    def test_stranger_is_denied(self):
        booker, stranger, *_ = self._members()
        meeting = ActivationMeeting(scheduled_by_sdr_user_id=booker.id)
        with pytest.raises(PermissionDenied):
            check_reschedule_allowed(stranger, meeting, TrialPipeline(reschedule_count=0))

    def test_elevated_members_have_no_limit(self):
        booker, _, activator, admin = self._members()
        meeting = ActivationMeeting(scheduled_by_sdr_user_id=booker.id)
        for member in (activator, admin):
            check_reschedule_allowed(member, meeting, TrialPipeline(reschedule_count=5))

    def test_meeting_without_pipeline(self):
        booker, *_ = self._members()
        meeting = ActivationMeeting(scheduled_by_sdr_user_id=booker.id)
        check_reschedule_allowed(booker, meeting, None)


class TestRescheduleFlow:
    """POST /activations/reschedule"""

    @pytest.mark.asyncio
    async def test_booking_and_reschedule_scenario(self, async_client, act_as, sdr, other_sdr, activator,
                                                   pipeline, booking_payload, slot_start, book, fetch,
                                                   brevo_transport):
        meeting_id = await book()

        # Another SDR cannot take an overlapping slot with the same activator
        act_as(other_sdr)
        clash = dict(booking_payload, scheduledStartAt=(slot_start + timedelta(minutes=15)).isoformat())
        clash.pop("trialPipelineId")
        response = await async_client.post("/activation-meetings", json=clash)
        assert response.status_code == 409

        # The booking SDR moves it once
        act_as(sdr)
        afternoon = slot_start.replace(hour=14)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, "reason": "Owner busy", **slot(afternoon)},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["reschedule_count"] == 1
        assert data["rescheduled_by"] == "sdr"
        assert data["meeting"]["id"] == meeting_id

        meeting = await fetch(ActivationMeeting, meeting_id)
        assert ensure_utc(meeting.scheduled_start_at) == afternoon
        assert meeting.status == "scheduled"
        row = await fetch(TrialPipeline, pipeline.id)
        assert row.reschedule_count == 1
        assert row.activation_status == "scheduled"
        assert ensure_utc(row.scheduled_start_at) == afternoon

        # A second SDR reschedule is refused
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(afternoon + timedelta(hours=1))},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "SDRs can only reschedule once. Only the Activator can reschedule now."

        # Another SDR never could
        act_as(other_sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(afternoon + timedelta(hours=1))},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "You can only reschedule meetings you scheduled or are assigned to"

        # The activator still can, without using up the allowance
        act_as(activator)
        later = afternoon + timedelta(hours=1)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(later)},
        )
        assert response.status_code == 200
        assert response.json()["rescheduled_by"] == "activator"
        assert response.json()["reschedule_count"] == 1

        meeting = await fetch(ActivationMeeting, meeting_id)
        assert ensure_utc(meeting.scheduled_start_at) == later

        events = await async_client.get("/activations/events", params={"trialPipelineId": str(pipeline.id)})
        types = [e["event_type"] for e in events.json()["events"]]
        assert sorted(types) == ["rescheduled", "rescheduled", "scheduled"]

        rescheduled = [e for e in events.json()["events"] if e["event_type"] == "rescheduled"]
        by_sdr = next(e for e in rescheduled if e["metadata"]["rescheduled_by"] == "sdr")
        assert by_sdr["metadata"]["reason"] == "Owner busy"

        # One booking confirmation plus one per reschedule, to customer and activator
        subjects = [json.loads(r.content)["subject"] for r in brevo_transport.requests]
        assert len(subjects) == 6

    @pytest.mark.asyncio
    async def test_admin_reschedules_freely(self, async_client, act_as, admin, slot_start, book, pipeline, fetch):
        meeting_id = await book()
        act_as(admin)
        for hours in (1, 2):
            response = await async_client.post(
                "/activations/reschedule",
                json={"meetingId": meeting_id, **slot(slot_start + timedelta(hours=hours))},
            )
            assert response.status_code == 200
            assert response.json()["rescheduled_by"] == "activator"
        assert (await fetch(TrialPipeline, pipeline.id)).reschedule_count == 0

    @pytest.mark.asyncio
    async def test_conflicting_slot(self, async_client, act_as, sdr, make_meeting, slot_start, book, fetch):
        meeting_id = await book()
        blocker = slot_start + timedelta(hours=3)
        await make_meeting(blocker)

        act_as(sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(blocker + timedelta(minutes=10))},
        )
        assert response.status_code == 409
        meeting = await fetch(ActivationMeeting, meeting_id)
        assert ensure_utc(meeting.scheduled_start_at) == slot_start

    @pytest.mark.asyncio
    async def test_moving_within_own_slot(self, async_client, act_as, sdr, slot_start, book):
        meeting_id = await book()
        act_as(sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(slot_start + timedelta(minutes=15))},
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_end_before_start(self, async_client, act_as, sdr, slot_start, book):
        meeting_id = await book()
        act_as(sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={
                "meetingId": meeting_id,
                "newSlotStartAt": slot_start.isoformat(),
                "newSlotEndAt": slot_start.isoformat(),
            },
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_fields(self, async_client, act_as, sdr):
        act_as(sdr)
        response = await async_client.post("/activations/reschedule", json={"meetingId": str(uuid4())})
        assert response.status_code == 400
        assert response.json()["detail"] == "meetingId, newSlotStartAt, and newSlotEndAt are required"

    @pytest.mark.asyncio
    async def test_unknown_meeting(self, async_client, act_as, sdr, slot_start):
        act_as(sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": str(uuid4()), **slot(slot_start)},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_closed_meeting_cannot_move(self, async_client, act_as, sdr, make_meeting, slot_start):
        meeting = await make_meeting(slot_start, status="completed")
        act_as(sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": str(meeting.id), **slot(slot_start + timedelta(hours=1))},
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_stranger_is_denied_before_status_check(self, async_client, act_as, other_sdr, make_meeting,
                                                          slot_start):
        meeting = await make_meeting(slot_start, status="completed")
        act_as(other_sdr)
        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": str(meeting.id), **slot(slot_start + timedelta(hours=1))},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_event_log_failure_keeps_reschedule(self, async_client, act_as, sdr, slot_start, book,
                                                      pipeline, break_event_log, fetch):
        meeting_id = await book()
        await break_event_log()
        new_start = slot_start + timedelta(hours=4)

        response = await async_client.post(
            "/activations/reschedule",
            json={"meetingId": meeting_id, **slot(new_start), "reason": "Owner busy"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["reschedule_count"] == 1
        assert data["rescheduled_by"] == "sdr"
        assert data["meeting"]["id"] == meeting_id

        row = await fetch(ActivationMeeting, meeting_id)
        assert ensure_utc(row.scheduled_start_at) == new_start
        assert row.status == "scheduled"
        updated = await fetch(TrialPipeline, pipeline.id)
        assert updated.reschedule_count == 1
        assert ensure_utc(updated.scheduled_start_at) == new_start
