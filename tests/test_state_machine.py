"""
Trial pipeline state machine tests.
"""

from datetime import datetime, timezone

import pytest

from activation_api.models.enums import ActivationStatus, FollowupOwnerRole, PipelineEvent
from activation_api.models.trial_pipeline import TrialPipeline
from activation_api.services.activation.errors import InvalidTransition
from activation_api.services.activation.pipeline import apply_transition, assign_followup, mark_killed
from activation_api.services.activation.state_machine import (
    TRANSITIONS,
    is_terminal,
    next_state,
)

S = ActivationStatus
E = PipelineEvent


class TestNextState:
    """Legal transitions resolve to the expected state."""

    @pytest.mark.parametrize(
        "current,event,expected",
        [
            (S.queued, E.schedule, S.scheduled),
            (S.scheduled, E.reschedule, S.scheduled),
            (S.scheduled, E.attend, S.completed),
            (S.scheduled, E.install_proven, S.activated),
            (S.scheduled, E.block, S.blocked),
            (S.scheduled, E.no_show, S.no_show),
            (S.scheduled, E.cancel, S.queued),
            (S.completed, E.install_proven, S.activated),
            (S.blocked, E.install_proven, S.activated),
            (S.blocked, E.block, S.blocked),
            (S.no_show, E.schedule, S.scheduled),
            (S.blocked, E.requeue, S.queued),
            (S.queued, E.first_lead_received, S.activated),
            (S.no_show, E.kill, S.killed),
        ],
    )
    def test_legal_transition(self, current, event, expected):
        assert next_state(current, event) == expected
        assert event in TRANSITIONS[current]

    @pytest.mark.parametrize(
        "current,event",
        [
            (S.queued, E.attend),
            (S.queued, E.reschedule),
            (S.queued, E.no_show),
            (S.no_show, E.attend),
            (S.completed, E.no_show),
        ],
    )
    def test_illegal_transition(self, current, event):
        assert event not in TRANSITIONS[current]
        with pytest.raises(InvalidTransition) as exc:
            next_state(current, event)
        assert exc.value.status_code == 409
        assert exc.value.current == current.value

    @pytest.mark.parametrize("terminal", [S.activated, S.killed])
    def test_terminal_states_accept_nothing(self, terminal):
        assert is_terminal(terminal)
        assert TRANSITIONS[terminal] == {}
        for event in E:
            with pytest.raises(InvalidTransition):
                next_state(terminal, event)

    def test_every_state_has_a_row(self):
        assert set(TRANSITIONS) == set(S)

    def test_string_values_are_accepted(self):
        assert next_state("queued", "schedule") == S.scheduled

    def test_missing_and_legacy_status_read_as_queued(self):
        assert next_state(None, E.schedule) == S.scheduled
        assert next_state("in_progress", E.schedule) == S.scheduled
        assert not is_terminal(None)


class TestPipelineHelpers:
    """In-memory mutations applied to TrialPipeline rows."""

    def _pipeline(self, status="queued", **fields):
        return TrialPipeline(activation_status=status, reschedule_count=0, **fields)

    def test_apply_transition_stamps_activation_once(self):
        pipeline = self._pipeline("scheduled")
        first = datetime(2025, 1, 6, 15, 0, tzinfo=timezone.utc)
        apply_transition(pipeline, E.install_proven, first)
        assert pipeline.activation_status == "activated"
        assert pipeline.activated_at == first

    def test_apply_transition_leaves_row_untouched_on_failure(self):
        pipeline = self._pipeline("killed")
        with pytest.raises(InvalidTransition):
            apply_transition(pipeline, E.schedule)
        assert pipeline.activation_status == "killed"

    def test_followup_handoff_resets_reschedule_count(self):
        pipeline = self._pipeline("no_show", followup_owner_role="sdr")
        pipeline.reschedule_count = 1
        assign_followup(pipeline, FollowupOwnerRole.activator, reason="Install blocked")
        assert pipeline.followup_owner_role == "activator"
        assert pipeline.reschedule_count == 0

    def test_followup_same_owner_keeps_count(self):
        pipeline = self._pipeline("no_show", followup_owner_role="sdr")
        pipeline.reschedule_count = 1
        assign_followup(pipeline, FollowupOwnerRole.sdr, reason="Customer did not show up")
        assert pipeline.reschedule_count == 1

    def test_clearing_followup(self):
        pipeline = self._pipeline("blocked", followup_owner_role="activator", followup_reason="x")
        assign_followup(pipeline, None, reason="ignored")
        assert pipeline.followup_owner_role is None
        assert pipeline.next_followup_at is None
        assert pipeline.followup_reason is None

    def test_mark_killed(self):
        pipeline = self._pipeline("blocked", next_action="Call back", followup_owner_role="activator")
        now = datetime(2025, 1, 6, tzinfo=timezone.utc)
        mark_killed(pipeline, "stalled_install", "Stalled", now=now)
        assert pipeline.activation_status == "killed"
        assert pipeline.activation_kill_reason == "stalled_install"
        assert pipeline.lost_reason == "Stalled"
        assert pipeline.marked_lost_at == now
        assert pipeline.next_action is None
        assert pipeline.followup_owner_role is None
