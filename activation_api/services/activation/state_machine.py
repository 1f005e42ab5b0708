"""
Trial pipeline activation state machine.

Every change to ``TrialPipeline.activation_status`` goes through
``next_state`` so that illegal transitions (e.g. activated -> scheduled)
are rejected in one place instead of by each route.
"""

from typing import Dict, Union

from activation_api.models.enums import ActivationStatus, PipelineEvent

from .errors import InvalidTransition

S = ActivationStatus
E = PipelineEvent

TERMINAL_STATES = frozenset({S.activated, S.killed})

# Events every non-terminal state accepts.
_ALWAYS = {
    E.schedule: S.scheduled,
    E.requeue: S.queued,
    E.first_lead_received: S.activated,
    E.kill: S.killed,
}

TRANSITIONS: Dict[ActivationStatus, Dict[PipelineEvent, ActivationStatus]] = {
    S.queued: {**_ALWAYS},
    S.scheduled: {
        **_ALWAYS,
        E.reschedule: S.scheduled,
        E.attend: S.completed,
        E.install_proven: S.activated,
        E.block: S.blocked,
        E.no_show: S.no_show,
        E.cancel: S.queued,
    },
    S.completed: {
        **_ALWAYS,
        E.install_proven: S.activated,
        E.block: S.blocked,
    },
    S.no_show: {**_ALWAYS},
    S.blocked: {
        **_ALWAYS,
        E.install_proven: S.activated,
        E.block: S.blocked,
    },
    S.activated: {},
    S.killed: {},
}


def _coerce_status(value: Union[str, ActivationStatus, None]) -> ActivationStatus:
    if value is None:
        return S.queued
    # Legacy rows used "in_progress" before scheduling existed
    if value == "in_progress":
        return S.queued
    return S(value)


def is_terminal(status: Union[str, ActivationStatus, None]) -> bool:
    return _coerce_status(status) in TERMINAL_STATES


def next_state(
    current: Union[str, ActivationStatus, None],
    event: Union[str, PipelineEvent],
) -> ActivationStatus:
    """
    Resolve the state reached by applying ``event`` to ``current``.

    Raises:
        InvalidTransition: if the pair is not defined in TRANSITIONS.
    """
    state = _coerce_status(current)
    evt = E(event)
    try:
        return TRANSITIONS[state][evt]
    except KeyError:
        raise InvalidTransition(state.value, evt.value)
