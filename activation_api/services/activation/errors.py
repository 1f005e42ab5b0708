"""
Domain exceptions raised by the activation services.

Routes translate these into HTTP responses via
activation_api.api.routes.api.errors.to_http_error.
"""


class ActivationError(Exception):
    """Base class for activation domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ActivationError):
    status_code = 400


class PermissionDenied(ActivationError):
    status_code = 403


class PolicyViolation(ActivationError):
    """A business policy limit was reached (e.g. SDR reschedule allowance)."""

    status_code = 403


class NotFound(ActivationError):
    status_code = 404


class SlotConflict(ActivationError):
    status_code = 409


class AlreadyFinalized(ActivationError):
    status_code = 409


class InvalidTransition(ActivationError):
    status_code = 409

    def __init__(self, current: str, event: str):
        super().__init__(f"Cannot apply '{event}' to a pipeline in state '{current}'")
        self.current = current
        self.event = event


class PipelineUpdateFailed(ActivationError):
    """The linked trial pipeline could not be updated; the booking is rolled back."""

    status_code = 409
