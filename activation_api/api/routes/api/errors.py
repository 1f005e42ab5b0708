"""
Translation of activation domain errors into HTTP responses.
"""

from fastapi import HTTPException

from activation_api.services.activation.errors import ActivationError


def to_http_error(error: ActivationError) -> HTTPException:
    """``raise to_http_error(e) from e`` inside a route."""
    return HTTPException(status_code=error.status_code, detail=error.message)
