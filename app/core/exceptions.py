"""
Domain errors for the inspection engine.
Each error kind maps to a stable error code and HTTP status so callers can
match on it; the global handler in app.main renders them.
"""


class InspectionEngineError(Exception):
    """Base class for every error the services raise on purpose."""

    error = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InspectionEngineError):
    """Missing or malformed input."""

    error = "validation_error"
    status_code = 422


class InvalidStateError(InspectionEngineError):
    """Operation not legal from the record's current state."""

    error = "invalid_state"
    status_code = 400


class NotFoundError(InspectionEngineError):
    error = "not_found"
    status_code = 404


class ConflictError(InspectionEngineError):
    """Lost a concurrent-mutation race. Safe to retry after re-fetching."""

    error = "conflict"
    status_code = 409


class UpstreamError(InspectionEngineError):
    """A required collaborator service failed."""

    error = "upstream_error"
    status_code = 502
