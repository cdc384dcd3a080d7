"""Domain errors.

Each error carries the HTTP status the API surfaces it with. None of them
are retried internally.
"""


class FitTrackError(Exception):
    """Base error with a human-readable message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FitTrackError):
    """Malformed or out-of-range input."""

    status_code = 400


class NotFoundError(FitTrackError):
    """Target does not exist, is not in the required state, or is not owned by the caller."""

    status_code = 404


class ConflictError(FitTrackError):
    """Write would break a uniqueness rule, e.g. a second live plan."""

    status_code = 409
