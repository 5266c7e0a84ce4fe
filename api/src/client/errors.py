"""Client-side error types.

Nothing here retries: a failed read leaves the view empty with a message,
a failed write rolls the optimistic change back.
"""


class AcademyClientError(Exception):
    """Base client error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class QueryFailedError(AcademyClientError):
    """A read request failed."""


class WriteFailedError(AcademyClientError):
    """A write request failed."""


class ValidationNotice(AcademyClientError):
    """Input rejected locally, before any request is made."""
