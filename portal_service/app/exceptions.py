# portal_service/app/exceptions.py
"""Error taxonomy shared by the HTTP handlers, the Moodle gateway and the sync engine."""


class PortalError(Exception):
    """Base class for portal errors."""


class LoginRequired(PortalError):
    """No valid session; the caller is sent to the login page."""


class Unauthorized(PortalError):
    """The user has no Moodle access token."""


class ValidationError(PortalError):
    """A write was rejected by the store, e.g. a duplicate username."""


class RemoteUnavailable(PortalError):
    """Moodle could not be reached (connection error or timeout)."""


class RemoteError(PortalError):
    """Moodle answered, but not with a usable result.

    Attributes:
        status_code: HTTP status of the response, if one was received.
        body: Raw or decoded response body, kept for server-side logging.
    """

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SyncFailed(PortalError):
    """Deadline synchronization could not read the assignment list."""
