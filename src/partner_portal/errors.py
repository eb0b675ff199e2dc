"""Error taxonomy for portal API calls.

Learn: Every failure is scoped to the call that triggered it — there is
no fatal error class. Callers (the CLI, scripts) decide how to present
them to the user.

- InvalidCredentials → login rejected by the backend
- AuthenticationFailed → 401 and the session could not be refreshed
- AccessForbidden → 403, authenticated but not authorized
- ApiError → any other non-success status, carries the status text

Refresh failures never surface as exceptions: refresh_access_token()
collapses them to False.
"""


class PortalError(Exception):
    """Base class for all portal client errors."""


class InvalidCredentials(PortalError):
    """Raised when the token endpoint rejects a username/password pair."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class AuthenticationFailed(PortalError):
    """Raised when a 401 could not be recovered by refreshing the access token."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class AccessForbidden(PortalError):
    """Raised on 403 — the user is logged in but not allowed to do this."""

    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message)


class ApiError(PortalError):
    """Raised for any other non-success HTTP status."""

    def __init__(self, status_code: int, status_text: str):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"API error: {status_text}")
