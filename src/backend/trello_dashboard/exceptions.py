"""Dashboard exception types."""

from __future__ import annotations

from typing import Literal, Optional

ErrorCode = Literal[
    "invalid_json",
    "validation_failed",
    "bad_request",
    "auth_error",
    "internal_error",
    "configuration_error",
]


class DashboardError(Exception):
    """Base class for every failure the dashboard surfaces to callers."""

    code: ErrorCode = "internal_error"
    status_code: int = 500


class ConfigurationError(DashboardError):
    """Raised when required process configuration is missing or inconsistent."""

    code: ErrorCode = "configuration_error"

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        self.missing = list(missing or [])
        super().__init__(message)


class BoardServiceError(DashboardError):
    """Raised when the board service cannot deliver one of the board entities."""


class TrelloAuthError(BoardServiceError):
    """Raised when Trello rejects the configured key/token pair."""

    code: ErrorCode = "auth_error"
    status_code = 401

    def __init__(self, endpoint: str, upstream_status: Optional[int] = None):
        self.endpoint = endpoint
        self.upstream_status = upstream_status
        super().__init__(
            "Trello authentication failed. Check TRELLO_API_KEY and TRELLO_TOKEN."
        )


class TrelloRequestError(BoardServiceError):
    """Raised on network errors, timeouts, non-2xx responses and bad JSON."""

    def __init__(self, endpoint: str, reason: str, upstream_status: Optional[int] = None):
        self.endpoint = endpoint
        self.reason = reason
        self.upstream_status = upstream_status
        if upstream_status is not None:
            message = f"Trello API {upstream_status}: {reason} - {endpoint}"
        else:
            message = f"Trello request failed: {reason} - {endpoint}"
        super().__init__(message)


class DashboardAssemblyError(DashboardError):
    """Raised when an assembly cycle fails for a reason other than the board service."""
