"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class ProjVizException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the `{"error": ...}` API body."""
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ProjVizException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(ProjVizException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class BadRequestError(ProjVizException):
    """Raised when request is invalid."""

    def __init__(self, message: str = "bad request", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_REQUEST", details=details, status_code=400)


class BadGatewayError(ProjVizException):
    """Raised when an upstream dependency answered badly or not at all."""

    def __init__(self, message: str = "bad gateway", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_GATEWAY", details=details, status_code=502)


class SyncAlreadyRunningError(ConflictError):
    """Raised when the sync lease is held by another run."""

    def __init__(self) -> None:
        super().__init__("sync is already running")
        self.error_code = "SYNC_RUNNING"


# ===== AUTHENTICATION/AUTHORIZATION EXCEPTIONS =====


class AuthenticationException(ProjVizException):
    """Base exception for authentication errors."""

    def __init__(self, message: str = "unauthorized", *, error_code: str = "UNAUTHORIZED", status_code: int = 401):
        super().__init__(message, error_code=error_code, status_code=status_code)


class ExpiredTokenError(AuthenticationException):
    """Raised when token has expired."""

    def __init__(self, message: str = "token has expired"):
        super().__init__(message, error_code="EXPIRED_TOKEN", status_code=401)


class InsufficientPermissionsError(AuthenticationException):
    """Raised when user lacks required permissions."""

    def __init__(self, message: str = "insufficient permissions"):
        super().__init__(message, error_code="INSUFFICIENT_PERMISSIONS", status_code=403)


# ===== JIRA EXCEPTIONS =====


class JiraException(ProjVizException):
    """Base exception for Jira-related errors."""

    def __init__(self, message: str, *, status: int | None = None, error_code: str = "JIRA_ERROR"):
        details = {"status": status} if status else {}
        super().__init__(message, error_code=error_code, details=details, status_code=502)
        self.status = status


class JiraTransientError(JiraException):
    """Network failure, timeout, 5xx or 429: worth another attempt."""

    def __init__(self, message: str, *, status: int | None = None, retry_after: float | None = None):
        super().__init__(message, status=status, error_code="JIRA_TRANSIENT")
        self.retry_after = retry_after


class JiraPermanentError(JiraException):
    """4xx other than 429, or a body that is not the JSON we expect."""

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message, status=status, error_code="JIRA_PERMANENT")


class JiraAuthenticationError(JiraPermanentError):
    """Raised when Jira rejects the credentials; fatal for a whole sync run."""

    def __init__(self, message: str = "jira authentication failed", *, status: int | None = None):
        super().__init__(message, status=status)
        self.error_code = "JIRA_AUTH_ERROR"


class SyncCancelledError(Exception):
    """Raised inside a sync run once its cancellation signal is set."""

    def __init__(self) -> None:
        super().__init__("cancelled")
