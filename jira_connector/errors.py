"""Error kinds raised by the Jira connector.

Every error carries the HTTP status the plugin should answer with when the
error reaches a route handler. Transport-level failures from the Jira REST
API are represented by ``RESTError``, which keeps the remote status code so
callers can translate authorization failures.
"""

from __future__ import annotations

from typing import Any

# Statuses Jira uses to refuse access to create metadata
AUTHORIZATION_STATUSES = (401, 403)


class ConnectorError(Exception):
    """Base class for all connector errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RESTError(ConnectorError):
    """A Jira REST call failed.

    ``status_code`` is the remote HTTP status, or None when the request never
    produced a response (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code  # type: ignore[assignment]

    @classmethod
    def from_response(cls, response: Any, context: str) -> RESTError:
        """Build an error from a failed Jira response.

        Jira reports problems as ``{"errorMessages": [...], "errors": {...}}``;
        those messages are preferred over the bare status line.
        """
        status = response.status_code
        details: list[str] = []
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            details.extend(str(m) for m in body.get("errorMessages") or [])
            errors = body.get("errors") or {}
            if isinstance(errors, dict):
                details.extend(f"{k}: {v}" for k, v in errors.items())

        if details:
            message = f"{context}: {'; '.join(details)}"
        else:
            reason = getattr(response, "reason", "") or ""
            message = f"{context}: status {status} {reason}".rstrip()
        return cls(message, status)

    def with_context(self, context: str) -> RESTError:
        """Return a copy of this error prefixed with ``context``."""
        return RESTError(f"{context}: {self}", self.status_code)


class VersionUnavailable(ConnectorError):
    """The deployment did not report its version."""


class VersionUnparseable(ConnectorError):
    """The reported version is not valid semantic-version syntax."""


class NotAuthorizedToCreateIssues(ConnectorError):
    """Jira refused access to creation metadata (HTTP 401/403)."""

    def __init__(self, status_code: int):
        super().__init__("not authorized to create issues", status_code)


class CallbackMalformed(ConnectorError):
    """The authorization callback is missing its token or verifier."""


class Unauthenticated(ConnectorError):
    """No local user identity is attached to the request."""

    status_code = 401

    def __init__(self, message: str = "not authorized"):
        super().__init__(message)


class NoPendingHandshake(ConnectorError):
    """No temporary credential exists for the user, or it was already used."""


class TokenMismatch(ConnectorError):
    """The callback's request token differs from the stored one."""

    status_code = 401

    def __init__(self, message: str = "request token mismatch"):
        super().__init__(message)


class ExchangeFailed(ConnectorError):
    """Jira did not issue an access token."""


class InstanceNotFound(ConnectorError):
    """No Jira instance is installed under the given id."""


class UnsupportedInstanceType(ConnectorError):
    """The instance cannot serve the requested operation."""


class MethodNotAllowed(ConnectorError):
    """The route was invoked with a method it does not accept."""

    status_code = 405


def translate_create_meta_error(
    error: Exception, context: str | None = None
) -> ConnectorError:
    """Map a failure on the create-metadata path to its domain error.

    Authorization failures become ``NotAuthorizedToCreateIssues`` carrying the
    original status; other REST errors keep their status and gain ``context``
    when one is given.
    """
    if isinstance(error, RESTError):
        if error.status_code in AUTHORIZATION_STATUSES:
            return NotAuthorizedToCreateIssues(error.status_code)
        return error.with_context(context) if context else error
    if isinstance(error, ConnectorError):
        return error
    return ConnectorError(f"{context}: {error}" if context else str(error))
