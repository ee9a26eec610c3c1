"""Custom exceptions for central-publisher.

HTTP outcomes are classified once, in the portal client, into the
``RemoteError`` family. Lifecycle failures carry the deployment id, the last
observed state and the elapsed wait so a caller can act without another
round trip.
"""

import re
from typing import Any


class PublisherError(Exception):
    """Base exception for central-publisher."""

    http_status: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(PublisherError):
    """A local precondition failed before anything was sent."""

    http_status = 400


# Remote (HTTP) failures


class RemoteError(PublisherError):
    """The portal answered with a non-success HTTP status."""

    http_status = 502
    reason = "Unexpected error"

    def __init__(self, status_code: int, body: str = "", operation: str | None = None):
        message = f"{self.reason} ({status_code})"
        if operation:
            message += f" while {operation}"
        if body:
            message += f": {body}"
        super().__init__(
            message,
            {"status_code": status_code, "body": body, "operation": operation},
        )
        self.status_code = status_code
        self.body = body
        self.operation = operation


class BadRequestError(RemoteError):
    reason = "Bad request"


class AuthError(RemoteError):
    """Credentials were rejected (401 or 403)."""

    reason = "Authentication failed"


class UnauthorizedError(AuthError):
    reason = "Unauthorized"


class ForbiddenError(AuthError):
    reason = "Forbidden"


class NotFoundError(RemoteError):
    http_status = 404
    reason = "Not found"


class ServerError(RemoteError):
    reason = "Internal server error"


class UnexpectedStatusError(RemoteError):
    reason = "Unexpected HTTP status"


class PortalConnectionError(PublisherError):
    """The request never produced an HTTP response."""

    http_status = 502

    def __init__(self, operation: str, cause: Exception):
        super().__init__(
            f"Connection to the portal failed while {operation}: {cause}",
            {"operation": operation, "cause": type(cause).__name__},
        )
        self.operation = operation


# Deployment lifecycle failures


class DeploymentLifecycleError(PublisherError):
    """A deployment ended somewhere other than where the caller wanted."""

    http_status = 409

    def __init__(
        self,
        message: str,
        deployment_id: str | None = None,
        state: str | None = None,
        elapsed_seconds: float | None = None,
        error_report: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged: dict[str, Any] = {
            "deployment_id": deployment_id,
            "state": state,
        }
        if elapsed_seconds is not None:
            merged["elapsed_seconds"] = round(elapsed_seconds, 3)
        if error_report:
            merged["errors"] = error_report
        merged.update(details or {})
        if error_report:
            message = f"{message}\n{error_report}"
        super().__init__(message, merged)
        self.deployment_id = deployment_id
        self.state = state
        self.elapsed_seconds = elapsed_seconds
        self.error_report = error_report


class DeploymentFailedError(DeploymentLifecycleError):
    """The deployment reached FAILED."""


class DeploymentErrorsPresentError(DeploymentLifecycleError):
    """The deployment validated but reported errors."""


class UnexpectedStateError(DeploymentLifecycleError):
    """The portal reported a state outside the known set."""


class NotPublishableError(DeploymentLifecycleError):
    """The selected deployment is not in a state that allows publishing."""


class DeploymentTimeoutError(DeploymentLifecycleError):
    """A wait phase ran out of time before reaching a terminal state."""

    http_status = 504

    def __init__(
        self,
        phase: str,
        deployment_id: str,
        state: str | None,
        elapsed_seconds: float,
        max_duration: float,
    ):
        super().__init__(
            f"Timeout waiting for deployment {phase} after {elapsed_seconds:.1f}s "
            f"(limit {max_duration:g}s)",
            deployment_id=deployment_id,
            state=state,
            elapsed_seconds=elapsed_seconds,
            details={"phase": phase, "max_duration": max_duration},
        )
        self.phase = phase
        self.max_duration = max_duration


class WaitInterruptedError(DeploymentLifecycleError):
    """Local waiting was cancelled; the remote deployment is untouched."""

    http_status = 499


class NoMatchFoundError(PublisherError):
    """No deployment in the namespace matched the search."""

    http_status = 404

    def __init__(self, namespace: str, criteria: str):
        super().__init__(
            f"No {criteria} deployment found in namespace {namespace}",
            {"namespace": namespace, "criteria": criteria},
        )
        self.namespace = namespace


def error_code(exc: Exception) -> str:
    """``DeploymentTimeoutError`` -> ``DEPLOYMENT_TIMEOUT``."""
    name = re.sub(r"Error$", "", type(exc).__name__) or type(exc).__name__
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()
