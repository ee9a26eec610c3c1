"""Core functionality for central-publisher."""

from central_publisher.core.exceptions import (
    AuthError,
    BadRequestError,
    DeploymentErrorsPresentError,
    DeploymentFailedError,
    DeploymentLifecycleError,
    DeploymentTimeoutError,
    ForbiddenError,
    NoMatchFoundError,
    NotFoundError,
    NotPublishableError,
    PortalConnectionError,
    PublisherError,
    RemoteError,
    ServerError,
    UnauthorizedError,
    UnexpectedStateError,
    UnexpectedStatusError,
    ValidationError,
    WaitInterruptedError,
)

__all__ = [
    "AuthError",
    "BadRequestError",
    "DeploymentErrorsPresentError",
    "DeploymentFailedError",
    "DeploymentLifecycleError",
    "DeploymentTimeoutError",
    "ForbiddenError",
    "NoMatchFoundError",
    "NotFoundError",
    "NotPublishableError",
    "PortalConnectionError",
    "PublisherError",
    "RemoteError",
    "ServerError",
    "UnauthorizedError",
    "UnexpectedStateError",
    "UnexpectedStatusError",
    "ValidationError",
    "WaitInterruptedError",
]
