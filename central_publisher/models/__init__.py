"""Data models for central-publisher."""

from central_publisher.models.deployment import (
    Coordinates,
    DeployedComponent,
    DeploymentErrors,
    DeploymentState,
    DeploymentStatus,
    ErrorShape,
    PublishMode,
    WaitBudget,
)
from central_publisher.models.release import (
    CleanReport,
    CleanRequest,
    DeploymentReport,
    DropAction,
    DropEntry,
    OperationResult,
    PublicationStatus,
    PublishAction,
    PublishReport,
    PublishRequest,
    ReleaseRequest,
    TargetRequest,
    UploadRequest,
    WaitOptions,
    WaitOutcome,
)

__all__ = [
    # Deployment models
    "Coordinates",
    "DeployedComponent",
    "DeploymentErrors",
    "DeploymentState",
    "DeploymentStatus",
    "ErrorShape",
    "PublishMode",
    "WaitBudget",
    # Requests
    "CleanRequest",
    "PublishRequest",
    "ReleaseRequest",
    "TargetRequest",
    "UploadRequest",
    "WaitOptions",
    # Reports
    "CleanReport",
    "DeploymentReport",
    "DropAction",
    "DropEntry",
    "OperationResult",
    "PublicationStatus",
    "PublishAction",
    "PublishReport",
    "WaitOutcome",
]
