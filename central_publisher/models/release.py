"""Request and report models for the orchestration entry points."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from central_publisher.models.deployment import Coordinates


class WaitOptions(BaseModel):
    """Per-call overrides for the wait budgets; unset values use settings."""

    max_wait_validation: float | None = Field(default=None, gt=0)
    max_wait_publishing: float | None = Field(default=None, gt=0)
    poll_interval: float | None = Field(default=None, gt=0)
    wait_for_completion: bool | None = None


class UploadRequest(WaitOptions):
    """Upload a bundle and wait for it to settle."""

    artifact_file: Path
    bundle_name: str | None = None
    publish_mode: str | None = None  # defaults to the PUBLISHING_TYPE setting

    @property
    def effective_bundle_name(self) -> str:
        """Explicit name when given, else the file name minus its last extension."""
        if self.bundle_name and self.bundle_name.strip():
            return self.bundle_name.strip()
        file_name = self.artifact_file.name
        dot_index = file_name.rfind(".")
        if dot_index > 0:
            return file_name[:dot_index]
        return file_name


class TargetRequest(BaseModel):
    """An explicit deployment id, or coordinates to search for one."""

    deployment_id: str | None = None
    namespace: str | None = None
    name: str | None = None
    version: str | None = None
    dry_run: bool = False

    @field_validator("deployment_id", "namespace", "name", "version", mode="before")
    @classmethod
    def _blank_as_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _needs_a_target(self) -> "TargetRequest":
        if not self.deployment_id and not (self.namespace and self.name and self.version):
            raise ValueError(
                "Provide deployment_id or all of namespace, name and version"
            )
        return self

    @property
    def coordinates(self) -> Coordinates | None:
        if self.namespace and self.name and self.version:
            return Coordinates(namespace=self.namespace, name=self.name, version=self.version)
        return None


class PublishRequest(TargetRequest):
    """Publish a validated deployment now."""


class ReleaseRequest(TargetRequest):
    """Release the latest validated deployment (strict VALIDATED only)."""


class CleanRequest(BaseModel):
    """Drop one, the latest, or every deployment in a namespace."""

    deployment_id: str | None = None
    namespace: str | None = None
    remove_all: bool = False
    remove_failed_only: bool = True
    dry_run: bool = False

    @model_validator(mode="after")
    def _needs_a_scope(self) -> "CleanRequest":
        if self.remove_all and not self.namespace:
            raise ValueError("remove_all requires a namespace")
        if not self.deployment_id and not self.namespace:
            raise ValueError("Provide deployment_id or namespace")
        return self


class WaitOutcome(str, Enum):
    """Where a successful wait stopped."""

    VALIDATED = "validated"  # awaiting a manual or automatic publish
    PUBLISHING = "publishing"  # publish started, not awaited
    PUBLISHED = "published"


class DeploymentReport(BaseModel):
    """Successful end of an upload/wait."""

    deployment_id: str
    state: str
    outcome: WaitOutcome
    components: list[str] = Field(default_factory=list)
    polls: int = 0
    elapsed_seconds: float = 0.0
    message: str = ""


class PublishAction(str, Enum):
    PUBLISHED = "published"
    ALREADY_PUBLISHING = "already_publishing"
    WOULD_PUBLISH = "would_publish"


class PublishReport(BaseModel):
    """Result of publish-now or release-latest-validated."""

    deployment_id: str
    state: str
    action: PublishAction
    dry_run: bool = False
    components: list[str] = Field(default_factory=list)


class DropAction(str, Enum):
    DROPPED = "dropped"
    WOULD_DROP = "would_drop"
    SKIPPED = "skipped"


class DropEntry(BaseModel):
    """What happened to one clean candidate."""

    deployment_id: str
    state: str | None = None
    action: DropAction
    reason: str | None = None


class CleanReport(BaseModel):
    """Result of a clean run."""

    namespace: str | None = None
    dry_run: bool = False
    entries: list[DropEntry] = Field(default_factory=list)

    def with_action(self, action: DropAction) -> list[DropEntry]:
        return [e for e in self.entries if e.action == action]


class OperationResult(BaseModel):
    """Body-less success from a mutating portal call."""

    success: bool = True
    status_code: int
    message: str = "Operation completed successfully."


class PublicationStatus(BaseModel):
    """Whether a GAV is already visible on Central."""

    namespace: str
    name: str
    version: str
    published: bool | None = None
