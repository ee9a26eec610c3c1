"""Deployment data models.

These mirror the portal's status payloads. Field names on the wire are
camelCase; the models accept either spelling.
"""

import json
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from central_publisher.core.exceptions import ValidationError


class DeploymentState(str, Enum):
    """Server-side deployment state."""

    PENDING = "PENDING"
    VALIDATING = "VALIDATING"
    VALIDATED = "VALIDATED"
    PUBLISHING = "PUBLISHING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentState.PUBLISHED, DeploymentState.FAILED)

    @classmethod
    def from_value(cls, value: Any) -> "DeploymentState | None":
        """Return the matching state, or None for anything unrecognised."""
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


# States whose payload may legitimately carry errors
ERROR_BEARING_STATES = frozenset({DeploymentState.VALIDATED, DeploymentState.FAILED})


class PublishMode(str, Enum):
    """Who triggers the final publish step."""

    USER_MANAGED = "USER_MANAGED"
    AUTOMATIC = "AUTOMATIC"

    @classmethod
    def parse(cls, value: "str | PublishMode | None") -> "PublishMode":
        """Parse a user-supplied publish mode.

        Accepts any case, surrounding whitespace, and ``-`` in place of ``_``.
        """
        if isinstance(value, PublishMode):
            return value
        if value is None or not str(value).strip():
            raise ValidationError("Publishing type cannot be null or empty")
        normalized = str(value).strip().upper().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            available = ", ".join(m.value for m in cls)
            raise ValidationError(
                f"Invalid publishing type: {value}. Available values: {available}",
                {"publishing_type": value},
            ) from None


class ErrorShape(str, Enum):
    """How the portal spelled the errors field."""

    NONE = "none"
    LIST = "list"
    MAP = "map"


_EMPTY_ERROR_STRINGS = {"", "{}", "[]"}


class DeploymentErrors(BaseModel):
    """Errors attached to a deployment, normalised from whatever shape arrived."""

    shape: ErrorShape = ErrorShape.NONE
    entries: list[str] = Field(default_factory=list)
    by_component: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, value: Any) -> "DeploymentErrors":
        """Build from the raw ``errors`` value of a status payload."""
        if value is None:
            return cls()
        if isinstance(value, DeploymentErrors):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text in _EMPTY_ERROR_STRINGS:
                return cls()
            if text[0] in "[{":
                try:
                    return cls.from_raw(json.loads(text))
                except json.JSONDecodeError:
                    pass
            return cls(shape=ErrorShape.LIST, entries=[text])
        if isinstance(value, dict):
            if not value:
                return cls()
            by_component = {
                str(component): _as_messages(messages)
                for component, messages in value.items()
            }
            return cls(shape=ErrorShape.MAP, by_component=by_component)
        if isinstance(value, (list, tuple)):
            if not value:
                return cls()
            return cls(shape=ErrorShape.LIST, entries=[_as_message(v) for v in value])
        return cls(shape=ErrorShape.LIST, entries=[_as_message(value)])

    @property
    def is_empty(self) -> bool:
        return self.shape == ErrorShape.NONE


def _as_message(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def _as_messages(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_as_message(v) for v in value]
    return [_as_message(value)]


class _PortalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DeployedComponent(_PortalModel):
    """One component version inside a deployment."""

    purl: str | None = None
    errors: list[str] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _coerce_errors(cls, value: Any) -> list[str]:
        errors = DeploymentErrors.from_raw(value)
        if errors.shape == ErrorShape.MAP:
            return [
                f"{component}: {message}"
                for component, messages in errors.by_component.items()
                for message in messages
            ]
        return errors.entries


class DeploymentStatus(_PortalModel):
    """Snapshot of one deployment as reported by the portal."""

    deployment_id: str
    deployment_name: str | None = None
    deployment_state: str = ""
    errors: DeploymentErrors = Field(default_factory=DeploymentErrors)
    deployed_component_versions: list[DeployedComponent] = Field(default_factory=list)
    purls: list[str] = Field(default_factory=list)
    create_timestamp: int | None = None

    @field_validator("deployment_state", mode="before")
    @classmethod
    def _state_as_string(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)

    @field_validator("errors", mode="before")
    @classmethod
    def _parse_errors(cls, value: Any) -> DeploymentErrors:
        return DeploymentErrors.from_raw(value)

    @field_validator("deployed_component_versions", "purls", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _drop_noise_errors(self) -> "DeploymentStatus":
        # Only VALIDATED and FAILED payloads may carry errors
        if self.state not in ERROR_BEARING_STATES and not self.errors.is_empty:
            self.errors = DeploymentErrors()
        return self

    @property
    def state(self) -> DeploymentState | None:
        """The known state, or None when the portal sent something else."""
        return DeploymentState.from_value(self.deployment_state)

    @property
    def component_purls(self) -> list[str]:
        """Every purl mentioned by the deployment, in order, without repeats."""
        seen: dict[str, None] = {}
        for purl in self.purls:
            seen.setdefault(purl, None)
        for component in self.deployed_component_versions:
            if component.purl:
                seen.setdefault(component.purl, None)
        return list(seen)


class WaitBudget(BaseModel):
    """Wall-clock limit and poll cadence for one wait phase, in seconds."""

    model_config = ConfigDict(frozen=True)

    max_duration: float = Field(..., gt=0)
    poll_interval: float = Field(..., gt=0)

    @model_validator(mode="after")
    def _interval_within_budget(self) -> "WaitBudget":
        if self.poll_interval >= self.max_duration:
            raise ValueError(
                f"poll_interval ({self.poll_interval:g}s) must be shorter than "
                f"max_duration ({self.max_duration:g}s)"
            )
        return self


class Coordinates(BaseModel):
    """Namespace/name/version of a published unit (a Maven GAV)."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)

    @property
    def purl_prefix(self) -> str:
        return f"pkg:maven/{self.namespace}/{self.name}@{self.version}"

    @property
    def gav(self) -> str:
        return f"{self.namespace}:{self.name}:{self.version}"
