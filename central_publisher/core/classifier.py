"""Error/result classification for deployment status payloads."""

from typing import Any

from central_publisher.models.deployment import (
    DeploymentErrors,
    DeploymentStatus,
    ErrorShape,
)


def _errors_of(value: Any) -> DeploymentErrors:
    if isinstance(value, DeploymentStatus):
        return value.errors
    return DeploymentErrors.from_raw(value)


def has_errors(value: Any) -> bool:
    """Whether a payload's errors field holds anything.

    Absent, empty list, empty map and blank/``"{}"``/``"[]"`` strings all
    count as no errors. Accepts the raw field value, a ``DeploymentErrors``
    or a whole ``DeploymentStatus``.
    """
    return not _errors_of(value).is_empty


def format_errors(
    value: Any,
    deployment_id: str | None = None,
    deployment_name: str | None = None,
) -> str:
    """Render an errors payload for people.

    A map becomes one line per component followed by its indented errors;
    a list becomes one line per entry.
    """
    if isinstance(value, DeploymentStatus):
        deployment_id = deployment_id or value.deployment_id
        deployment_name = deployment_name or value.deployment_name
    errors = _errors_of(value)

    if deployment_id:
        label = f"Deployment {deployment_id}"
        if deployment_name:
            label += f" ({deployment_name})"
        lines = [f"{label} errors:"]
    else:
        lines = ["Errors:"]

    if errors.shape == ErrorShape.MAP:
        for component, messages in errors.by_component.items():
            lines.append(f"  {component}:")
            lines.extend(f"    - {message}" for message in messages)
    elif errors.shape == ErrorShape.LIST:
        lines.extend(f"  - {entry}" for entry in errors.entries)
    else:
        lines.append("  (none)")

    return "\n".join(lines)


def format_component_errors(status: DeploymentStatus) -> str | None:
    """Render per-component errors, or None when no component reported any."""
    lines = [
        f"  {component.purl or '<unknown>'}:\n"
        + "\n".join(f"    - {error}" for error in component.errors)
        for component in status.deployed_component_versions
        if component.errors
    ]
    if not lines:
        return None
    return "Component errors:\n" + "\n".join(lines)


def describe_failure(status: DeploymentStatus) -> str:
    """Everything worth showing about a failed or errored deployment."""
    report = format_errors(status)
    component_report = format_component_errors(status)
    if component_report:
        report = f"{report}\n{component_report}"
    return report
