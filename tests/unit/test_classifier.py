"""Unit tests for error classification and formatting."""

import pytest

from central_publisher.core.classifier import (
    describe_failure,
    format_component_errors,
    format_errors,
    has_errors,
)
from central_publisher.core.exceptions import (
    DeploymentTimeoutError,
    NotFoundError,
    ValidationError,
    error_code,
)
from central_publisher.models.deployment import DeploymentStatus


class TestHasErrors:
    """Tests for has_errors."""

    @pytest.mark.parametrize("raw", [None, [], {}, "", "{}", "[]", "  "])
    def test_no_errors(self, raw):
        assert has_errors(raw) is False

    @pytest.mark.parametrize(
        "raw",
        [["bad checksum"], {"comp-a": ["bad checksum"]}, "oops", '["x"]'],
    )
    def test_errors(self, raw):
        assert has_errors(raw) is True

    def test_accepts_status(self):
        status = DeploymentStatus.model_validate(
            {"deploymentId": "dep-1", "deploymentState": "FAILED", "errors": ["bad"]}
        )

        assert has_errors(status) is True


class TestFormatErrors:
    """Tests for format_errors."""

    def test_map_with_deployment_label(self):
        text = format_errors(
            {"comp-a": ["bad checksum", "missing signature"], "comp-b": ["no pom"]},
            deployment_id="dep-1",
            deployment_name="my-lib",
        )

        assert text == (
            "Deployment dep-1 (my-lib) errors:\n"
            "  comp-a:\n"
            "    - bad checksum\n"
            "    - missing signature\n"
            "  comp-b:\n"
            "    - no pom"
        )

    def test_list_without_label(self):
        assert format_errors(["first", "second"]) == "Errors:\n  - first\n  - second"

    def test_empty(self):
        assert format_errors(None, deployment_id="dep-1") == "Deployment dep-1 errors:\n  (none)"

    def test_takes_label_from_status(self):
        status = DeploymentStatus.model_validate(
            {
                "deploymentId": "dep-9",
                "deploymentName": "bundle",
                "deploymentState": "FAILED",
                "errors": {"comp-a": ["bad checksum"]},
            }
        )

        assert format_errors(status).startswith("Deployment dep-9 (bundle) errors:\n  comp-a:")


class TestComponentErrors:
    """Tests for per-component error reporting."""

    def test_no_component_errors(self):
        status = DeploymentStatus.model_validate(
            {
                "deploymentId": "dep-1",
                "deploymentState": "FAILED",
                "deployedComponentVersions": [{"purl": "pkg:maven/a/b@1"}],
            }
        )

        assert format_component_errors(status) is None

    def test_describe_failure_includes_components(self):
        status = DeploymentStatus.model_validate(
            {
                "deploymentId": "dep-1",
                "deploymentState": "FAILED",
                "errors": ["validation failed"],
                "deployedComponentVersions": [
                    {"purl": "pkg:maven/a/b@1", "errors": ["missing javadoc"]},
                    {"purl": "pkg:maven/a/c@1", "errors": []},
                ],
            }
        )

        report = describe_failure(status)

        assert report == (
            "Deployment dep-1 errors:\n"
            "  - validation failed\n"
            "Component errors:\n"
            "  pkg:maven/a/b@1:\n"
            "    - missing javadoc"
        )


class TestErrorCodes:
    """Tests for the machine-readable error codes used by the API."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (DeploymentTimeoutError("validation", "dep-1", "VALIDATING", 300, 300), "DEPLOYMENT_TIMEOUT"),
            (NotFoundError(404), "NOT_FOUND"),
            (ValidationError("bad input"), "VALIDATION"),
        ],
    )
    def test_error_code(self, error, code):
        assert error_code(error) == code
