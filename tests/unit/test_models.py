"""Unit tests for data models."""

from pathlib import Path

import pytest
from pydantic import ValidationError as ModelValidationError

from central_publisher.core.exceptions import ValidationError
from central_publisher.models.deployment import (
    Coordinates,
    DeploymentErrors,
    DeploymentState,
    DeploymentStatus,
    ErrorShape,
    PublishMode,
    WaitBudget,
)
from central_publisher.models.release import (
    CleanRequest,
    PublishRequest,
    UploadRequest,
)


class TestDeploymentState:
    """Tests for DeploymentState."""

    def test_terminal_states(self):
        assert DeploymentState.PUBLISHED.is_terminal
        assert DeploymentState.FAILED.is_terminal
        assert not DeploymentState.VALIDATED.is_terminal
        assert not DeploymentState.PENDING.is_terminal

    def test_from_value_is_lenient_about_case(self):
        assert DeploymentState.from_value("validated") == DeploymentState.VALIDATED
        assert DeploymentState.from_value(" FAILED ") == DeploymentState.FAILED

    def test_from_value_unknown(self):
        """Unknown states are reported as None rather than raising."""
        assert DeploymentState.from_value("ARCHIVED") is None
        assert DeploymentState.from_value(None) is None


class TestPublishMode:
    """Tests for PublishMode parsing."""

    @pytest.mark.parametrize(
        "value",
        ["AUTOMATIC", "automatic", "  Automatic ", PublishMode.AUTOMATIC],
    )
    def test_parse_automatic(self, value):
        assert PublishMode.parse(value) == PublishMode.AUTOMATIC

    def test_parse_accepts_dashes(self):
        assert PublishMode.parse("user-managed") == PublishMode.USER_MANAGED

    def test_parse_rejects_unknown_value(self):
        with pytest.raises(ValidationError) as exc_info:
            PublishMode.parse("SOMETIMES")

        assert "USER_MANAGED" in exc_info.value.message
        assert "AUTOMATIC" in exc_info.value.message

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_parse_rejects_empty(self, value):
        with pytest.raises(ValidationError):
            PublishMode.parse(value)


class TestDeploymentErrors:
    """Tests for normalising the errors field."""

    @pytest.mark.parametrize("raw", [None, [], {}, "", "  ", "{}", "[]"])
    def test_empty_shapes(self, raw):
        assert DeploymentErrors.from_raw(raw).is_empty

    def test_map_shape(self):
        errors = DeploymentErrors.from_raw({"comp-a": ["bad checksum"], "comp-b": "missing pom"})

        assert errors.shape == ErrorShape.MAP
        assert errors.by_component == {
            "comp-a": ["bad checksum"],
            "comp-b": ["missing pom"],
        }

    def test_list_shape(self):
        errors = DeploymentErrors.from_raw(["one", {"code": 2}])

        assert errors.shape == ErrorShape.LIST
        assert errors.entries == ["one", '{"code": 2}']

    def test_json_string_is_decoded(self):
        errors = DeploymentErrors.from_raw('{"comp-a": ["bad"]}')

        assert errors.shape == ErrorShape.MAP
        assert errors.by_component == {"comp-a": ["bad"]}

    def test_plain_string_is_a_single_entry(self):
        errors = DeploymentErrors.from_raw("something broke")

        assert errors.shape == ErrorShape.LIST
        assert errors.entries == ["something broke"]


class TestDeploymentStatus:
    """Tests for DeploymentStatus parsing."""

    def test_parses_camel_case_payload(self):
        status = DeploymentStatus.model_validate(
            {
                "deploymentId": "dep-1",
                "deploymentName": "my-lib",
                "deploymentState": "VALIDATED",
                "purls": ["pkg:maven/com.example/lib@1.0"],
                "deployedComponentVersions": [
                    {"name": "lib", "purl": "pkg:maven/com.example/lib@1.0", "errors": []},
                    {"purl": "pkg:maven/com.example/lib-extra@1.0"},
                ],
                "createTimestamp": 1700000000000,
                "somethingNew": True,
            }
        )

        assert status.deployment_id == "dep-1"
        assert status.state == DeploymentState.VALIDATED
        assert status.create_timestamp == 1700000000000
        assert status.component_purls == [
            "pkg:maven/com.example/lib@1.0",
            "pkg:maven/com.example/lib-extra@1.0",
        ]

    def test_unknown_state_is_kept_verbatim(self):
        status = DeploymentStatus(deployment_id="dep-1", deployment_state="ARCHIVED")

        assert status.deployment_state == "ARCHIVED"
        assert status.state is None

    def test_errors_dropped_outside_error_bearing_states(self):
        status = DeploymentStatus.model_validate(
            {"deploymentId": "dep-1", "deploymentState": "VALIDATING", "errors": ["stale"]}
        )

        assert status.errors.is_empty

    def test_errors_kept_for_failed(self):
        status = DeploymentStatus.model_validate(
            {"deploymentId": "dep-1", "deploymentState": "FAILED", "errors": {"comp-a": ["bad"]}}
        )

        assert status.errors.shape == ErrorShape.MAP

    def test_null_collections(self):
        status = DeploymentStatus.model_validate(
            {"deploymentId": "dep-1", "deployedComponentVersions": None, "purls": None}
        )

        assert status.component_purls == []


class TestWaitBudget:
    """Tests for WaitBudget."""

    def test_valid_budget(self):
        budget = WaitBudget(max_duration=300, poll_interval=5)

        assert budget.max_duration == 300
        assert budget.poll_interval == 5

    @pytest.mark.parametrize(
        "max_duration,poll_interval",
        [(0, 1), (10, 0), (10, -1), (5, 5), (5, 10)],
    )
    def test_invalid_budget(self, max_duration, poll_interval):
        with pytest.raises(ModelValidationError):
            WaitBudget(max_duration=max_duration, poll_interval=poll_interval)


class TestRequests:
    """Tests for request models."""

    def test_bundle_name_defaults_to_file_stem(self):
        request = UploadRequest(artifact_file=Path("/tmp/bundle.release.zip"))

        assert request.effective_bundle_name == "bundle.release"

    def test_bundle_name_without_extension(self):
        request = UploadRequest(artifact_file=Path("/tmp/bundle"))

        assert request.effective_bundle_name == "bundle"

    def test_explicit_bundle_name_is_trimmed(self):
        request = UploadRequest(artifact_file=Path("/tmp/bundle.zip"), bundle_name="  mine ")

        assert request.effective_bundle_name == "mine"

    def test_blank_bundle_name_falls_back(self):
        request = UploadRequest(artifact_file=Path("/tmp/bundle.zip"), bundle_name="   ")

        assert request.effective_bundle_name == "bundle"

    def test_publish_request_needs_target(self):
        with pytest.raises(ModelValidationError):
            PublishRequest(namespace="com.example", name="lib")

    def test_publish_request_coordinates(self):
        request = PublishRequest(namespace="com.example", name="lib", version="1.0")

        assert request.coordinates == Coordinates(namespace="com.example", name="lib", version="1.0")
        assert request.coordinates.purl_prefix == "pkg:maven/com.example/lib@1.0"

    def test_publish_request_blank_id_is_ignored(self):
        request = PublishRequest(
            deployment_id="  ", namespace="com.example", name="lib", version="1.0"
        )

        assert request.deployment_id is None

    def test_clean_request_defaults(self):
        request = CleanRequest(namespace="com.example")

        assert request.remove_failed_only is True
        assert request.remove_all is False
        assert request.dry_run is False

    def test_clean_request_needs_scope(self):
        with pytest.raises(ModelValidationError):
            CleanRequest()

    def test_clean_all_needs_namespace(self):
        with pytest.raises(ModelValidationError):
            CleanRequest(deployment_id="dep-1", remove_all=True)
