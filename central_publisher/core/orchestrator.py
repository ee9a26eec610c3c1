"""Release Orchestrator.

Implements the user-facing workflows on top of the portal client and the
deployment state machine:

1. upload - upload a bundle and wait for it to validate/publish
2. publish_now - publish a VALIDATED deployment (PUBLISHING is a no-op)
3. release_latest_validated - strict variant, VALIDATED only
4. clean - drop one, the latest, or all deployments of a namespace
"""

from typing import Callable, Protocol

from pydantic import ValidationError as ModelValidationError

from central_publisher.config import Settings, get_settings
from central_publisher.core.classifier import describe_failure, has_errors
from central_publisher.core.exceptions import (
    NoMatchFoundError,
    NotPublishableError,
    ValidationError,
)
from central_publisher.core.lifecycle import (
    CancellationToken,
    DeploymentWaiter,
    EventListener,
)
from central_publisher.models.deployment import (
    Coordinates,
    DeploymentState,
    DeploymentStatus,
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
)
from central_publisher.utils.logging import get_logger

StatusPredicate = Callable[[DeploymentStatus], bool]

SEARCH_LIMIT = 500


class PortalOperations(Protocol):
    """Client operations the orchestrator relies on."""

    async def upload_bundle(self, bundle_file, bundle_name, publish_mode) -> str: ...

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus: ...

    async def publish_deployment(self, deployment_id: str) -> OperationResult: ...

    async def drop_deployment(self, deployment_id: str) -> OperationResult: ...

    async def list_deployments(
        self,
        namespace: str,
        offset: int = 0,
        limit: int = SEARCH_LIMIT,
        sort_field: str = "createTimestamp",
        sort_direction: str = "desc",
    ) -> list[DeploymentStatus]: ...

    async def check_published(self, coordinates: Coordinates) -> PublicationStatus: ...


def matching(
    purl_prefix: str | None = None,
    states: set[DeploymentState] | None = None,
) -> StatusPredicate:
    """Build a search predicate from a purl prefix and/or allowed states."""

    def predicate(status: DeploymentStatus) -> bool:
        if states is not None and status.state not in states:
            return False
        if purl_prefix is not None:
            return any(purl.startswith(purl_prefix) for purl in status.component_purls)
        return True

    return predicate


class ReleaseOrchestrator:
    """Runs publishing workflows against one portal client."""

    def __init__(
        self,
        client: PortalOperations,
        settings: Settings | None = None,
        waiter: DeploymentWaiter | None = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.waiter = waiter or DeploymentWaiter(
            client, status_retries=self.settings.status_retries
        )
        self.logger = get_logger("orchestrator")

    # Shared search

    async def find_latest(
        self,
        namespace: str,
        predicate: StatusPredicate,
        limit: int = SEARCH_LIMIT,
    ) -> DeploymentStatus | None:
        """Most recently created deployment satisfying ``predicate``.

        Scans newest first and returns the first match.
        """
        deployments = await self.client.list_deployments(
            namespace, 0, limit, "createTimestamp", "desc"
        )
        for deployment in deployments:
            if predicate(deployment):
                return deployment
        return None

    async def find_latest_validated(self, coordinates: Coordinates) -> DeploymentStatus:
        """Latest VALIDATED deployment carrying a component of ``coordinates``."""
        found = await self.find_latest(
            coordinates.namespace,
            matching(coordinates.purl_prefix, {DeploymentState.VALIDATED}),
        )
        if found is None:
            self.logger.warning("orchestrator.search.no_match", gav=coordinates.gav)
            raise NoMatchFoundError(coordinates.namespace, f"VALIDATED {coordinates.gav}")
        self.logger.info(
            "orchestrator.search.found",
            gav=coordinates.gav,
            deployment_id=found.deployment_id,
        )
        return found

    # Upload

    def budgets(self, options: WaitOptions) -> tuple[WaitBudget, WaitBudget]:
        """Validation and publishing budgets for a call, falling back to settings."""
        poll_interval = options.poll_interval or self.settings.poll_interval
        try:
            validation = WaitBudget(
                max_duration=options.max_wait_validation or self.settings.max_wait_validation,
                poll_interval=poll_interval,
            )
            publishing = WaitBudget(
                max_duration=options.max_wait_publishing or self.settings.max_wait_publishing,
                poll_interval=poll_interval,
            )
        except ModelValidationError as e:
            raise ValidationError(
                f"Invalid wait budget: {e.errors()[0]['msg']}",
                {"poll_interval": poll_interval},
            ) from e
        return validation, publishing

    async def upload(
        self,
        request: UploadRequest,
        cancel: CancellationToken | None = None,
        listener: EventListener | None = None,
    ) -> DeploymentReport:
        """Upload a bundle and wait until it validates (and publishes, if asked)."""
        mode = PublishMode.parse(request.publish_mode or self.settings.publishing_type)
        validation, publishing = self.budgets(request)
        wait_for_completion = (
            self.settings.wait_for_completion
            if request.wait_for_completion is None
            else request.wait_for_completion
        )
        bundle_name = request.effective_bundle_name

        deployment_id = await self.client.upload_bundle(
            request.artifact_file, bundle_name, mode
        )
        self.logger.info(
            "orchestrator.upload.accepted",
            deployment_id=deployment_id,
            bundle_name=bundle_name,
            publishing_type=mode.value,
        )

        waiter = self.waiter.with_listener(listener) if listener else self.waiter
        return await waiter.wait(
            deployment_id,
            mode,
            validation,
            publishing,
            wait_for_completion=wait_for_completion,
            cancel=cancel,
        )

    # Publish

    async def publish_now(self, request: PublishRequest) -> PublishReport:
        """Publish a VALIDATED deployment; one already PUBLISHING is left alone."""
        return await self._publish(
            request, {DeploymentState.VALIDATED, DeploymentState.PUBLISHING}
        )

    async def release_latest_validated(self, request: ReleaseRequest) -> PublishReport:
        """Publish a deployment that must be exactly VALIDATED."""
        return await self._publish(request, {DeploymentState.VALIDATED})

    async def _resolve_target(self, request: TargetRequest) -> str:
        if request.deployment_id:
            self.logger.info(
                "orchestrator.target.explicit", deployment_id=request.deployment_id
            )
            return request.deployment_id
        found = await self.find_latest_validated(request.coordinates)
        return found.deployment_id

    async def _publish(
        self,
        request: TargetRequest,
        allowed: set[DeploymentState],
    ) -> PublishReport:
        deployment_id = await self._resolve_target(request)
        status = await self.client.get_deployment_status(deployment_id)
        state = status.state
        self.logger.info(
            "orchestrator.publish.status",
            deployment_id=deployment_id,
            state=status.deployment_state,
        )

        if state not in allowed:
            expected = " or ".join(sorted(s.value for s in allowed))
            raise NotPublishableError(
                f"Deployment {deployment_id} is not in a publishable state ({expected}). "
                f"Current state: {status.deployment_state or 'unknown'}",
                deployment_id=deployment_id,
                state=status.deployment_state,
                error_report=describe_failure(status) if has_errors(status) else None,
            )

        if state == DeploymentState.PUBLISHING:
            action = PublishAction.ALREADY_PUBLISHING
            self.logger.info("orchestrator.publish.already_publishing", deployment_id=deployment_id)
        elif request.dry_run:
            action = PublishAction.WOULD_PUBLISH
            self.logger.info("orchestrator.publish.dry_run", deployment_id=deployment_id)
        else:
            await self.client.publish_deployment(deployment_id)
            action = PublishAction.PUBLISHED
            self.logger.info("orchestrator.publish.requested", deployment_id=deployment_id)

        return PublishReport(
            deployment_id=deployment_id,
            state=status.deployment_state,
            action=action,
            dry_run=request.dry_run,
            components=status.component_purls,
        )

    # Clean

    async def clean(self, request: CleanRequest) -> CleanReport:
        """Drop deployments; dry runs select exactly what a real run would drop."""
        report = CleanReport(namespace=request.namespace, dry_run=request.dry_run)

        if request.remove_all:
            deployments = await self.client.list_deployments(
                request.namespace, 0, SEARCH_LIMIT, "createTimestamp", "desc"
            )
            if not deployments:
                self.logger.info("orchestrator.clean.nothing_found", namespace=request.namespace)
            for deployment in deployments:
                await self._drop_candidate(
                    deployment.deployment_id, deployment.deployment_state, request, report
                )

        elif request.deployment_id:
            state = None
            if request.remove_failed_only:
                status = await self.client.get_deployment_status(request.deployment_id)
                state = status.deployment_state
            await self._drop_candidate(request.deployment_id, state, request, report)

        else:
            latest = await self.find_latest(request.namespace, matching(), limit=1)
            if latest is None:
                self.logger.info("orchestrator.clean.nothing_found", namespace=request.namespace)
            else:
                await self._drop_candidate(
                    latest.deployment_id, latest.deployment_state, request, report
                )

        return report

    async def _drop_candidate(
        self,
        deployment_id: str,
        state: str | None,
        request: CleanRequest,
        report: CleanReport,
    ) -> None:
        if request.remove_failed_only and DeploymentState.from_value(state) != DeploymentState.FAILED:
            self.logger.info(
                "orchestrator.clean.skipped",
                deployment_id=deployment_id,
                state=state,
            )
            report.entries.append(
                DropEntry(
                    deployment_id=deployment_id,
                    state=state,
                    action=DropAction.SKIPPED,
                    reason="not in FAILED state",
                )
            )
            return

        if request.dry_run:
            self.logger.info(
                "orchestrator.clean.would_drop",
                deployment_id=deployment_id,
                state=state,
            )
            report.entries.append(
                DropEntry(deployment_id=deployment_id, state=state, action=DropAction.WOULD_DROP)
            )
            return

        await self.client.drop_deployment(deployment_id)
        self.logger.info("orchestrator.clean.dropped", deployment_id=deployment_id, state=state)
        report.entries.append(
            DropEntry(deployment_id=deployment_id, state=state, action=DropAction.DROPPED)
        )

    # Read-only helpers

    async def status(self, deployment_id: str) -> DeploymentStatus:
        return await self.client.get_deployment_status(deployment_id)

    async def list_deployments(
        self, namespace: str, show_all: bool = False
    ) -> list[DeploymentStatus]:
        """Deployments of a namespace, newest first; only the newest unless ``show_all``."""
        deployments = await self.client.list_deployments(
            namespace, 0, SEARCH_LIMIT if show_all else 1, "createTimestamp", "desc"
        )
        return deployments if show_all else deployments[:1]

    async def check_published(self, coordinates: Coordinates) -> PublicationStatus:
        return await self.client.check_published(coordinates)
