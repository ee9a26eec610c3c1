"""Deployment endpoints."""

import asyncio
import json
from typing import Annotated, Any

from fastapi import APIRouter, Query
from sse_starlette.sse import EventSourceResponse

from central_publisher.api.deps import ClientFactoryDep, OrchestratorDep, OrchestratorFactoryDep
from central_publisher.config import get_settings
from central_publisher.core.exceptions import PublisherError, ValidationError, error_code
from central_publisher.core.lifecycle import CancellationToken, DeploymentEvent
from central_publisher.models.deployment import DeploymentStatus
from central_publisher.models.release import (
    CleanReport,
    CleanRequest,
    DeploymentReport,
    PublishReport,
    PublishRequest,
    ReleaseRequest,
    UploadRequest,
)
from central_publisher.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _namespace_or_default(namespace: str | None) -> str:
    namespace = namespace or get_settings().central_namespace
    if not namespace:
        raise ValidationError("A namespace is required (query parameter or CENTRAL_NAMESPACE)")
    return namespace


@router.get(
    "",
    response_model=list[DeploymentStatus],
    summary="List deployments of a namespace",
)
async def list_deployments(
    orchestrator: OrchestratorDep,
    namespace: Annotated[str | None, Query()] = None,
    show_all: Annotated[bool, Query()] = False,
) -> list[DeploymentStatus]:
    """List deployments newest first; only the newest unless show_all is set."""
    return await orchestrator.list_deployments(_namespace_or_default(namespace), show_all)


@router.get(
    "/{deployment_id}",
    response_model=DeploymentStatus,
    summary="Get deployment status",
)
async def get_deployment(deployment_id: str, orchestrator: OrchestratorDep) -> DeploymentStatus:
    """Fetch the current status of one deployment."""
    return await orchestrator.status(deployment_id)


@router.post(
    "/upload",
    response_model=DeploymentReport,
    summary="Upload a bundle and wait for it",
    description="Uploads the bundle at artifact_file and waits until validation "
    "(and, in AUTOMATIC mode, publishing) reaches a terminal state.",
)
async def upload_bundle(data: UploadRequest, orchestrator: OrchestratorDep) -> DeploymentReport:
    """Upload a bundle and block until the deployment settles."""
    return await orchestrator.upload(data)


@router.post(
    "/upload/stream",
    summary="Upload a bundle and stream progress (SSE)",
)
async def upload_bundle_stream(
    data: UploadRequest,
    client_factory: ClientFactoryDep,
    orchestrator_factory: OrchestratorFactoryDep,
) -> EventSourceResponse:
    """Upload a bundle and stream state changes using Server-Sent Events.

    Disconnecting abandons the wait; the remote deployment is left as is.
    """

    async def event_generator():
        yield _sse("connected", {"artifact_file": str(data.artifact_file)})

        try:
            client = client_factory()
        except PublisherError as e:
            yield _sse("error", _error_payload(e))
            return

        async with client:
            orchestrator = orchestrator_factory(client)
            queue: asyncio.Queue[DeploymentEvent | None] = asyncio.Queue()
            cancel = CancellationToken()
            task = asyncio.create_task(
                orchestrator.upload(data, cancel=cancel, listener=queue.put)
            )
            task.add_done_callback(lambda _: queue.put_nowait(None))

            try:
                while True:
                    event = await queue.get()
                    if event is None:
                        break
                    yield _sse(event.event_type, event.to_dict())

                try:
                    report = task.result()
                except PublisherError as e:
                    yield _sse("error", _error_payload(e))
                else:
                    yield _sse("completed", report.model_dump(mode="json"))
            finally:
                if not task.done():
                    cancel.cancel("client disconnected")
                    task.cancel()
                    results = await asyncio.gather(task, return_exceptions=True)
                    logger.info("deployments.stream.abandoned", result=repr(results[0]))

    return EventSourceResponse(event_generator())


@router.post(
    "/publish",
    response_model=PublishReport,
    summary="Publish a validated deployment",
)
async def publish_deployment(data: PublishRequest, orchestrator: OrchestratorDep) -> PublishReport:
    """Publish the given or latest VALIDATED deployment; PUBLISHING is a no-op."""
    return await orchestrator.publish_now(data)


@router.post(
    "/release",
    response_model=PublishReport,
    summary="Release the latest validated deployment",
)
async def release_deployment(data: ReleaseRequest, orchestrator: OrchestratorDep) -> PublishReport:
    """Publish a deployment that is exactly VALIDATED."""
    return await orchestrator.release_latest_validated(data)


@router.post(
    "/clean",
    response_model=CleanReport,
    summary="Drop deployments",
)
async def clean_deployments(data: CleanRequest, orchestrator: OrchestratorDep) -> CleanReport:
    """Drop one, the latest, or all deployments of a namespace."""
    return await orchestrator.clean(data)


def _sse(event_type: str, data: dict[str, Any]) -> dict[str, str]:
    return {"event": event_type, "data": json.dumps(data, default=str)}


def _error_payload(error: PublisherError) -> dict[str, Any]:
    return {"code": error_code(error), "message": error.message, "details": error.details}
