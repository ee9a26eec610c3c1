"""Publication status endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from central_publisher.api.deps import OrchestratorDep
from central_publisher.models.deployment import Coordinates
from central_publisher.models.release import PublicationStatus

router = APIRouter()


@router.get(
    "",
    response_model=PublicationStatus,
    summary="Check whether a GAV is published",
)
async def check_published(
    orchestrator: OrchestratorDep,
    namespace: Annotated[str, Query(min_length=1)],
    name: Annotated[str, Query(min_length=1)],
    version: Annotated[str, Query(min_length=1)],
) -> PublicationStatus:
    """Ask the portal whether namespace:name:version is already on Central."""
    return await orchestrator.check_published(
        Coordinates(namespace=namespace, name=name, version=version)
    )
