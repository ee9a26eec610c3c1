"""Dependency injection for API endpoints."""

from typing import Annotated, AsyncIterator, Callable

from fastapi import Depends

from central_publisher.config import build_portal_config, get_settings
from central_publisher.core.orchestrator import ReleaseOrchestrator
from central_publisher.services.portal_client import CentralPortalClient

ClientFactory = Callable[[], CentralPortalClient]
OrchestratorFactory = Callable[[CentralPortalClient], ReleaseOrchestrator]


def get_client_factory() -> ClientFactory:
    """Build portal clients from the current settings."""
    settings = get_settings()

    def factory() -> CentralPortalClient:
        return CentralPortalClient(build_portal_config(settings))

    return factory


def get_orchestrator_factory() -> OrchestratorFactory:
    """Build an orchestrator around a client."""
    return ReleaseOrchestrator


async def get_portal_client(
    factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> AsyncIterator[CentralPortalClient]:
    """A portal client scoped to one request."""
    async with factory() as client:
        yield client


async def get_orchestrator(
    client: Annotated[CentralPortalClient, Depends(get_portal_client)],
    factory: Annotated[OrchestratorFactory, Depends(get_orchestrator_factory)],
) -> ReleaseOrchestrator:
    """The orchestrator for one request."""
    return factory(client)


# Type aliases for cleaner signatures
ClientFactoryDep = Annotated[ClientFactory, Depends(get_client_factory)]
OrchestratorFactoryDep = Annotated[OrchestratorFactory, Depends(get_orchestrator_factory)]
OrchestratorDep = Annotated[ReleaseOrchestrator, Depends(get_orchestrator)]
