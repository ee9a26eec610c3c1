"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Any, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from central_publisher.api.deps import get_client_factory, get_orchestrator_factory
from central_publisher.config import Settings
from central_publisher.core.lifecycle import DeploymentWaiter
from central_publisher.core.orchestrator import ReleaseOrchestrator
from central_publisher.main import app
from central_publisher.models.deployment import Coordinates, DeploymentStatus, PublishMode
from central_publisher.models.release import OperationResult, PublicationStatus


class FakeClock:
    """Monotonic clock that only moves when the waiter sleeps."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None):
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep = on_sleep

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(seconds)


class ScriptedPortal:
    """In-memory stand-in for CentralPortalClient.

    ``statuses`` is consumed one entry per status call; the last entry keeps
    being returned. An entry may be a state name, a payload dict, a
    ``DeploymentStatus`` or an exception to raise.
    """

    def __init__(
        self,
        statuses: list[Any] | None = None,
        deployments: list[dict[str, Any]] | None = None,
        deployment_id: str = "dep-1",
    ):
        self.statuses = list(statuses or [])
        self.deployments = deployments or []
        self.deployment_id = deployment_id
        self.uploads: list[tuple[Path, str, PublishMode]] = []
        self.status_calls: list[str] = []
        self.list_calls: list[tuple[str, int, int]] = []
        self.published: list[str] = []
        self.dropped: list[str] = []
        self.published_gavs: dict[str, bool] = {}

    async def __aenter__(self) -> "ScriptedPortal":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def upload_bundle(self, bundle_file, bundle_name, publish_mode) -> str:
        self.uploads.append((Path(bundle_file), bundle_name, PublishMode.parse(publish_mode)))
        return self.deployment_id

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus:
        self.status_calls.append(deployment_id)
        if not self.statuses:
            raise AssertionError("no scripted status left")
        entry = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, DeploymentStatus):
            return entry
        if isinstance(entry, str):
            entry = {"deploymentState": entry}
        return DeploymentStatus.model_validate({"deploymentId": deployment_id, **entry})

    async def publish_deployment(self, deployment_id: str) -> OperationResult:
        self.published.append(deployment_id)
        return OperationResult(status_code=204)

    async def drop_deployment(self, deployment_id: str) -> OperationResult:
        self.dropped.append(deployment_id)
        return OperationResult(status_code=204)

    async def list_deployments(
        self,
        namespace: str,
        offset: int = 0,
        limit: int = 500,
        sort_field: str = "createTimestamp",
        sort_direction: str = "desc",
    ) -> list[DeploymentStatus]:
        self.list_calls.append((namespace, offset, limit))
        return [DeploymentStatus.model_validate(d) for d in self.deployments[offset : offset + limit]]

    async def check_published(self, coordinates: Coordinates) -> PublicationStatus:
        return PublicationStatus(
            namespace=coordinates.namespace,
            name=coordinates.name,
            version=coordinates.version,
            published=self.published_gavs.get(coordinates.gav, False),
        )


def deployment(
    deployment_id: str,
    state: str,
    purls: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """A deployment payload as the portal lists it."""
    return {
        "deploymentId": deployment_id,
        "deploymentState": state,
        "deployedComponentVersions": [{"purl": purl} for purl in purls or []],
        **extra,
    }


@pytest.fixture
def make_deployment() -> Callable[..., dict[str, Any]]:
    return deployment


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        central_bearer_token="test-token",
        central_api_url="https://portal.test/api/v1/publisher",
        central_namespace=None,
        publishing_type="USER_MANAGED",
        max_wait_validation=10,
        max_wait_publishing=10,
        poll_interval=1,
        wait_for_completion=True,
        status_retries=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def portal() -> ScriptedPortal:
    return ScriptedPortal()


@pytest.fixture
def orchestrator(portal: ScriptedPortal, settings: Settings, clock: FakeClock) -> ReleaseOrchestrator:
    """Orchestrator over the scripted portal with a fake clock."""
    waiter = DeploymentWaiter(portal, clock=clock, sleep=clock.sleep)
    return ReleaseOrchestrator(portal, settings, waiter=waiter)


@pytest.fixture
def bundle_file(tmp_path: Path) -> Path:
    path = tmp_path / "my-lib-1.0.0.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


@pytest.fixture
async def client(portal: ScriptedPortal, settings: Settings, clock: FakeClock) -> AsyncClient:
    """Create an async test client wired to the scripted portal."""

    def orchestrator_for(client):
        waiter = DeploymentWaiter(client, clock=clock, sleep=clock.sleep)
        return ReleaseOrchestrator(client, settings, waiter=waiter)

    app.dependency_overrides[get_client_factory] = lambda: lambda: portal
    app.dependency_overrides[get_orchestrator_factory] = lambda: orchestrator_for

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Cleanup after test
    app.dependency_overrides.clear()
