"""Central Portal Publisher API client.

Issues authenticated requests to the portal and classifies every HTTP
outcome into a typed error. Each call performs exactly one request and
never retries; retry policy belongs to the callers.
"""

import json
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError as ModelValidationError

from central_publisher.config import PortalConfig
from central_publisher.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PortalConnectionError,
    RemoteError,
    ServerError,
    UnauthorizedError,
    UnexpectedStatusError,
    ValidationError,
)
from central_publisher.models.deployment import (
    Coordinates,
    DeploymentStatus,
    PublishMode,
)
from central_publisher.models.release import OperationResult, PublicationStatus
from central_publisher.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CLASSES: dict[int, type[RemoteError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    500: ServerError,
}

DEFAULT_LIST_LIMIT = 500


def raise_for_status(response: httpx.Response, operation: str) -> None:
    """Raise the typed error matching a non-2xx response."""
    if response.is_success:
        return
    error_class = ERROR_CLASSES.get(response.status_code, UnexpectedStatusError)
    raise error_class(response.status_code, response.text, operation)


class CentralPortalClient:
    """Async client for the Central Portal Publisher API.

    Holds only immutable configuration and a connection pool, so one
    instance can serve independent concurrent invocations.
    """

    def __init__(
        self,
        config: PortalConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.bearer_token}",
                "Accept": "application/json",
            },
            timeout=config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CentralPortalClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning("portal.request_failed", operation=operation, error=str(e))
            raise PortalConnectionError(operation, e) from e

        logger.debug(
            "portal.response",
            operation=operation,
            method=method,
            url=url,
            status_code=response.status_code,
        )
        raise_for_status(response, operation)
        return response

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError:
            raise UnexpectedStatusError(
                response.status_code,
                f"Response body is not JSON: {response.text[:200]}",
                operation,
            ) from None

    @staticmethod
    def _status(payload: Any, response: httpx.Response, operation: str) -> DeploymentStatus:
        try:
            return DeploymentStatus.model_validate(payload)
        except ModelValidationError as e:
            raise UnexpectedStatusError(
                response.status_code,
                f"Unexpected response shape: {e.errors()[0]['msg']}",
                operation,
            ) from e

    async def upload_bundle(
        self,
        bundle_file: Path | str,
        bundle_name: str,
        publish_mode: PublishMode | str,
    ) -> str:
        """Upload a bundle and return the deployment id the portal assigned."""
        operation = "uploading bundle"
        mode = PublishMode.parse(publish_mode)
        path = Path(bundle_file)
        if not path.is_file():
            raise ValidationError(
                f"Artifact file does not exist or is not a file: {path.absolute()}",
                {"artifact_file": str(path)},
            )

        try:
            handle = path.open("rb")
        except OSError as e:
            raise ValidationError(
                f"Artifact file cannot be read: {path.absolute()} ({e.strerror})",
                {"artifact_file": str(path)},
            ) from e

        logger.info(
            "portal.upload_bundle",
            bundle_name=bundle_name,
            file=str(path.absolute()),
            publishing_type=mode.value,
        )
        with handle:
            response = await self._send(
                operation,
                "POST",
                "/upload",
                params={"name": bundle_name, "publishingType": mode.value},
                files={"bundle": (path.name, handle, "application/octet-stream")},
            )

        deployment_id = response.text.strip().strip('"').strip()
        if not deployment_id:
            raise UnexpectedStatusError(
                response.status_code, "Upload response carried no deployment id", operation
            )
        return deployment_id

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus:
        """Fetch the current status snapshot of a deployment."""
        operation = f"checking status of deployment {deployment_id}"
        response = await self._send(operation, "POST", "/status", params={"id": deployment_id})
        payload = self._json(response, operation)
        if isinstance(payload, dict):
            payload.setdefault("deploymentId", deployment_id)
        return self._status(payload, response, operation)

    async def publish_deployment(self, deployment_id: str) -> OperationResult:
        """Ask the portal to publish a validated deployment."""
        response = await self._send(
            f"publishing deployment {deployment_id}",
            "POST",
            f"/deployment/{deployment_id}",
        )
        logger.info("portal.publish_deployment", deployment_id=deployment_id)
        return OperationResult(status_code=response.status_code)

    async def drop_deployment(self, deployment_id: str) -> OperationResult:
        """Remove a deployment from the portal."""
        response = await self._send(
            f"dropping deployment {deployment_id}",
            "DELETE",
            f"/deployment/{deployment_id}",
        )
        logger.info("portal.drop_deployment", deployment_id=deployment_id)
        return OperationResult(status_code=response.status_code)

    async def list_deployments(
        self,
        namespace: str,
        offset: int = 0,
        limit: int = DEFAULT_LIST_LIMIT,
        sort_field: str = "createTimestamp",
        sort_direction: str = "desc",
    ) -> list[DeploymentStatus]:
        """List a namespace's deployments in the requested order."""
        operation = f"listing deployments of {namespace}"
        response = await self._send(
            operation,
            "POST",
            "/deployments/files",
            json={
                "namespace": namespace,
                "offset": offset,
                "limit": limit,
                "sortField": sort_field,
                "sortDirection": sort_direction,
            },
        )
        payload = self._json(response, operation)
        deployments = payload.get("deployments") if isinstance(payload, dict) else payload
        if not isinstance(deployments, list):
            return []
        return [
            self._status(entry, response, operation)
            for entry in deployments
            if isinstance(entry, dict) and entry.get("deploymentId")
        ]

    async def check_published(self, coordinates: Coordinates) -> PublicationStatus:
        """Check whether a GAV is already published."""
        operation = f"checking publication of {coordinates.gav}"
        response = await self._send(
            operation,
            "GET",
            "/published",
            params={
                "namespace": coordinates.namespace,
                "name": coordinates.name,
                "version": coordinates.version,
            },
        )
        payload = self._json(response, operation)
        published = payload.get("published") if isinstance(payload, dict) else None
        return PublicationStatus(
            namespace=coordinates.namespace,
            name=coordinates.name,
            version=coordinates.version,
            published=published if isinstance(published, bool) else None,
        )
