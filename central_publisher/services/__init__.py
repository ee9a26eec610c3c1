"""External service clients for central-publisher."""

from central_publisher.services.portal_client import CentralPortalClient, raise_for_status

__all__ = [
    "CentralPortalClient",
    "raise_for_status",
]
