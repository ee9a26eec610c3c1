"""Main router for API v1."""

from fastapi import APIRouter

from central_publisher.api.v1 import deployments, health, publications

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(deployments.router, prefix="/deployments", tags=["deployments"])
router.include_router(publications.router, prefix="/publications", tags=["publications"])
