"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from central_publisher import __version__
from central_publisher.api.middleware import RequestContextMiddleware
from central_publisher.api.v1.router import router as v1_router
from central_publisher.config import settings
from central_publisher.core.exceptions import PublisherError, error_code
from central_publisher.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    configure_logging()
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
        portal_url=settings.central_api_url,
    )

    yield

    logger.info("application.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Central Publisher API",
        description="Uploads bundles to the Central Portal and drives deployments "
        "through validation and publishing",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(PublisherError)
    async def publisher_error_handler(
        request: Request, exc: PublisherError
    ) -> JSONResponse:
        """Render classified failures with the id, state and error block."""
        logger.warning(
            "request.failed",
            code=error_code(exc),
            error=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "error": {
                    "code": error_code(exc),
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

        content = {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": str(exc) if settings.is_development else "An unexpected error occurred",
            }
        }
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    app.include_router(v1_router)

    return app


# Create app instance
app = create_app()


def serve(host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "central_publisher.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    serve()
