"""FastAPI application entry point.

Main application setup with routing, error mapping and lifecycle management.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tfportal import __version__
from tfportal.api.generate import router as generate_router
from tfportal.api.schemas import ErrorResponse
from tfportal.core.config import Settings, get_settings
from tfportal.core.factory import ComponentFactory
from tfportal.interfaces.template import (
    SynthesisError,
    UnknownVariantError,
)

logger = logging.getLogger(__name__)


def status_for(exc: SynthesisError) -> int:
    """HTTP status for a synthesis failure.

    Unknown variants are caller mistakes; everything else is a server-side
    defect or an unwritable output path.
    """
    if isinstance(exc, UnknownVariantError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Loads and validates the template registry before serving requests.
    """
    factory: ComponentFactory = app.state.factory

    logger.info("Starting Terraform Web Portal...")

    try:
        registry = factory.get_registry()
        logger.info(
            f"Templates ready: {', '.join(f'{p}/{t}' for p, t in registry.keys())}; "
            f"writing to {factory.settings.output_path}"
        )
    except Exception as e:
        logger.error(f"Failed to load template registry: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Terraform Web Portal...")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Terraform Web Portal",
        description="Turns infrastructure form submissions into a Terraform main.tf",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.factory = ComponentFactory(settings)

    app.include_router(generate_router)
    logger.info("Registered generate router")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return {
            "status": "healthy",
            "service": "tf-portal",
            "version": __version__,
        }

    @app.exception_handler(SynthesisError)
    async def synthesis_exception_handler(request: Request, exc: SynthesisError):
        """Map synthesis failures to error responses."""
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"Synthesis error on {request.url.path}: {exc}")
        else:
            logger.warning(f"Rejected submission on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                detail=str(exc),
                error_code=exc.error_code,
            ).model_dump(),
        )

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Run the portal with uvicorn."""
    import uvicorn

    from tfportal.core.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings)
    logger.info(f"Starting uvicorn server on {settings.host}:{settings.port}...")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
