# StaffDesk - Main Application
# FastAPI application factory and startup

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from staffdesk import __version__
from staffdesk.config import get_settings
from staffdesk.database import check_connection
from staffdesk.services.errors import (
    WorkflowError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailedError,
    InsufficientBalanceError,
    ConflictError,
)


settings = get_settings()

logger = logging.getLogger(__name__)


# Workflow error -> HTTP status
ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    InsufficientBalanceError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
}


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup, applied once at start-up."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    body = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, ValidationFailedError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, InsufficientBalanceError):
        body["remaining"] = str(exc.remaining)
        body["requested"] = str(exc.requested)
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events.

    Runs on startup and shutdown.
    """
    configure_logging(settings.log_level)
    logger.info("Starting %s %s", settings.app_name, __version__)

    try:
        check_connection()
        logger.info("Database connection: OK")
    except Exception:
        logger.exception("Database connection: FAILED")
        if not settings.debug:
            raise

    yield

    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        description="HR request and approval workflow",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_exception_handler(WorkflowError, workflow_error_handler)

    from staffdesk.routes import request_types, requests, timesheets, time_off
    app.include_router(request_types.router)
    app.include_router(requests.router)
    app.include_router(timesheets.router)
    app.include_router(time_off.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint for monitoring."""
        try:
            check_connection()
            db_status = "healthy"
        except Exception as e:
            logger.warning("Health check database failure: %s", e)
            db_status = "unhealthy"

        return {
            "status": "ok",
            "app": settings.app_name,
            "version": __version__,
            "database": db_status,
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "staffdesk.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.debug,
    )
