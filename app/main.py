"""
CareBoard - FastAPI Application

Backend for the medical records web client. Analyzes uploaded report
images with a generative model, stores the resulting treatment plan, and
turns it into a Kanban board of treatment steps.

IMPORTANT: Generated plans are informational, not a diagnosis.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.routes import router
from app.api.middleware import (
    IdentityMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_rate_limiting
)
from app.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "Starting CareBoard",
        version=settings.app_version,
        debug=settings.debug
    )

    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    logger.info("Application ready")

    yield

    logger.info("Shutting down CareBoard")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## CareBoard - Medical Records and Treatment Boards

Upload a medical report image, receive a patient-readable treatment plan,
and follow it as a Kanban board.

### Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/session/redirect` | POST | Decide login / onboarding / profile |
| `/onboarding` | POST | Create the user profile |
| `/profile` | GET | Current user profile |
| `/medical-records` | GET, POST | List or create record folders |
| `/medical-records/{id}/upload` | POST | Analyze a report image |
| `/medical-records/{id}/treatment-plan` | POST | Generate the treatment board |
| `/screening-schedules` | GET, POST | Render a board |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup middleware (last added is outermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(IdentityMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_rate_limiting(app)

    app.include_router(router, tags=["API"])

    return app


app = create_app()


# Run with: uvicorn app.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
