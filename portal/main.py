"""Student portal backend: FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.api.v1.router import api_router
from portal.core.config import settings
from portal.core.database import engine, init_db
from portal.core.exceptions import AppException
from portal.core.scheduler import start_scheduler, stop_scheduler
from portal.middleware.logging import RequestLoggingMiddleware
from portal.services.remote_api import create_http_client

QUIET_LOGGERS = ("sqlalchemy", "httpx", "httpcore", "python_multipart", "apscheduler")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session tables, the remote API client and the purge job."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    init_db()
    owns_client = app.state.http_client is None
    if owns_client:
        app.state.http_client = create_http_client()
    start_scheduler()
    try:
        yield
    finally:
        logger.info("Shutting down application")
        stop_scheduler()
        if owns_client:
            await app.state.http_client.aclose()
            app.state.http_client = None
        engine.dispose()


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = AppException(422, "VALIDATION_ERROR", "Request validation failed")
    error.details = {"errors": jsonable_encoder(exc.errors())}
    return JSONResponse(status_code=422, content=error.body())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    error = AppException(500, "INTERNAL_ERROR", "An internal server error occurred")
    return JSONResponse(status_code=500, content=error.body())


def create_application(http_client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the application.

    ``http_client`` replaces the remote API client the lifespan would
    otherwise create; tests pass one backed by a mock transport.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Backend for the student portal screens: login and MFA, profile, "
            "biographical and banking records, and supporting documents. "
            "Screens needing a signed-in student answer 401 with "
            '`details.redirect = "/login"` when the session is missing or corrupt.'
        ),
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.http_client = http_client

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("portal.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
