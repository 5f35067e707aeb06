"""
FastAPI application entry point.

Sets up the app, lifespan (DB connect/disconnect, Firebase Admin), CORS,
logging, error rendering, and includes API routers.

All I/O is async: MongoDB through Motor, Firebase Admin calls in worker
threads. Requests share no mutable state beyond those clients.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from gratias.api import admin, users
from gratias.config import get_settings
from gratias.database import close_mongo_connection, connect_to_mongo, ping_database
from gratias.errors import ErrorCode, ServiceError, create_error_response
from gratias.services.identity import init_firebase

# Configure logging - single place for log format and level
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: connect to MongoDB and Firebase at start,
    disconnect from MongoDB at end.
    """
    settings = get_settings()
    await connect_to_mongo()
    init_firebase(settings)
    if not settings.google_application_credentials:
        logger.warning(
            "GOOGLE_APPLICATION_CREDENTIALS is not set; using Application Default Credentials."
        )
    yield
    await close_mongo_connection()


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=create_error_response(exc.code, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same error shape as service failures."""
    errors = exc.errors()
    details = None
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        details = f"{field}: {first.get('msg')}" if field else first.get("msg")
    logger.info("Rejected request body on %s: %s", request.url.path, details)
    return JSONResponse(
        status_code=400,
        content=create_error_response(ErrorCode.INVALID_INPUT, details),
    )


def create_application() -> FastAPI:
    """Factory for the FastAPI app. Keeps main.py clean and testable."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Sites, API keys and domains for authenticated users.",
        version="1.0.0",
        lifespan=lifespan,
    )

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a literal "*" origin
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(users.router, prefix="/user", tags=["user"])
    if not settings.is_production:
        app.include_router(admin.router, prefix="/admin", tags=["admin"])

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return f"Welcome to the {settings.app_name}!"

    @app.get("/health", summary="Health check")
    async def health() -> dict:
        connected = await ping_database()
        return {
            "status": "ok",
            "database": {
                "status": "connected" if connected else "disconnected",
                "name": settings.mongodb_database,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_application()
