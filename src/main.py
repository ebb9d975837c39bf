"""Main FastAPI application entry point."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.dependencies.services import get_invitation_service
from api.exception_handlers import setup_exception_handlers
from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.request_id import RequestIDMiddleware
from api.middleware.security import SecurityHeadersMiddleware
from api.routes.health import SERVICE_VERSION
from api.routes.health import router as health_router
from api.v1 import router as v1_router
from core.config import settings
from core.exceptions import StoreUnavailableError
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler

logger = structlog.get_logger()

# Initialize structured logging
setup_logging()


async def invitation_sweep_loop(interval_seconds: float) -> None:
    """Periodically mark lapsed pending invitations as expired.

    Reads already treat lapsed invitations as expired; the sweep only keeps
    stored statuses tidy.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            expired = await get_invitation_service().expire_stale()
            if expired > 0:
                logger.info("invitation_sweep_completed", expired_count=expired)
        except StoreUnavailableError:
            logger.warning("invitation_sweep_skipped", reason="store_unavailable")
        except Exception:
            logger.exception("invitation_sweep_failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown tasks."""
    sweep_task = asyncio.create_task(
        invitation_sweep_loop(settings.invitation_sweep_interval_seconds)
    )
    logger.info("application_started", environment=settings.app_env)
    yield
    sweep_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweep_task


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        title=settings.app_name,
        description=(
            "## Identity & Access Control\n\n"
            "Token issuance and rotation, brute-force lockout, and "
            "workspace role-based access control.\n\n"
            "### Authentication\n"
            "Obtain a token pair from `/api/v1/auth/login`. Send the access "
            "token in the Authorization header:\n"
            "```\nAuthorization: Bearer <access_token>\n```\n"
            "Refresh tokens are single use: every refresh returns a new one, "
            "and presenting a used refresh token ends the whole session.\n\n"
            "### Rate Limits\n"
            "- Credential endpoints: 5 requests/minute\n"
            "- GET endpoints: 30 requests/minute\n"
            "- POST/PATCH/DELETE: 10 requests/minute"
        ),
        version=SERVICE_VERSION,
        debug=settings.debug,
        license_info={
            "name": "MIT",
        },
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints",
            },
            {
                "name": "auth",
                "description": "Sign-up, login, token refresh and logout",
            },
            {
                "name": "workspaces",
                "description": "Workspaces, members, roles and permission checks",
            },
            {
                "name": "invitations",
                "description": "Workspace invitation lifecycle",
            },
        ],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Security & tracking middleware (LIFO order - last added = outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # GZip compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
