"""
FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from scalar_fastapi import get_scalar_api_reference
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from altiora.access.access_errors import AccessControlError, access_control_exception_handler
from altiora.access.access_models import AccessControlOptions
from altiora.access.access_routers import router as access_router
from altiora.access.notifications import WebhookStatusNotifier
from altiora.auth.auth_routers import router as auth_router
from altiora.core.db_manager import close_database, init_database
from altiora.core.environment import env_config, get_access_control_settings, get_status_webhook_url
from altiora.core.logger import setup_logging
from altiora.core.rate_limit import limiter
from altiora.users.user_routers import router as user_router


def build_access_options() -> AccessControlOptions:
    """Build access-control options from the environment."""
    webhook_url = get_status_webhook_url()
    return AccessControlOptions(
        **get_access_control_settings(),
        send_status_notification=WebhookStatusNotifier(webhook_url) if webhook_url else None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    await init_database()
    yield
    # Shutdown
    await close_database()


def create_app(access_options: Optional[AccessControlOptions] = None) -> FastAPI:
    """
    Build the application.

    Args:
        access_options: Access-control options; read from the environment when None
    """
    setup_logging()

    app = FastAPI(
        title="Altiora Access API",
        description="Whitelist / waitlist access control with gated registration",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.access_options = access_options or build_access_options()

    # Rate limiter shared by every access-list endpoint
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(AccessControlError, access_control_exception_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=env_config.get("cors_origins", ["*"]),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(access_router)
    app.include_router(auth_router)
    app.include_router(user_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "environment": env_config.environment.value}

    # Scalar API Documentation
    @app.get("/scalar", include_in_schema=False)
    async def scalar_html():
        """
        Scalar API Documentation endpoint.
        Access at: http://localhost:8000/scalar
        """
        return get_scalar_api_reference(
            openapi_url=app.openapi_url,
            title=app.title + " - Scalar API Documentation",
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "altiora.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
