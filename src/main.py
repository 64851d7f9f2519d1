"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware, request_validation_handler
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.routes import analytics, health, notifications, orders, realtime
from src.core.config import get_settings
from src.core.paypal import init_paypal_client, shutdown_paypal_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    # PayPal client; the access token is fetched on first use
    await init_paypal_client()
    logger.info("PayPal client initialized (sandbox=%s)", settings.is_paypal_sandbox)

    yield
    # Shutdown
    await shutdown_paypal_client()
    logger.info("PayPal client shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Storefront Orders API",
        description="Order lifecycle, PayPal settlement and notifications for the storefront",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (renders APIError and unexpected errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Body/query validation failures are client errors (400)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Mount health routes and the notification socket at root level
    app.include_router(health.router)
    app.include_router(realtime.router)

    api_router = APIRouter(prefix="/api")

    # Order and settlement routes
    api_router.include_router(orders.router)

    # Notification routes
    api_router.include_router(notifications.router)

    # Admin dashboard analytics
    api_router.include_router(analytics.router)

    app.include_router(api_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
