"""
ASGI entry point of the renewal API.

The payment gateway client and the realtime hub live on ``app.state``;
they are created by the startup hook and reached through core.deps.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from renewal.core.config import settings
from renewal.core.exceptions import AppException
from renewal.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)
from renewal.core.logging_config import configure_logging
from renewal.middleware import RequestContextMiddleware
from renewal.api import realtime, subscriptions
from renewal.services.mercadopago_client import build_gateway_client
from renewal.services.realtime import RealtimeHub

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Build the renewal API.

    Routers are mounted under API_PREFIX; /health stays at the root for
    the load balancer.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Pix subscription renewal API",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Request ID for every diagnostic log line
    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Liveness probe; no auth, no database."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
        }

    @app.on_event("startup")
    async def startup_event():
        """
        Refuses to start without MERCADOPAGO_ACCESS_TOKEN: build_gateway_client
        raises ConfigurationError.
        """
        configure_logging(settings)
        app.state.gateway = build_gateway_client(settings)
        app.state.realtime = RealtimeHub()
        logger.info("Payment gateway client and realtime hub ready")

    @app.on_event("shutdown")
    async def shutdown_event():
        gateway = getattr(app.state, "gateway", None)
        if gateway is not None:
            await gateway.aclose()

    app.include_router(subscriptions.router, prefix=settings.API_PREFIX)
    app.include_router(realtime.router, prefix=settings.API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "renewal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
