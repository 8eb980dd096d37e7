from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hostel_app.api.v1.router import router as api_v1_router
from hostel_app.config.settings import Settings, get_settings
from hostel_app.core.error_handlers import register_exception_handlers
from hostel_app.core.logging import get_logger, setup_logging
from hostel_app.core.middleware import register_middlewares
from hostel_app.db.init_db import init_db
from hostel_app.db.session import build_engine, build_session_factory
from hostel_app.services.payment.payment_gateway import RazorpayGateway
from hostel_app.utils.email import Mailer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the gateway client and the connection pool on shutdown."""
    yield
    app.state.gateway.close()
    app.state.engine.dispose()
    logger.info("Application shut down")


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[RazorpayGateway] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Builds the process-wide collaborators (engine, gateway, mailer) once
      from Settings and keeps them on ``app.state``.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under /api/v1.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.gateway = gateway or RazorpayGateway.from_settings(settings)
    app.state.mailer = mailer or Mailer.from_settings(settings)

    if not settings.is_production():
        # Dev/test only; production schemas are migrated
        init_db(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID, timing, security headers, error logging
    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    logger.info(
        "Application created",
        extra={"environment": settings.ENVIRONMENT, "api_prefix": settings.API_V1_STR},
    )
    return app


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(create_app(_settings), host=_settings.HOST, port=_settings.PORT)
