"""FastAPI application entry point for BitLogic.

Lifecycle:
    1. Startup: Initialize logging, build the BitLogic facade, prepare its store.
    2. Running: Serve the REST API at /api/v1/* on a single Uvicorn process.
    3. Shutdown: Close the store (disposes the database engine for the SQL store).

Run with:
    uvicorn bitlogic_escrow.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from bitlogic_escrow import __version__
from bitlogic_escrow.client import build_client
from bitlogic_escrow.config import get_settings
from bitlogic_escrow.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from bitlogic_escrow.client import BitLogic


def create_app(client: BitLogic | None = None) -> FastAPI:
    """Application factory: creates and configures the FastAPI app.

    Args:
        client: Pre-built facade (tests inject one). Built from settings at
                startup when omitted.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(
            log_level=settings.app_log_level,
            json_logs=not settings.is_development,
        )
        logger = get_logger(__name__)
        logger.info("app.starting", env=settings.app_env, network=settings.network)

        app.state.client = client or build_client(settings)
        await app.state.client.startup()
        logger.info("app.started", host=settings.app_host, port=settings.app_port)

        yield

        logger.info("app.shutting_down")
        await app.state.client.close()
        logger.info("app.stopped")

    app = FastAPI(
        title="BitLogic",
        description=(
            "Conditional escrow: lock funds under release conditions, "
            "release against verified proofs, trigger cross-chain actions."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from bitlogic_escrow.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from bitlogic_escrow.api.routes.actions import router as actions_router
    from bitlogic_escrow.api.routes.escrows import router as escrows_router
    from bitlogic_escrow.api.routes.health import router as health_router
    from bitlogic_escrow.api.routes.proofs import router as proofs_router

    app.include_router(health_router)
    app.include_router(escrows_router)
    app.include_router(proofs_router)
    app.include_router(actions_router)

    return app


# The app instance used by Uvicorn
app = create_app()
