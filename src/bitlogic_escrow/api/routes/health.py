"""Health check endpoint.

Reports the configured network, the backing store and the remote
environments actions can be routed to. For the SQL store it also runs a
trivial query against the database.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text

from bitlogic_escrow import __version__
from bitlogic_escrow.api.deps import get_app_settings, get_client
from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.config import Settings
from bitlogic_escrow.infrastructure.database.sql_store import SqlEscrowStore
from bitlogic_escrow.logging_config import get_logger
from bitlogic_escrow.schemas.escrow import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its store.",
)
async def health_check(
    client: BitLogic = Depends(get_client),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    store_status = "healthy"
    if isinstance(client.store, SqlEscrowStore):
        try:
            async with client.store.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            store_status = f"unhealthy: {exc}"
            logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if store_status == "healthy" else "degraded",
        version=__version__,
        network=settings.network,
        store=store_status,
        environments=client.actions.environments,
    )
