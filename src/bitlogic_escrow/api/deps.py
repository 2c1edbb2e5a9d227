"""FastAPI dependency injection providers.

The BitLogic facade is built once in the application lifespan and stored on
``app.state``; route handlers receive it through Depends().
"""

from __future__ import annotations

from fastapi import Request

from bitlogic_escrow.client import BitLogic
from bitlogic_escrow.config import Settings, get_settings


def get_client(request: Request) -> BitLogic:
    """Provide the application's BitLogic facade."""
    return request.app.state.client


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
