"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup: if a setting is malformed, the app fails fast with a clear
error message.

Usage:
    from bitlogic_escrow.config import get_settings
    settings = get_settings()
    print(settings.default_timeout_seconds)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for BitLogic."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    network: Literal["mainnet", "testnet"] = "testnet"

    # --- Storage ---
    storage_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite+aiosqlite:///./bitlogic.db"
    db_echo_sql: bool = False

    # --- Escrow Defaults ---
    default_timeout_seconds: int = 604800  # 7 days
    amount_decimals: int = 8  # 1 unit = 10^-8 (satoshi)
    simulate_ledger: bool = True

    # --- Proof Service ---
    proof_endpoint: str = "https://api.grailpro.io"
    proof_api_key: str = ""
    proof_circuit_version: str = "1.0.0"
    verification_cost_estimate: int = 250000

    # --- Remote Environments ---
    # An empty URL means the environment is not configured.
    ethereum_rpc_url: str = "https://sepolia.infura.io/v3/YOUR_KEY"
    polygon_rpc_url: str = ""
    arbitrum_rpc_url: str = ""
    base_rpc_url: str = ""
    action_confirmation_delay_ms: int = 100

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def environment_endpoints(self) -> dict[str, str]:
        """Configured remote environments, keyed by environment identifier."""
        endpoints = {
            "ethereum": self.ethereum_rpc_url,
            "polygon": self.polygon_rpc_url,
            "arbitrum": self.arbitrum_rpc_url,
            "base": self.base_rpc_url,
        }
        return {env: url for env, url in endpoints.items() if url}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
