"""Environment-driven runtime settings."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .constants import DEFAULT_STALE_LOBBY_MINUTES

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_PLATFORM_WALLET = "CHyQpdkGgoQbQDdm9vgjc3NpiBQ9wQ8Fu8LHQaPwoNdN"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite://cryptoboards.db"
    solana_rpc_url: str = DEFAULT_RPC_URL
    platform_wallet: str = DEFAULT_PLATFORM_WALLET
    # Accept the simulated signatures produced by the demo wallet flow.
    solana_simulate: bool = True
    solana_rpc_timeout: float = 10.0
    app_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    stale_lobby_minutes: int = DEFAULT_STALE_LOBBY_MINUTES
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    generate_schemas: bool = True


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from *environ* (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    origins = [o.strip() for o in env.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        database_url=env.get("CRYPTOBOARDS_DATABASE_URL", Settings.database_url),
        solana_rpc_url=env.get("SOLANA_RPC_URL", DEFAULT_RPC_URL),
        platform_wallet=env.get("PLATFORM_WALLET_ADDRESS", DEFAULT_PLATFORM_WALLET),
        solana_simulate=_flag(env.get("SOLANA_SIMULATE"), True),
        solana_rpc_timeout=float(env.get("SOLANA_RPC_TIMEOUT", "10")),
        app_url=env.get("APP_URL", Settings.app_url).rstrip("/"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        stale_lobby_minutes=int(env.get("STALE_LOBBY_MINUTES", str(DEFAULT_STALE_LOBBY_MINUTES))),
        cors_origins=origins or ["*"],
        generate_schemas=_flag(env.get("GENERATE_SCHEMAS"), True),
    )


__all__ = ["Settings", "load_settings"]
