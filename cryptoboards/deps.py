from fastapi import Request

from .config import Settings
from .notifications import Notifier
from .solana import SolanaClient

# -----------------------------
# FastAPI dependency helpers
# -----------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_solana(request: Request) -> SolanaClient:
    """Solana collaborator attached to the app by :func:`cryptoboards.app.create_app`."""
    return request.app.state.solana


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


__all__ = ["get_settings", "get_solana", "get_notifier"]
