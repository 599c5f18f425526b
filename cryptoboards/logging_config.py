"""Logging setup shared by the API process and the test-suite."""
from __future__ import annotations

import logging
from typing import Any

_CONTEXT_KEYS = ("game_id", "wallet", "signature")


def short_wallet(value: Any) -> str:
    """Trim a wallet address or signature for log output."""
    text = str(value)
    return f"{text[:8]}..." if len(text) > 12 else text


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends known ``extra`` context keys."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = []
        for key in _CONTEXT_KEYS:
            if key not in record.__dict__:
                continue
            value = record.__dict__[key]
            if key in ("wallet", "signature"):
                value = short_wallet(value)
            context.append(f"{key}={value}")
        if context:
            return f"{base} [{' '.join(context)}]"
        return base


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the ``cryptoboards`` logger."""
    package_logger = logging.getLogger("cryptoboards")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            ContextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


__all__ = ["ContextFormatter", "configure_logging", "short_wallet"]
