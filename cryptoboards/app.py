from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tortoise.contrib.fastapi import register_tortoise

from .config import Settings, load_settings
from .errors import BoardsError, InvalidInput
from .logging_config import configure_logging
from .notifications import LoggingNotifier, Notifier
from .routers import chat as chat_router
from .routers import games as games_router
from .routers import lobbies as lobbies_router
from .routers import players as players_router
from .routers import websockets as ws_router
from .solana import SolanaClient

logger = logging.getLogger(__name__)

MODELS = ["cryptoboards.models"]


# -----------------------------
# Error handlers
# -----------------------------

async def _boards_error_handler(request: Request, exc: BoardsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    body = {"error": InvalidInput.default_message, "code": "InvalidInput", "details": details}
    return JSONResponse(status_code=InvalidInput.status_code, content=body)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "Internal"})


# -----------------------------
# FastAPI app factory
# -----------------------------

def create_app(
    settings: Optional[Settings] = None,
    solana: Optional[SolanaClient] = None,
    notifier: Optional[Notifier] = None,
    register_db: bool = True,
) -> FastAPI:
    """Build the API.  Collaborators default to ones derived from *settings*."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="CryptoBoards API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.solana = solana or SolanaClient(
        settings.solana_rpc_url,
        simulate=settings.solana_simulate,
        timeout=settings.solana_rpc_timeout,
    )
    app.state.notifier = notifier or LoggingNotifier()

    app.add_exception_handler(BoardsError, _boards_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(players_router.router)
    app.include_router(lobbies_router.router)
    app.include_router(games_router.router)
    app.include_router(chat_router.router)
    app.include_router(ws_router.router)

    if register_db:
        register_tortoise(
            app,
            db_url=settings.database_url,
            modules={"models": MODELS},
            generate_schemas=settings.generate_schemas,
            add_exception_handlers=False,
        )
    return app


app = create_app()

__all__ = ["MODELS", "create_app", "app"]
