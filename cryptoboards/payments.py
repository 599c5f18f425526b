"""Payment gate: a verified entry-fee transaction moves a participant to ``ready``."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from tortoise import timezone
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from .constants import GameStatus, ParticipantStatus
from .errors import (
    AlreadyPaid,
    InvalidInput,
    InvalidSignature,
    LobbyNotFound,
    NotAcceptingPlayers,
    NotInLobby,
    SignatureAlreadyUsed,
)
from .models import Game, GameParticipant, Player
from .players import clean_wallet
from .settlement import to_lamports
from .solana import SolanaClient
from .state import game_lock

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    ready_count: int
    total_count: int
    entry_fee: Decimal


async def pay(
    lobby_id: str,
    wallet_address: str,
    transaction_signature: Optional[str],
    solana: SolanaClient,
) -> PaymentResult:
    """Verify *transaction_signature* and mark the wallet's seat as paid."""
    signature = (transaction_signature or "").strip()
    if not signature:
        raise InvalidInput("Transaction signature is required")
    wallet = clean_wallet(wallet_address)

    async with game_lock(lobby_id):
        async with in_transaction():
            game = await Game.filter(id=lobby_id).select_for_update().first()
            if game is None:
                raise LobbyNotFound()
            if game.status != GameStatus.WAITING:
                raise NotAcceptingPlayers("Lobby is not accepting payments", actual_status=game.status.value)

            player = await Player.get_or_none(wallet_address=wallet)
            participant = None
            if player is not None:
                participant = await GameParticipant.get_or_none(game=game, player=player)
            if participant is None:
                raise NotInLobby()
            if participant.status == ParticipantStatus.READY:
                raise AlreadyPaid()
            if await GameParticipant.filter(payment_signature=signature).exists():
                raise SignatureAlreadyUsed()

            if not await solana.verify_signature(signature):
                logger.warning(
                    "Rejected entry fee transaction",
                    extra={"game_id": str(game.id), "wallet": wallet, "signature": signature},
                )
                raise InvalidSignature()

            participant.status = ParticipantStatus.READY
            participant.payment_signature = signature
            participant.paid_at = timezone.now()
            try:
                await participant.save(update_fields=["status", "payment_signature", "paid_at"])
            except IntegrityError:
                raise SignatureAlreadyUsed()

            total = await GameParticipant.filter(game=game).count()
            ready = await GameParticipant.filter(game=game, status=ParticipantStatus.READY).count()

    logger.info(
        "Entry fee paid (%d/%d ready)", ready, total,
        extra={"game_id": str(game.id), "wallet": wallet, "signature": signature},
    )
    return PaymentResult(ready_count=ready, total_count=total, entry_fee=to_lamports(game.entry_fee))


__all__ = ["PaymentResult", "pay"]
