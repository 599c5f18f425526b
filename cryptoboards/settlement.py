"""Settlement: completing games, paying winners, refunding entry fees.

All amounts are :class:`~decimal.Decimal` quantized to lamports, so the
split ``winner_amount + platform_fee == total_pot`` holds exactly.

``complete`` and ``payout`` are separate calls but share one per-game lock,
a status check-and-set and the unique ``game_id`` key of the payout ledger,
so neither can settle the same game twice.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from tortoise import timezone
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from .config import DEFAULT_PLATFORM_WALLET
from .constants import LAMPORT, PLATFORM_FEE_RATE, GameResult, GameStatus, ParticipantStatus
from .errors import (
    AlreadyCompleted,
    GameNotFound,
    GameNotInProgress,
    InvalidInput,
    NoWinnerDeclared,
    PayoutFailed,
    RefundFailed,
)
from .models import Game, GameParticipant, GamePayout, GameRefund, GameStat, Player, PlayerStats
from .notifications import NotificationKind, Notifier, notify_player
from .realtime import broadcast_game
from .solana import SolanaClient
from .state import game_lock

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, str]


def to_lamports(amount: Amount) -> Decimal:
    """Quantize *amount* to SOL's 9 fractional digits."""
    return Decimal(str(amount)).quantize(LAMPORT, rounding=ROUND_HALF_UP)


@dataclass
class Split:
    total_pot: Decimal
    platform_fee: Decimal
    winner_amount: Decimal


def compute_split(entry_fee: Amount, players: int = 2) -> Split:
    total_pot = to_lamports(to_lamports(entry_fee) * players)
    platform_fee = to_lamports(total_pot * PLATFORM_FEE_RATE)
    return Split(total_pot=total_pot, platform_fee=platform_fee, winner_amount=total_pot - platform_fee)


@dataclass
class SettlementResult:
    game_id: str
    winner: str
    loser: str
    total_pot: Decimal
    platform_fee: Decimal
    winner_amount: Decimal


@dataclass
class PayoutResult:
    game_id: str
    winner_wallet: str
    total_pot: Decimal
    platform_fee: Decimal
    amount: Decimal
    transaction_signature: str
    fee_wallet: str
    already_processed: bool = False

    @classmethod
    def from_record(cls, record: GamePayout, already_processed: bool) -> "PayoutResult":
        return cls(
            game_id=str(record.game_id),
            winner_wallet=record.winner_wallet,
            total_pot=to_lamports(record.total_pot),
            platform_fee=to_lamports(record.platform_fee),
            amount=to_lamports(record.amount),
            transaction_signature=record.transaction_signature,
            fee_wallet=record.fee_wallet,
            already_processed=already_processed,
        )


# ---------------------------------------------------------------------------
# Player statistics
# ---------------------------------------------------------------------------

async def _apply_result(player: Player, won: bool, amount: Decimal) -> PlayerStats:
    created, _ = await PlayerStats.get_or_create(player=player)
    stats = await PlayerStats.filter(id=created.id).select_for_update().first()

    stats.games_played += 1
    stats.total_winnings = to_lamports(Decimal(str(stats.total_winnings)) + amount)
    if won:
        stats.games_won += 1
        stats.current_streak = stats.current_streak + 1 if stats.current_streak > 0 else 1
        stats.best_win_streak = max(stats.best_win_streak, stats.current_streak)
    else:
        stats.total_losses = to_lamports(Decimal(str(stats.total_losses)) - amount)
        stats.current_streak = stats.current_streak - 1 if stats.current_streak < 0 else -1
    await stats.save()
    return stats


async def record_results(game: Game, winner: Player, loser: Player, split: Split) -> None:
    """Write one GameStat per player and roll both into PlayerStats."""
    loss = -to_lamports(game.entry_fee)
    await GameStat.create(
        game=game, player=winner, opponent=loser, game_type=game.game_type,
        result=GameResult.WIN, amount=split.winner_amount,
    )
    await GameStat.create(
        game=game, player=loser, opponent=winner, game_type=game.game_type,
        result=GameResult.LOSS, amount=loss,
    )
    await _apply_result(winner, won=True, amount=split.winner_amount)
    await _apply_result(loser, won=False, amount=loss)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

async def complete(
    game_id: str,
    winner_wallet: Optional[str],
    loser_wallet: Optional[str],
    notifier: Optional[Notifier] = None,
    app_url: str = "",
) -> SettlementResult:
    """Declare the outcome of a two-player game and record its statistics.

    The status flip is committed before statistics are written; a failure
    while writing statistics is logged and the game stays completed.
    """
    winner_wallet = (winner_wallet or "").strip()
    loser_wallet = (loser_wallet or "").strip()
    if not winner_wallet or not loser_wallet:
        raise InvalidInput("Winner and loser wallet addresses are required")
    if winner_wallet == loser_wallet:
        raise InvalidInput("Winner and loser must be different players")

    async with game_lock(game_id):
        async with in_transaction():
            game = await Game.filter(id=game_id).select_for_update().first()
            if game is None:
                raise GameNotFound()
            if game.status == GameStatus.COMPLETED:
                raise AlreadyCompleted()
            if game.status != GameStatus.IN_PROGRESS:
                raise GameNotInProgress(actual_status=game.status.value)

            participants = await GameParticipant.filter(game=game).prefetch_related("player")
            by_wallet = {p.player.wallet_address: p for p in participants}
            if winner_wallet not in by_wallet or loser_wallet not in by_wallet:
                raise InvalidInput("Winner and loser must both be participants of this game")

            flipped = await (
                Game.filter(id=game.id, status=GameStatus.IN_PROGRESS)
                .update(status=GameStatus.COMPLETED, ended_at=timezone.now())
            )
            if not flipped:
                raise AlreadyCompleted()

            for participant in participants:
                participant.status = ParticipantStatus.COMPLETED
                participant.is_winner = participant.player.wallet_address == winner_wallet
                await participant.save(update_fields=["status", "is_winner"])

        split = compute_split(game.entry_fee)
        winner = by_wallet[winner_wallet].player
        loser = by_wallet[loser_wallet].player
        try:
            async with in_transaction():
                await record_results(game, winner, loser, split)
        except Exception:
            logger.exception("Failed to update game stats", extra={"game_id": str(game.id)})

    logger.info(
        "Game completed: pot %s, winner gets %s, platform fee %s",
        split.total_pot, split.winner_amount, split.platform_fee,
        extra={"game_id": str(game.id), "wallet": winner_wallet},
    )

    if notifier is not None:
        for participant in participants:
            is_winner = participant.player.wallet_address == winner_wallet
            await notify_player(
                notifier,
                participant.player,
                NotificationKind.GAME_COMPLETED,
                {
                    "game_type": game.game_type.value,
                    "is_winner": is_winner,
                    "winner_amount": split.winner_amount if is_winner else None,
                    "app_url": app_url,
                },
            )

    await broadcast_game(game.id, {
        "type": "completed",
        "game_id": str(game.id),
        "winner": winner_wallet,
        "loser": loser_wallet,
    })

    return SettlementResult(
        game_id=str(game.id),
        winner=winner_wallet,
        loser=loser_wallet,
        total_pot=split.total_pot,
        platform_fee=split.platform_fee,
        winner_amount=split.winner_amount,
    )


# ---------------------------------------------------------------------------
# Ledger: payouts & refunds
# ---------------------------------------------------------------------------

async def payout(
    game_id: str,
    solana: SolanaClient,
    platform_wallet: str = DEFAULT_PLATFORM_WALLET,
) -> PayoutResult:
    """Transfer the pot minus the platform fee to the declared winner, once.

    The fee stays in escrow; the ledger row records *platform_wallet* as the
    account it is owed to.
    """
    async with game_lock(game_id):
        game = await Game.get_or_none(id=game_id)
        if game is None:
            raise GameNotFound()

        existing = await GamePayout.get_or_none(game_id=game.id)
        if existing is not None:
            return PayoutResult.from_record(existing, already_processed=True)

        if game.status != GameStatus.COMPLETED:
            raise NoWinnerDeclared()
        winner = await GameParticipant.filter(game=game, is_winner=True).prefetch_related("player").first()
        if winner is None:
            raise NoWinnerDeclared()

        player_count = await GameParticipant.filter(game=game).count()
        split = compute_split(game.entry_fee, player_count)
        wallet = winner.player.wallet_address

        transfer = await solana.transfer(wallet, split.winner_amount, memo=f"payout_{game.id}")
        if not transfer.success or not transfer.signature:
            raise PayoutFailed(reason=transfer.error or "unknown error")

        try:
            record = await GamePayout.create(
                game_id=game.id,
                winner_wallet=wallet,
                total_pot=split.total_pot,
                platform_fee=split.platform_fee,
                amount=split.winner_amount,
                transaction_signature=transfer.signature,
                fee_wallet=platform_wallet,
            )
        except IntegrityError:
            record = await GamePayout.get(game_id=game.id)
            return PayoutResult.from_record(record, already_processed=True)

    logger.info(
        "Winner payout of %s SOL recorded, fee %s owed to %s",
        split.winner_amount, split.platform_fee, platform_wallet,
        extra={"game_id": str(game.id), "wallet": wallet, "signature": transfer.signature},
    )
    return PayoutResult.from_record(record, already_processed=False)


async def refund(game_id: object, wallet_address: str, amount: Amount, solana: SolanaClient) -> GameRefund:
    """Return an entry fee to *wallet_address*; repeated calls reuse the first refund."""
    existing = await GameRefund.get_or_none(game_id=game_id, wallet_address=wallet_address)
    if existing is not None:
        return existing

    value = to_lamports(amount)
    transfer = await solana.transfer(wallet_address, value, memo=f"refund_{game_id}")
    if not transfer.success or not transfer.signature:
        raise RefundFailed(reason=transfer.error or "unknown error")

    record = await GameRefund.create(
        game_id=game_id,
        wallet_address=wallet_address,
        amount=value,
        transaction_signature=transfer.signature,
    )
    logger.info(
        "Refunded %s SOL", value,
        extra={"game_id": str(game_id), "wallet": wallet_address, "signature": transfer.signature},
    )
    return record


__all__ = [
    "to_lamports",
    "Split",
    "compute_split",
    "SettlementResult",
    "PayoutResult",
    "record_results",
    "complete",
    "payout",
    "refund",
]
