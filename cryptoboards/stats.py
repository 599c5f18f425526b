"""Read side of player statistics: summaries, personal history and the global feed."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Tuple

from .constants import GameResult
from .models import GameStat, PlayerStats
from .players import get_player
from .schemas import FeedEntry, GameTypeStats, HistoryEntry, PlayerStatsResponse
from .settlement import to_lamports

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_FEED_LIMIT = 20


def current_streak(results: List[GameResult]) -> Tuple[int, str]:
    """Length and kind of the run at the head of *results* (newest first)."""
    if not results:
        return 0, "none"
    head = results[0]
    length = 0
    for result in results:
        if result != head:
            break
        length += 1
    return length, head.value


async def player_summary(wallet_address: str) -> PlayerStatsResponse:
    player = await get_player(wallet_address)
    rows = await GameStat.filter(player=player).order_by("-created_at")

    wins = losses = 0
    winnings = losses_amount = Decimal("0")
    by_type: Dict[str, GameTypeStats] = {}
    for row in rows:
        amount = to_lamports(row.amount)
        bucket = by_type.setdefault(row.game_type.value, GameTypeStats())
        bucket.total += 1
        if row.result == GameResult.WIN:
            wins += 1
            winnings += amount
            bucket.wins += 1
            bucket.winnings += amount
        else:
            losses += 1
            losses_amount += abs(amount)
            bucket.losses += 1
            bucket.loss_amount += abs(amount)

    streak, streak_type = current_streak([row.result for row in rows])
    rollup = await PlayerStats.get_or_none(player=player)
    total = wins + losses

    return PlayerStatsResponse(
        wallet_address=player.wallet_address,
        username=player.username,
        total_games=total,
        wins=wins,
        losses=losses,
        win_rate=round(wins / total * 100, 2) if total else 0.0,
        total_winnings=to_lamports(winnings),
        total_losses=to_lamports(losses_amount),
        net=to_lamports(winnings - losses_amount),
        current_streak=streak,
        streak_type=streak_type,
        best_win_streak=rollup.best_win_streak if rollup else 0,
        by_game_type=by_type,
    )


async def player_history(wallet_address: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[HistoryEntry]:
    player = await get_player(wallet_address)
    rows = (
        await GameStat.filter(player=player)
        .order_by("-created_at")
        .limit(limit)
        .prefetch_related("opponent")
    )
    return [
        HistoryEntry(
            game_id=str(row.game_id),
            game_type=row.game_type,
            result=row.result.value,
            amount=to_lamports(row.amount),
            opponent_username=row.opponent.username if row.opponent else None,
            opponent_wallet=row.opponent.wallet_address if row.opponent else None,
            created_at=row.created_at,
        )
        for row in rows
    ]


async def recent_results(limit: int = DEFAULT_FEED_LIMIT) -> List[FeedEntry]:
    """Most recent wins across all players."""
    rows = (
        await GameStat.filter(result=GameResult.WIN)
        .order_by("-created_at")
        .limit(limit)
        .prefetch_related("player")
    )
    return [
        FeedEntry(
            game_id=str(row.game_id),
            game_type=row.game_type,
            winner_username=row.player.username,
            winner_wallet=row.player.wallet_address,
            amount=to_lamports(row.amount),
            created_at=row.created_at,
        )
        for row in rows
    ]


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_FEED_LIMIT",
    "current_streak",
    "player_summary",
    "player_history",
    "recent_results",
]
