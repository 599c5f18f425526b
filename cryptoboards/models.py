import uuid
from decimal import Decimal

from tortoise import fields
from tortoise.models import Model

from .constants import FriendshipStatus, GameResult, GameStatus, GameType, ParticipantStatus


class Player(Model):
    """Wallet-identified player account."""

    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    wallet_address = fields.CharField(max_length=64, unique=True, index=True)
    username = fields.CharField(max_length=50, unique=True)
    avatar_url = fields.CharField(max_length=500, default="")
    is_online = fields.BooleanField(default=False)
    last_seen = fields.DatetimeField(null=True)
    # --- SMS notification preferences --- #
    phone_number = fields.CharField(max_length=32, null=True, index=True)
    sms_notifications_enabled = fields.BooleanField(default=False)
    sms_opted_in_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    last_login = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "players"


class Game(Model):
    """A match instance; called a lobby while its status is ``waiting``."""

    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    game_type = fields.CharEnumField(GameType, max_length=20)
    status = fields.CharEnumField(GameStatus, max_length=20, default=GameStatus.WAITING)
    max_players = fields.IntField()
    # Lamport precision: 9 fractional digits.
    entry_fee = fields.DecimalField(max_digits=18, decimal_places=9)
    is_private = fields.BooleanField(default=False)
    creator = fields.ForeignKeyField("models.Player", related_name="created_games")
    created_at = fields.DatetimeField(auto_now_add=True)
    started_at = fields.DatetimeField(null=True)
    ended_at = fields.DatetimeField(null=True)

    class Meta:
        table = "games"


class GameParticipant(Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    game = fields.ForeignKeyField("models.Game", related_name="participants", on_delete=fields.CASCADE)
    player = fields.ForeignKeyField("models.Player", related_name="participations")
    status = fields.CharEnumField(ParticipantStatus, max_length=20, default=ParticipantStatus.WAITING)
    joined_at = fields.DatetimeField(auto_now_add=True)
    # None until an outcome is known.
    is_winner = fields.BooleanField(null=True)
    payment_signature = fields.CharField(max_length=128, null=True, unique=True)
    paid_at = fields.DatetimeField(null=True)

    class Meta:
        table = "game_players"
        unique_together = (("game", "player"),)


class GameState(Model):
    """Append-only board snapshot; the newest row is the current state."""

    id = fields.BigIntField(pk=True)
    game = fields.ForeignKeyField("models.Game", related_name="states", on_delete=fields.CASCADE)
    state = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_states"


# -----------------------------
# Ledger
# -----------------------------

class GamePayout(Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    # One payout per game.
    game_id = fields.UUIDField(unique=True)
    winner_wallet = fields.CharField(max_length=64)
    total_pot = fields.DecimalField(max_digits=18, decimal_places=9)
    platform_fee = fields.DecimalField(max_digits=18, decimal_places=9)
    amount = fields.DecimalField(max_digits=18, decimal_places=9)
    transaction_signature = fields.CharField(max_length=128)
    # Platform account the fee is owed to.
    fee_wallet = fields.CharField(max_length=64)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_payouts"


class GameRefund(Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    # Plain column so refunds survive the lobby being deleted.
    game_id = fields.UUIDField(index=True)
    wallet_address = fields.CharField(max_length=64)
    amount = fields.DecimalField(max_digits=18, decimal_places=9)
    transaction_signature = fields.CharField(max_length=128)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_refunds"
        unique_together = (("game_id", "wallet_address"),)


# -----------------------------
# Statistics
# -----------------------------

class PlayerStats(Model):
    """Rollup of a player's GameStat rows, maintained by settlement."""

    id = fields.IntField(pk=True)
    player = fields.OneToOneField("models.Player", related_name="stats")
    games_played = fields.IntField(default=0)
    games_won = fields.IntField(default=0)
    # Net amount: payouts won minus entry fees lost.
    total_winnings = fields.DecimalField(max_digits=18, decimal_places=9, default=Decimal("0"))
    total_losses = fields.DecimalField(max_digits=18, decimal_places=9, default=Decimal("0"))
    # Positive for a win streak, negative for a losing streak.
    current_streak = fields.IntField(default=0)
    best_win_streak = fields.IntField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "player_stats"


class GameStat(Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    game = fields.ForeignKeyField("models.Game", related_name="results")
    player = fields.ForeignKeyField("models.Player", related_name="results")
    opponent = fields.ForeignKeyField("models.Player", related_name="opponent_results", null=True)
    game_type = fields.CharEnumField(GameType, max_length=20)
    result = fields.CharEnumField(GameResult, max_length=10)
    amount = fields.DecimalField(max_digits=18, decimal_places=9)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_stats"
        unique_together = (("game", "player"),)


class Friendship(Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    player = fields.ForeignKeyField("models.Player", related_name="friendships")
    friend = fields.ForeignKeyField("models.Player", related_name="befriended_by")
    status = fields.CharEnumField(FriendshipStatus, max_length=20, default=FriendshipStatus.ACCEPTED)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "friendships"
        unique_together = (("player", "friend"),)


# -----------------------------
# Chat
# -----------------------------

class ChatMessage(Model):
    """Global lobby chat line, or a direct message when ``recipient`` is set."""

    id = fields.BigIntField(pk=True)
    sender = fields.ForeignKeyField("models.Player", related_name="chat_messages_sent")
    recipient = fields.ForeignKeyField("models.Player", related_name="chat_messages_received", null=True)
    content = fields.TextField()
    message_type = fields.CharField(max_length=20, default="text")
    is_global = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "chat_messages"
