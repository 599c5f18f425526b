"""Player directory: wallet-keyed accounts, presence, preferences and friends."""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from tortoise import timezone
from tortoise.exceptions import IntegrityError

from .constants import FriendshipStatus
from .errors import InvalidInput, PlayerNotFound, UsernameTaken
from .models import Friendship, Player

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?\d{7,15}$")


def clean_wallet(wallet_address: Optional[str]) -> str:
    wallet = (wallet_address or "").strip()
    if not wallet or len(wallet) > 64:
        raise InvalidInput("A valid wallet address is required")
    return wallet


def normalize_phone(phone_number: str) -> str:
    phone = re.sub(r"[\s\-().]", "", phone_number or "")
    if not _PHONE_RE.match(phone):
        raise InvalidInput("Invalid phone number")
    return phone


async def _available_username(wallet: str) -> str:
    """``Player`` + a wallet prefix, lengthened until it is unused."""
    for size in (4, 6, 8, 12, 44):
        candidate = f"Player{wallet[:size]}"[:50]
        if not await Player.filter(username=candidate).exists():
            return candidate
    return f"Player{wallet}"[:50]


# -----------------------------
# Lookup / creation
# -----------------------------

async def get_or_create_player(wallet_address: str) -> Player:
    """Return the player for *wallet_address*, creating it on first sight."""
    wallet = clean_wallet(wallet_address)
    player = await Player.get_or_none(wallet_address=wallet)
    if player is not None:
        player.last_login = timezone.now()
        await player.save(update_fields=["last_login"])
        return player

    try:
        player = await Player.create(wallet_address=wallet, username=await _available_username(wallet))
    except IntegrityError:
        # Another request created the same wallet first.
        return await Player.get(wallet_address=wallet)
    logger.info("Created player %s", player.username, extra={"wallet": wallet})
    return player


async def get_player(wallet_address: str) -> Player:
    player = await Player.get_or_none(wallet_address=clean_wallet(wallet_address))
    if player is None:
        raise PlayerNotFound()
    return player


async def find_by_phone(phone_number: str) -> Player:
    player = await Player.filter(phone_number=normalize_phone(phone_number)).first()
    if player is None:
        raise PlayerNotFound("No player registered with that phone number")
    return player


# -----------------------------
# Mutations
# -----------------------------

async def set_presence(wallet_address: str, online: bool) -> Player:
    player = await get_player(wallet_address)
    player.is_online = online
    player.last_seen = timezone.now()
    await player.save(update_fields=["is_online", "last_seen"])
    return player


async def update_profile(
    wallet_address: str,
    username: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> Player:
    player = await get_player(wallet_address)
    if username is not None:
        username = username.strip()
        if not username or len(username) > 50:
            raise InvalidInput("Username must be 1-50 characters")
        if username != player.username:
            if await Player.filter(username=username).exclude(id=player.id).exists():
                raise UsernameTaken()
            player.username = username
    if avatar_url is not None:
        player.avatar_url = avatar_url
    await player.save()
    return player


async def update_sms_preferences(
    wallet_address: str,
    enabled: bool,
    phone_number: Optional[str] = None,
) -> Player:
    """Opt in or out of SMS; opting in requires a phone number on file."""
    player = await get_player(wallet_address)
    if phone_number:
        player.phone_number = normalize_phone(phone_number)
    if enabled and not player.phone_number:
        raise InvalidInput("A phone number is required to enable SMS notifications")
    if enabled and not player.sms_notifications_enabled:
        player.sms_opted_in_at = timezone.now()
    player.sms_notifications_enabled = enabled
    await player.save()
    return player


# -----------------------------
# Friends
# -----------------------------

async def add_friend(wallet_address: str, friend_wallet: str) -> Player:
    """Add *friend_wallet* to the friends of *wallet_address* (idempotent)."""
    player = await get_player(wallet_address)
    if clean_wallet(friend_wallet) == player.wallet_address:
        raise InvalidInput("You cannot add yourself as a friend")
    friend = await get_or_create_player(friend_wallet)
    await Friendship.get_or_create(
        player=player, friend=friend, defaults={"status": FriendshipStatus.ACCEPTED}
    )
    return friend


async def list_friends(wallet_address: str) -> List[Player]:
    player = await get_player(wallet_address)
    rows = (
        await Friendship.filter(player=player, status=FriendshipStatus.ACCEPTED)
        .prefetch_related("friend")
    )
    return sorted((row.friend for row in rows), key=lambda p: p.username.lower())


async def remove_friend(wallet_address: str, friend_wallet: str) -> bool:
    player = await get_player(wallet_address)
    friend = await Player.get_or_none(wallet_address=clean_wallet(friend_wallet))
    if friend is None:
        return False
    deleted = await Friendship.filter(player=player, friend=friend).delete()
    return deleted > 0


__all__ = [
    "clean_wallet",
    "normalize_phone",
    "get_or_create_player",
    "get_player",
    "find_by_phone",
    "set_presence",
    "update_profile",
    "update_sms_preferences",
    "add_friend",
    "list_friends",
    "remove_friend",
]
