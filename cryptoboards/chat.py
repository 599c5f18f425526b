"""Chat: the global lobby channel, direct messages and the online-users list.

Presence is tracked on the player row (``is_online`` / ``last_seen``).
Chat calls refresh it for the caller, and players not seen within
``ONLINE_WINDOW_MINUTES`` are flipped offline when the user list is read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Set

from tortoise import timezone
from tortoise.expressions import Q

from .constants import CHAT_HISTORY_LIMIT, MAX_CHAT_MESSAGE_LENGTH, ONLINE_WINDOW_MINUTES, FriendshipStatus
from .errors import InvalidInput
from .models import ChatMessage, Friendship, Player
from .players import clean_wallet, get_player

logger = logging.getLogger(__name__)


@dataclass
class ChatUser:
    player: Player
    is_friend: bool


async def touch(player: Player) -> Player:
    """Mark *player* online as of now."""
    player.is_online = True
    player.last_seen = timezone.now()
    await player.save(update_fields=["is_online", "last_seen"])
    return player


async def list_messages(
    wallet_address: str,
    with_wallet: Optional[str] = None,
    limit: int = CHAT_HISTORY_LIMIT,
) -> List[ChatMessage]:
    """The newest *limit* messages, oldest first.

    Without *with_wallet* this is the global channel; with it, the direct
    conversation between the two players.
    """
    clean_wallet(wallet_address)
    if with_wallet:
        me = await get_player(wallet_address)
        other = await get_player(with_wallet)
        query = ChatMessage.filter(
            Q(sender_id=me.id, recipient_id=other.id) | Q(sender_id=other.id, recipient_id=me.id),
            is_global=False,
        )
    else:
        query = ChatMessage.filter(is_global=True)

    rows = await query.order_by("-id").limit(limit).prefetch_related("sender", "recipient")
    return list(reversed(rows))


async def post_message(
    wallet_address: str,
    content: Optional[str],
    message_type: str = "text",
    recipient_wallet: Optional[str] = None,
) -> ChatMessage:
    """Post to the global channel, or directly to *recipient_wallet*."""
    text = (content or "").strip()
    if not text:
        raise InvalidInput("Message content is required")
    if len(text) > MAX_CHAT_MESSAGE_LENGTH:
        raise InvalidInput(f"Messages are limited to {MAX_CHAT_MESSAGE_LENGTH} characters")

    sender = await get_player(wallet_address)
    recipient = None
    if recipient_wallet:
        recipient = await get_player(recipient_wallet)
        if recipient.id == sender.id:
            raise InvalidInput("You cannot message yourself")

    message = await ChatMessage.create(
        sender=sender,
        recipient=recipient,
        content=text,
        message_type=message_type or "text",
        is_global=recipient is None,
    )
    await touch(sender)
    logger.debug("Chat message %s posted", message.id, extra={"wallet": sender.wallet_address})
    return message


async def _friend_ids(player: Player) -> Set[str]:
    added = await Friendship.filter(player=player, status=FriendshipStatus.ACCEPTED).values_list(
        "friend_id", flat=True
    )
    added_by = await Friendship.filter(friend=player, status=FriendshipStatus.ACCEPTED).values_list(
        "player_id", flat=True
    )
    return {str(pid) for pid in added} | {str(pid) for pid in added_by}


async def online_users(wallet_address: str) -> List[ChatUser]:
    """Every other player: online first, then friends, then by username."""
    me = await touch(await get_player(wallet_address))

    cutoff = timezone.now() - timedelta(minutes=ONLINE_WINDOW_MINUTES)
    expired = await Player.filter(
        Q(last_seen__lt=cutoff) | Q(last_seen__isnull=True), is_online=True
    ).update(is_online=False)
    if expired:
        logger.debug("Marked %d idle players offline", expired)

    friends = await _friend_ids(me)
    users = [ChatUser(player=p, is_friend=str(p.id) in friends) for p in await Player.exclude(id=me.id)]
    users.sort(key=lambda u: (not u.player.is_online, not u.is_friend, u.player.username.lower()))
    return users


__all__ = ["ChatUser", "touch", "list_messages", "post_message", "online_users"]
