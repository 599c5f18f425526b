from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query, status

from .. import chat
from ..constants import CHAT_HISTORY_LIMIT
from ..models import ChatMessage
from ..schemas import ChatMessageRequest, ChatMessageResponse, ChatUserEntry

router = APIRouter(prefix="", tags=["chat"])


def _message_response(message: ChatMessage) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=message.id,
        sender_wallet=message.sender.wallet_address,
        sender_username=message.sender.username,
        sender_avatar=message.sender.avatar_url,
        recipient_wallet=message.recipient.wallet_address if message.recipient_id else None,
        content=message.content,
        message_type=message.message_type,
        is_global=message.is_global,
        created_at=message.created_at,
    )


@router.get("/chat/messages", response_model=List[ChatMessageResponse])
async def list_messages(
    wallet_address: str = Query(...),
    with_wallet: Optional[str] = None,
    limit: int = Query(default=CHAT_HISTORY_LIMIT, ge=1, le=100),
):
    """Global channel history, or a direct conversation when ``with_wallet`` is given."""
    messages = await chat.list_messages(wallet_address, with_wallet=with_wallet, limit=limit)
    return [_message_response(m) for m in messages]


@router.post("/chat/messages", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
async def post_message(req: ChatMessageRequest):
    message = await chat.post_message(
        req.wallet_address,
        req.content,
        message_type=req.message_type,
        recipient_wallet=req.recipient_wallet,
    )
    return _message_response(message)


@router.get("/chat/users", response_model=List[ChatUserEntry])
async def online_users(wallet_address: str = Query(...)):
    return [
        ChatUserEntry(
            id=str(u.player.id),
            wallet_address=u.player.wallet_address,
            username=u.player.username,
            avatar_url=u.player.avatar_url,
            is_online=u.player.is_online,
            last_seen=u.player.last_seen or u.player.created_at,
            is_friend=u.is_friend,
        )
        for u in await chat.online_users(wallet_address)
    ]


__all__ = ["router"]
