from datetime import timedelta

import pytest
from tortoise import timezone

from cryptoboards import chat, players
from cryptoboards.constants import CHAT_HISTORY_LIMIT, MAX_CHAT_MESSAGE_LENGTH
from cryptoboards.errors import InvalidInput, PlayerNotFound
from cryptoboards.models import ChatMessage, Player

from conftest import ALICE, BOB, CAROL


async def _players(*wallets):
    return [await players.get_or_create_player(w) for w in wallets]


@pytest.mark.asyncio
async def test_post_global_message_marks_sender_online(db):
    await _players(ALICE)

    message = await chat.post_message(ALICE, "  gg all  ")

    assert message.content == "gg all"
    assert message.is_global is True
    assert message.recipient_id is None
    alice = await Player.get(wallet_address=ALICE)
    assert alice.is_online is True
    assert alice.last_seen is not None


@pytest.mark.asyncio
async def test_post_message_validation(db):
    await _players(ALICE)

    with pytest.raises(InvalidInput):
        await chat.post_message(ALICE, "   ")
    with pytest.raises(InvalidInput):
        await chat.post_message(ALICE, "x" * (MAX_CHAT_MESSAGE_LENGTH + 1))
    with pytest.raises(InvalidInput):
        await chat.post_message(ALICE, "hi me", recipient_wallet=ALICE)
    with pytest.raises(PlayerNotFound):
        await chat.post_message(BOB, "hello")
    with pytest.raises(PlayerNotFound):
        await chat.post_message(ALICE, "hello", recipient_wallet=CAROL)
    assert await ChatMessage.all().count() == 0


@pytest.mark.asyncio
async def test_global_history_is_oldest_first_and_capped(db):
    await _players(ALICE, BOB)
    for i in range(CHAT_HISTORY_LIMIT + 5):
        await chat.post_message(ALICE if i % 2 else BOB, f"line {i}")
    await chat.post_message(ALICE, "psst", recipient_wallet=BOB)

    history = await chat.list_messages(CAROL)

    assert len(history) == CHAT_HISTORY_LIMIT
    assert history[0].content == "line 5"
    assert history[-1].content == f"line {CHAT_HISTORY_LIMIT + 4}"
    assert all(m.is_global for m in history)


@pytest.mark.asyncio
async def test_direct_conversation(db):
    await _players(ALICE, BOB, CAROL)
    await chat.post_message(ALICE, "hi bob", recipient_wallet=BOB)
    await chat.post_message(BOB, "hi alice", recipient_wallet=ALICE)
    await chat.post_message(CAROL, "hi bob, carol here", recipient_wallet=BOB)
    await chat.post_message(ALICE, "hello everyone")

    history = await chat.list_messages(BOB, with_wallet=ALICE)

    assert [m.content for m in history] == ["hi bob", "hi alice"]
    assert [m.sender.wallet_address for m in history] == [ALICE, BOB]

    with pytest.raises(PlayerNotFound):
        await chat.list_messages(ALICE, with_wallet="NobodyWallet")


@pytest.mark.asyncio
async def test_online_users_ordering_and_expiry(db):
    _, _, carol = await _players(ALICE, BOB, CAROL)
    dave = await players.get_or_create_player("DaveWa11et")
    await players.add_friend(CAROL, ALICE)
    await players.set_presence(BOB, True)

    carol.is_online = True
    carol.last_seen = timezone.now() - timedelta(minutes=30)
    await carol.save()

    users = await chat.online_users(ALICE)

    assert [u.player.wallet_address for u in users] == [BOB, CAROL, dave.wallet_address]
    assert [u.player.is_online for u in users] == [True, False, False]
    assert [u.is_friend for u in users] == [False, True, False]
    assert (await Player.get(wallet_address=ALICE)).is_online is True
    assert (await Player.get(wallet_address=CAROL)).is_online is False


@pytest.mark.asyncio
async def test_online_users_requires_known_player(db):
    with pytest.raises(PlayerNotFound):
        await chat.online_users(ALICE)
