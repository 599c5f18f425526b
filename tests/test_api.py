import pytest

from cryptoboards.config import DEFAULT_PLATFORM_WALLET

from conftest import ALICE, BOB, CAROL


async def _ready_lobby(client, fee="0.5"):
    resp = await client.post("/lobbies", json={
        "creator_wallet": ALICE, "game_type": "checkers", "entry_fee": fee,
    })
    assert resp.status_code == 201
    lobby_id = resp.json()["id"]

    resp = await client.post(f"/lobbies/{lobby_id}/join", json={"wallet_address": BOB})
    assert resp.status_code == 200
    for wallet in (ALICE, BOB):
        resp = await client.post(f"/lobbies/{lobby_id}/pay", json={
            "wallet_address": wallet, "transaction_signature": f"sim_{wallet[:5]}",
        })
        assert resp.status_code == 200
    return lobby_id


@pytest.mark.asyncio
async def test_player_endpoints(client):
    resp = await client.post("/players", json={"wallet_address": ALICE})
    assert resp.status_code == 200
    assert resp.json()["username"] == "PlayerAlic"

    resp = await client.put(f"/players/{ALICE}", json={"username": "alice"})
    assert resp.json()["username"] == "alice"

    resp = await client.put(f"/players/{ALICE}/sms-preferences", json={"enabled": True, "phone_number": "+15550001111"})
    assert resp.json()["sms_notifications_enabled"] is True

    resp = await client.get("/players/by-phone/+15550001111")
    assert resp.json()["wallet_address"] == ALICE

    resp = await client.post(f"/players/{ALICE}/friends", json={"friend_wallet": BOB})
    assert resp.status_code == 201
    resp = await client.get(f"/players/{ALICE}/friends")
    assert [f["wallet_address"] for f in resp.json()] == [BOB]
    resp = await client.delete(f"/players/{ALICE}/friends/{BOB}")
    assert resp.json() == {"success": True, "removed": True}


@pytest.mark.asyncio
async def test_unknown_player_is_404(client):
    resp = await client.get(f"/players/{CAROL}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Player not found", "code": "PlayerNotFound"}


@pytest.mark.asyncio
async def test_validation_errors_are_400(client):
    resp = await client.post("/lobbies", json={"creator_wallet": ALICE, "game_type": "chess", "entry_fee": "1"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Missing or invalid fields"
    assert body["code"] == "InvalidInput"
    assert body["details"]

    resp = await client.post("/lobbies", json={"creator_wallet": ALICE, "game_type": "checkers", "entry_fee": "0"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_full_game_flow(client, solana):
    lobby_id = await _ready_lobby(client)

    resp = await client.get("/lobbies", params={"wallet_address": BOB})
    [summary] = resp.json()
    assert summary["player_status"] == "ready"
    assert summary["entry_fee"] == "0.500000000"

    resp = await client.post(f"/lobbies/{lobby_id}/start")
    assert resp.status_code == 200
    assert resp.json()["game_id"] == lobby_id

    resp = await client.get(f"/games/{lobby_id}/state")
    state = resp.json()
    assert state["current_state"]["currentPlayer"] == "red"

    resp = await client.post(f"/lobbies/{lobby_id}/cancel", json={"wallet_address": ALICE})
    assert resp.status_code == 409
    assert resp.json()["code"] == "CannotCancelStarted"

    resp = await client.post(f"/games/{lobby_id}/complete", json={"winner_wallet": ALICE, "loser_wallet": BOB})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["total_pot"], body["platform_fee"], body["winner_amount"]) == (
        "1.000000000", "0.040000000", "0.960000000",
    )

    resp = await client.post(f"/games/{lobby_id}/complete", json={"winner_wallet": ALICE, "loser_wallet": BOB})
    assert resp.status_code == 409
    assert resp.json()["code"] == "AlreadyCompleted"

    first = (await client.post(f"/games/{lobby_id}/payout")).json()
    second = (await client.post(f"/games/{lobby_id}/payout")).json()
    assert first["already_processed"] is False
    assert second["already_processed"] is True
    assert first["transaction_signature"] == second["transaction_signature"]
    assert first["fee_wallet"] == DEFAULT_PLATFORM_WALLET

    resp = await client.get(f"/players/{ALICE}/stats")
    assert resp.json()["wins"] == 1

    resp = await client.get("/games/feed")
    assert [f["winner_wallet"] for f in resp.json()] == [ALICE]

    resp = await client.get(f"/games/{lobby_id}/history")
    assert len(resp.json()) == 1


@pytest.mark.asyncio
async def test_bad_signature_is_402(client, solana):
    resp = await client.post("/lobbies", json={"creator_wallet": ALICE, "game_type": "checkers", "entry_fee": "1"})
    lobby_id = resp.json()["id"]
    solana.rejected.add("forged")

    resp = await client.post(f"/lobbies/{lobby_id}/pay", json={
        "wallet_address": ALICE, "transaction_signature": "forged",
    })
    assert resp.status_code == 402
    assert resp.json()["code"] == "InvalidSignature"


@pytest.mark.asyncio
async def test_join_full_lobby_is_409(client):
    lobby_id = await _ready_lobby(client)
    resp = await client.post(f"/lobbies/{lobby_id}/join", json={"wallet_address": CAROL})
    assert resp.status_code == 409
    assert resp.json()["code"] == "LobbyFull"
    assert resp.json()["details"] == {"current_players": 2, "max_players": 2}


@pytest.mark.asyncio
async def test_missing_wallet_is_400(client):
    resp = await client.post("/lobbies/00000000-0000-0000-0000-000000000000/join", json={})
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidInput"


@pytest.mark.asyncio
async def test_cancel_refunds_over_http(client, solana):
    lobby_id = await _ready_lobby(client)
    resp = await client.post(f"/lobbies/{lobby_id}/cancel", json={"wallet_address": ALICE})
    body = resp.json()
    assert body["lobby_deleted"] is True
    assert sorted(r["wallet_address"] for r in body["refunds"]) == sorted([ALICE, BOB])

    resp = await client.get(f"/lobbies/{lobby_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_complete_waiting_lobby_is_409(client, solana):
    resp = await client.post("/lobbies", json={"creator_wallet": ALICE, "game_type": "checkers", "entry_fee": "1"})
    lobby_id = resp.json()["id"]
    await client.post(f"/lobbies/{lobby_id}/join", json={"wallet_address": BOB})

    resp = await client.post(f"/games/{lobby_id}/complete", json={"winner_wallet": ALICE, "loser_wallet": BOB})
    assert resp.status_code == 409
    assert resp.json()["code"] == "GameNotInProgress"

    resp = await client.post(f"/games/{lobby_id}/payout")
    assert resp.status_code == 409
    assert resp.json()["code"] == "NoWinnerDeclared"
    assert solana.transfers == []


@pytest.mark.asyncio
async def test_chat_endpoints(client):
    for wallet in (ALICE, BOB):
        await client.post("/players", json={"wallet_address": wallet})

    resp = await client.post("/chat/messages", json={"wallet_address": ALICE, "content": "anyone up for checkers?"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["sender_username"] == "PlayerAlic"
    assert body["is_global"] is True
    assert body["recipient_wallet"] is None

    resp = await client.post("/chat/messages", json={
        "wallet_address": BOB, "content": "me", "recipient_wallet": ALICE,
    })
    assert resp.json()["recipient_wallet"] == ALICE

    resp = await client.get("/chat/messages", params={"wallet_address": BOB})
    assert [m["content"] for m in resp.json()] == ["anyone up for checkers?"]

    resp = await client.get("/chat/messages", params={"wallet_address": BOB, "with_wallet": ALICE})
    assert [m["content"] for m in resp.json()] == ["me"]

    resp = await client.get("/chat/users", params={"wallet_address": BOB})
    [entry] = resp.json()
    assert entry["wallet_address"] == ALICE
    assert entry["is_online"] is True
    assert entry["is_friend"] is False


@pytest.mark.asyncio
async def test_chat_errors(client):
    resp = await client.get("/chat/messages")
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidInput"

    resp = await client.post("/chat/messages", json={"wallet_address": CAROL, "content": "hi"})
    assert resp.status_code == 404
    assert resp.json()["code"] == "PlayerNotFound"

    resp = await client.get("/chat/users", params={"wallet_address": CAROL})
    assert resp.status_code == 404
