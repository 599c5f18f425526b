import asyncio

import pytest

from cryptoboards.realtime import broadcast_game, subscribe, unsubscribe
from cryptoboards.state import game_connections, game_lock, game_locks, lock_users


class Socket:
    def __init__(self, broken=False):
        self.broken = broken
        self.sent = []

    async def send_json(self, payload):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(payload)


@pytest.fixture(autouse=True)
def clean_state():
    yield
    game_connections.clear()
    game_locks.clear()
    lock_users.clear()


@pytest.mark.asyncio
async def test_broadcast_drops_dead_subscribers():
    alive, dead = Socket(), Socket(broken=True)
    subscribe("g1", alive)
    subscribe("g1", dead)

    delivered = await broadcast_game("g1", {"type": "state"})

    assert delivered == 1
    assert alive.sent == [{"type": "state"}]
    assert game_connections["g1"] == {alive}


@pytest.mark.asyncio
async def test_broadcast_without_subscribers():
    assert await broadcast_game("nobody", {"type": "state"}) == 0


def test_unsubscribe_removes_empty_game():
    ws = Socket()
    subscribe("g2", ws)
    unsubscribe("g2", ws)
    assert "g2" not in game_connections
    unsubscribe("g2", ws)


@pytest.mark.asyncio
async def test_game_lock_is_forgotten_after_use():
    async with game_lock("g3"):
        assert "g3" in game_locks
        async with game_lock("g4"):
            assert game_locks["g3"] is not game_locks["g4"]
    assert game_locks == {}
    assert lock_users == {}


@pytest.mark.asyncio
async def test_game_lock_serialises_same_game():
    order = []

    async def worker(name):
        async with game_lock("g5"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert "g5" not in game_locks


@pytest.mark.asyncio
async def test_game_lock_released_when_body_raises():
    with pytest.raises(RuntimeError):
        async with game_lock("g6"):
            raise RuntimeError("boom")
    assert "g6" not in game_locks

    async with game_lock("g6"):
        pass
