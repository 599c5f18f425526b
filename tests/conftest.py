"""Pytest configuration shared across the test suite."""

from decimal import Decimal
from typing import List, Optional, Set, Tuple

import httpx
import pytest
import pytest_asyncio
from tortoise import Tortoise

from cryptoboards import lobby, payments
from cryptoboards.app import MODELS, create_app
from cryptoboards.config import Settings
from cryptoboards.notifications import NotificationResult, Notifier
from cryptoboards.players import get_or_create_player
from cryptoboards.solana import SolanaClient, TransferResult
from cryptoboards.state import game_connections, game_locks, lock_users

ALICE = "AliceWa11et1111111111111111111111111111111"
BOB = "BobWa11et22222222222222222222222222222222222"
CAROL = "CarolWa11et333333333333333333333333333333333"


class FakeSolana(SolanaClient):
    """Accepts every signature except those in ``rejected``; records transfers."""

    def __init__(self) -> None:
        super().__init__("http://solana.invalid", simulate=True)
        self.rejected: Set[str] = set()
        self.verified: List[str] = []
        self.transfers: List[Tuple[str, Decimal, str]] = []
        self.fail_transfers = False
        # Fail every transfer once this many have gone through.
        self.fail_after: Optional[int] = None

    async def verify_signature(self, signature: str) -> bool:
        self.verified.append(signature)
        return bool(signature) and signature not in self.rejected

    async def transfer(self, to_wallet: str, amount: Decimal, memo: str = "payout") -> TransferResult:
        if self.fail_transfers or (self.fail_after is not None and len(self.transfers) >= self.fail_after):
            return TransferResult(success=False, error="escrow unavailable")
        self.transfers.append((to_wallet, amount, memo))
        return TransferResult(success=True, signature=f"{memo}_sig_{len(self.transfers)}")


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Tuple[str, str]] = []
        self.fail = fail

    async def send(self, phone_number: str, message: str) -> NotificationResult:
        if self.fail:
            raise RuntimeError("provider down")
        self.sent.append((phone_number, message))
        return NotificationResult(success=True, message_id=str(len(self.sent)))


@pytest_asyncio.fixture
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODELS})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()
    game_locks.clear()
    lock_users.clear()
    game_connections.clear()


@pytest.fixture
def solana() -> FakeSolana:
    return FakeSolana()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(db, solana, notifier):
    settings = Settings(database_url="sqlite://:memory:", app_url="https://boards.test")
    app = create_app(settings=settings, solana=solana, notifier=notifier, register_db=False)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_lobby(entry_fee: str = "1.0", creator: str = ALICE, **kwargs):
    return await lobby.create_lobby(creator, "checkers", Decimal(entry_fee), **kwargs)


async def make_ready_lobby(solana: FakeSolana, entry_fee: str = "1.0", opponent: str = BOB):
    """Two-player lobby where both seats have paid."""
    game = await make_lobby(entry_fee)
    await lobby.join_lobby(str(game.id), opponent)
    await payments.pay(str(game.id), ALICE, "sim_alice_" + str(game.id), solana)
    await payments.pay(str(game.id), opponent, "sim_opponent_" + str(game.id), solana)
    return game


async def make_started_game(solana: FakeSolana, entry_fee: str = "1.0"):
    game = await make_ready_lobby(solana, entry_fee)
    result = await lobby.start(str(game.id))
    return result.game


async def opted_in_player(wallet: str, phone: str = "+15550001111", enabled: bool = True):
    player = await get_or_create_player(wallet)
    player.phone_number = phone
    player.sms_notifications_enabled = enabled
    await player.save()
    return player
