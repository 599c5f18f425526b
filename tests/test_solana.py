import pytest

from cryptoboards.solana import SolanaClient, transaction_succeeded


class RecordingClient(SolanaClient):
    def __init__(self, response=None, error=None, simulate=True):
        super().__init__("http://solana.invalid", simulate=simulate)
        self.response = response
        self.error = error
        self.calls = []

    async def _rpc(self, method, params):
        self.calls.append((method, params))
        if self.error is not None:
            raise self.error
        return self.response


def test_transaction_succeeded():
    assert transaction_succeeded({"meta": {"err": None}}) is True
    assert transaction_succeeded({"meta": {"err": {"InstructionError": [0, "Custom"]}}}) is False
    assert transaction_succeeded({"meta": None}) is False
    assert transaction_succeeded(None) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("signature", ["mock_signature_1", "escrow_abc", "sim_xyz"])
async def test_simulated_signatures_skip_rpc(signature):
    client = RecordingClient()
    assert await client.verify_signature(signature) is True
    assert client.calls == []


@pytest.mark.asyncio
async def test_simulated_prefix_checked_on_chain_when_simulation_disabled():
    client = RecordingClient(response=None, simulate=False)
    assert await client.verify_signature("sim_xyz") is False
    assert client.calls[0][0] == "getTransaction"
    assert client.calls[0][1][1]["commitment"] == "confirmed"


@pytest.mark.asyncio
async def test_verify_confirmed_transaction():
    client = RecordingClient(response={"meta": {"err": None}, "slot": 1})
    assert await client.verify_signature("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb") is True


@pytest.mark.asyncio
async def test_rpc_errors_mean_unverified():
    client = RecordingClient(error=ValueError("RPC getTransaction error: boom"))
    assert await client.verify_signature("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb") is False


@pytest.mark.asyncio
async def test_empty_signature():
    client = RecordingClient()
    assert await client.verify_signature("") is False
    assert client.calls == []


@pytest.mark.asyncio
async def test_simulated_transfer():
    client = SolanaClient("http://solana.invalid")
    result = await client.transfer("Wallet1111", 1, memo="refund_game")
    assert result.success is True
    assert result.signature.startswith("refund_game_")
    assert result.error is None
