"""Solana collaborator: signature verification and (simulated) escrow transfers."""
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import aiohttp

from .logging_config import short_wallet

logger = logging.getLogger(__name__)

# Signatures minted by the demo wallet flow.
SIMULATED_PREFIXES = ("mock_signature_", "escrow_", "sim_")


@dataclass
class TransferResult:
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None


def transaction_succeeded(result: Optional[Dict[str, Any]]) -> bool:
    """Interpret a ``getTransaction`` result: present and executed without error."""
    if not result:
        return False
    meta = result.get("meta")
    if not isinstance(meta, dict):
        return False
    return meta.get("err") is None


class SolanaClient:
    """Talks JSON-RPC to a Solana node.

    Only verification hits the network.  Payouts and refunds are simulated:
    signing from the escrow key is not implemented, so :meth:`transfer`
    returns a generated signature.
    """

    def __init__(self, rpc_url: str, simulate: bool = True, timeout: float = 10.0):
        self.rpc_url = rpc_url
        self.simulate = simulate
        self.timeout = timeout

    async def _rpc(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.rpc_url, json=payload) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise ValueError(f"RPC {method} failed ({resp.status}): {text[:200]}")
                data = await resp.json()
        if data.get("error"):
            raise ValueError(f"RPC {method} error: {data['error']}")
        return data.get("result")

    async def verify_signature(self, signature: str) -> bool:
        """Return True if *signature* is a confirmed, successful transaction.

        Amount and destination are not checked.
        """
        if not signature:
            return False
        if self.simulate and signature.startswith(SIMULATED_PREFIXES):
            logger.info("Accepted simulated transaction", extra={"signature": signature})
            return True
        try:
            result = await self._rpc(
                "getTransaction",
                [signature, {"encoding": "json", "commitment": "confirmed", "maxSupportedTransactionVersion": 0}],
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Transaction verification failed: %s", exc, extra={"signature": signature})
            return False
        return transaction_succeeded(result)

    async def transfer(self, to_wallet: str, amount: Decimal, memo: str = "payout") -> TransferResult:
        """Send *amount* SOL from escrow to *to_wallet* (simulated)."""
        signature = f"{memo}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"
        logger.info(
            "Simulated %s transfer of %s SOL to %s", memo, amount, short_wallet(to_wallet),
            extra={"signature": signature},
        )
        return TransferResult(success=True, signature=signature)


__all__ = ["SIMULATED_PREFIXES", "TransferResult", "transaction_succeeded", "SolanaClient"]
