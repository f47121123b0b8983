from __future__ import annotations

import asyncio


class NonceManager:
    """Hands out nonces for one sender, never below the node's pending count.

    A nonce taken for a transaction that was never broadcast (signature
    refused, build failed) must be given back with ``release`` or the next
    transaction would leave a gap and sit in the mempool forever.
    """

    def __init__(self, w3, address: str):
        self.w3 = w3
        self.address = address
        self._lock = asyncio.Lock()
        self._next: int | None = None

    async def _pending(self) -> int:
        loop = asyncio.get_running_loop()
        return int(await loop.run_in_executor(None, lambda: self.w3.eth.get_transaction_count(self.address, "pending")))

    async def next_nonce(self) -> int:
        async with self._lock:
            pending = await self._pending()
            nonce = pending if self._next is None else max(self._next, pending)
            self._next = nonce + 1
            return nonce

    async def release(self, nonce: int) -> None:
        async with self._lock:
            if self._next is not None and nonce == self._next - 1:
                self._next = nonce

    async def reset_from_chain(self) -> None:
        async with self._lock:
            self._next = await self._pending()
