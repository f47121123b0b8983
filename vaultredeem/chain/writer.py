from __future__ import annotations

import asyncio
import itertools
import logging

from web3 import Web3
from web3.exceptions import TransactionNotFound

from vaultredeem.chain.abi import ERC20_ABI, VAULT_ABI
from vaultredeem.chain.gas import DEFAULT_GAS_LIMIT, GasStrategy
from vaultredeem.chain.nonce import NonceManager
from vaultredeem.domain import PlanStep, TxReceipt

log = logging.getLogger("vaultredeem.writer")


class ChainWriter:
    """Builds, signs and broadcasts approve/redeem transactions.

    A transaction the node has accepted is never signed again: "already known"
    returns the hash of the bytes already sent, and only "nonce too low" (the
    node refused it) triggers a fresh nonce. Receipt waits have no deadline;
    a broadcast transaction can only be observed to success or revert.
    """

    def __init__(
        self,
        w3: Web3,
        signer,
        vault_address: str,
        gas: GasStrategy,
        *,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        send_attempts: int = 4,
        retry_delay: float = 0.4,
        poll_interval: float = 2.0,
    ):
        self.w3 = w3
        self.signer = signer
        self.vault_address = Web3.to_checksum_address(vault_address)
        self.vault = w3.eth.contract(address=self.vault_address, abi=VAULT_ABI)
        self.gas = gas
        self.gas_limit = int(gas_limit) if gas_limit and gas_limit > 0 else DEFAULT_GAS_LIMIT
        self.send_attempts = max(1, int(send_attempts))
        self.retry_delay = max(0.0, float(retry_delay))
        self.poll_interval = max(0.0, float(poll_interval))
        self._nonce_mgr = NonceManager(w3, signer.address)
        self._tx_lock = asyncio.Lock()
        self._chain_id: int | None = None

    async def _run(self, fn):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self._run(lambda: self.w3.eth.chain_id))
        return self._chain_id

    async def _signed(self, fn, nonce: int, description: str) -> bytes:
        chain_id = await self.chain_id()
        fees = await self.gas.fee_fields(self.w3, chain_id)
        tx = await self._run(lambda: fn.build_transaction({
            "from": self.signer.address,
            "nonce": nonce,
            "gas": self.gas_limit,
            "chainId": chain_id,
            **fees,
        }))
        return self.signer.sign_transaction(tx, description)

    async def _submit(self, fn, description: str) -> str:
        """Sign and send ``fn`` with serialized nonce handling."""
        async with self._tx_lock:
            last_err = None
            for _ in range(self.send_attempts):
                nonce = await self._nonce_mgr.next_nonce()
                try:
                    raw = await self._signed(fn, nonce, description)
                except Exception:
                    await self._nonce_mgr.release(nonce)
                    raise
                try:
                    tx_hash = Web3.to_hex(await self._run(lambda: self.w3.eth.send_raw_transaction(raw)))
                except Exception as e:
                    msg = str(e).lower()
                    if "already known" in msg:
                        tx_hash = Web3.to_hex(Web3.keccak(raw))
                        log.info("%s already in mempool tx=%s nonce=%s", description, tx_hash, nonce)
                        return tx_hash
                    if "nonce too low" in msg:
                        last_err = e
                        log.warning("%s nonce %s taken, re-reading from chain", description, nonce)
                        await self._nonce_mgr.reset_from_chain()
                        await asyncio.sleep(self.retry_delay)
                        continue
                    await self._nonce_mgr.release(nonce)
                    raise
                log.info("%s submitted tx=%s nonce=%s", description, tx_hash, nonce)
                return tx_hash
            raise RuntimeError(f"{description} tx failed after retries: {last_err}")

    async def approve(self, step: PlanStep) -> str:
        erc = self.w3.eth.contract(address=Web3.to_checksum_address(step.token), abi=ERC20_ABI)
        spender = Web3.to_checksum_address(step.spender_or_target)
        return await self._submit(erc.functions.approve(spender, int(step.amount)), "approve")

    async def redeem(self, step: PlanStep) -> str:
        fn = self.vault.functions.redeem(
            Web3.to_checksum_address(step.token),
            int(step.amount),
            Web3.to_checksum_address(step.redeem_target),
            [Web3.to_bytes(hexstr=p) for p in step.proof],
        )
        # eth_call first so a revert surfaces with its reason before any gas is spent
        await self._run(lambda: fn.call({"from": self.signer.address}))
        return await self._submit(fn, "redeem")

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Poll until the transaction is mined; there is no timeout."""
        polls = 0
        while True:
            try:
                receipt = await self._run(lambda: self.w3.eth.get_transaction_receipt(tx_hash))
            except TransactionNotFound:
                receipt = None
            except Exception as e:
                log.warning("receipt poll for %s failed, still waiting: %s", tx_hash, e)
                receipt = None
            if receipt is not None:
                return TxReceipt(
                    tx_hash=tx_hash,
                    status=int(receipt["status"]),
                    block_number=int(receipt.get("blockNumber") or 0),
                )
            polls += 1
            if polls % 30 == 0:
                log.info("still waiting for %s (%d polls)", tx_hash, polls)
            await asyncio.sleep(self.poll_interval)


class DryRunWriter:
    """Execution boundary that never broadcasts; every step 'confirms' at once."""

    def __init__(self):
        self._seq = itertools.count(1)
        self.submitted: list[tuple[str, PlanStep]] = []

    async def approve(self, step: PlanStep) -> str:
        tx_hash = f"dry-run-approve-{next(self._seq)}"
        self.submitted.append((tx_hash, step))
        log.info("dry_run approve token=%s amount=%s", step.token, step.amount)
        return tx_hash

    async def redeem(self, step: PlanStep) -> str:
        tx_hash = f"dry-run-redeem-{next(self._seq)}"
        self.submitted.append((tx_hash, step))
        log.info("dry_run redeem token=%s amount=%s target=%s", step.token, step.amount, step.redeem_target)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        return TxReceipt(tx_hash=tx_hash, status=1, block_number=0)
