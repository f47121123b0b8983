from __future__ import annotations

import asyncio

from web3 import Web3

from vaultredeem.chain.abi import (
    CHAINLINK_ABI,
    ERC20_ABI,
    ORACLE_LATEST_ANSWER_ABI,
    ORACLE_LATEST_PRICE_ABI,
    VAULT_ABI,
)
from vaultredeem.domain import RoundInfo


class VaultReader:
    """Read side of the vault and its tokens.

    web3's HTTP provider is synchronous, so every call is pushed to the default
    executor and awaited; callers can fan reads out with ``asyncio.gather``.
    """

    def __init__(self, w3: Web3, vault_address: str):
        self.w3 = w3
        self.vault_address = Web3.to_checksum_address(vault_address)
        self.vault = w3.eth.contract(address=self.vault_address, abi=VAULT_ABI)

    async def _run(self, fn):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    def _erc20(self, token: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    async def chain_id(self) -> int:
        return int(await self._run(lambda: self.w3.eth.chain_id))

    async def daily_limit_usd(self) -> int:
        return int(await self._run(lambda: self.vault.functions.dailyLimitUsd().call()))

    async def user_limit_usd(self, wallet: str) -> int:
        """Remaining allowance for ``wallet`` today, in whole USD."""
        addr = Web3.to_checksum_address(wallet)
        return int(await self._run(lambda: self.vault.functions.getUserLimit(addr).call()) or 0)

    async def fee_tiers(self) -> tuple[list[int], list[int]]:
        thresholds, bps = await self._run(lambda: self.vault.functions.getFeeTiers().call())
        return [int(x) for x in thresholds], [int(x) for x in bps]

    async def fixed_usd_price(self, token: str) -> int:
        addr = Web3.to_checksum_address(token)
        return int(await self._run(lambda: self.vault.functions.fixedUsdPrice(addr).call()))

    async def is_token_supported(self, token: str) -> bool:
        addr = Web3.to_checksum_address(token)
        try:
            return bool(await self._run(lambda: self.vault.functions.supportedToken(addr).call()))
        except Exception:
            listed = await self._run(lambda: self.vault.functions.getSupportedTokens().call())
            return addr.lower() in {str(x).lower() for x in listed or []}

    async def merkle_root(self) -> str:
        raw = await self._run(lambda: self.vault.functions.merkleRoot().call())
        return Web3.to_hex(raw)

    async def oracle_address(self) -> str:
        return str(await self._run(lambda: self.vault.functions.oracle().call()))

    async def round_info(self) -> RoundInfo:
        r = await self._run(lambda: self.vault.functions.getRoundInfo().call())
        return RoundInfo(
            round_id=int(r[0]),
            start_time=int(r[1]),
            is_active=bool(r[2]),
            paused=bool(r[3]),
            limit_usd=int(r[4]),
        )

    async def is_locked(self) -> bool:
        return bool(await self._run(lambda: self.vault.functions.isLocked().call()))

    async def vault_balances(self) -> dict[str, int]:
        r = await self._run(lambda: self.vault.functions.getVaultBalances().call())
        return {"reference": int(r[0]), "stable": int(r[1])}

    async def reference_token(self) -> str:
        return str(await self._run(lambda: self.vault.functions.wONE().call()))

    async def stable_token(self) -> str:
        return str(await self._run(lambda: self.vault.functions.usdc().call()))

    async def token_decimals(self, token: str) -> int:
        erc = self._erc20(token)
        return int(await self._run(lambda: erc.functions.decimals().call()))

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        erc = self._erc20(token)
        o = Web3.to_checksum_address(owner)
        s = Web3.to_checksum_address(spender)
        return int(await self._run(lambda: erc.functions.allowance(o, s).call()))

    # Oracle shapes. Each returns (raw_answer, decimals).

    async def oracle_latest_price(self, oracle: str) -> tuple[int, int]:
        c = self.w3.eth.contract(address=Web3.to_checksum_address(oracle), abi=ORACLE_LATEST_PRICE_ABI)
        price, decimals = await self._run(lambda: c.functions.latestPrice().call())
        return int(price), int(decimals)

    async def oracle_latest_answer(self, oracle: str) -> tuple[int, int]:
        c = self.w3.eth.contract(address=Web3.to_checksum_address(oracle), abi=ORACLE_LATEST_ANSWER_ABI)
        answer, decimals = await asyncio.gather(
            self._run(lambda: c.functions.latestAnswer().call()),
            self._run(lambda: c.functions.decimals().call()),
        )
        return int(answer), int(decimals)

    async def oracle_latest_round_data(self, oracle: str) -> tuple[int, int]:
        c = self.w3.eth.contract(address=Web3.to_checksum_address(oracle), abi=CHAINLINK_ABI)
        rd, decimals = await asyncio.gather(
            self._run(lambda: c.functions.latestRoundData().call()),
            self._run(lambda: c.functions.decimals().call()),
        )
        return int(rd[1]), int(decimals)
