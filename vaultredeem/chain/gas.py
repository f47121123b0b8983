from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from web3 import Web3

log = logging.getLogger("vaultredeem.gas")

# Harmony mainnet / testnet reject eth_maxPriorityFeePerGas; they only take gasPrice.
LEGACY_ONLY_CHAIN_IDS = frozenset({1666600000, 1666700000})

DEFAULT_GAS_LIMIT = 5_000_000
FALLBACK_GAS_PRICE_WEI = Web3.to_wei(5, "gwei")
DEFAULT_PRIORITY_FEE_WEI = Web3.to_wei(2, "gwei")


@dataclass(frozen=True)
class GasStrategy:
    force_legacy: bool = False
    gas_price_override_wei: int | None = None
    fallback_gas_price_wei: int = FALLBACK_GAS_PRICE_WEI
    priority_fee_wei: int = DEFAULT_PRIORITY_FEE_WEI

    def use_legacy(self, chain_id: int | None) -> bool:
        return self.force_legacy or (chain_id is not None and int(chain_id) in LEGACY_ONLY_CHAIN_IDS)

    async def legacy_gas_price(self, w3) -> int:
        if self.gas_price_override_wei and self.gas_price_override_wei > 0:
            return int(self.gas_price_override_wei)
        loop = asyncio.get_running_loop()
        try:
            gp = int(await loop.run_in_executor(None, lambda: w3.eth.gas_price) or 0)
            if gp > 0:
                return gp
        except Exception as e:
            log.warning("gas price read failed, using fallback: %s", e)
        return int(self.fallback_gas_price_wei)

    async def fee_fields(self, w3, chain_id: int | None) -> dict[str, int]:
        """Fee part of a transaction dict: ``gasPrice`` or the EIP-1559 pair."""
        if self.use_legacy(chain_id):
            return {"gasPrice": await self.legacy_gas_price(w3)}

        loop = asyncio.get_running_loop()
        latest = await loop.run_in_executor(None, lambda: w3.eth.get_block("latest"))
        base_fee = latest.get("baseFeePerGas") if hasattr(latest, "get") else None
        if not base_fee:
            # pre-London chain that was not on the legacy list
            return {"gasPrice": await self.legacy_gas_price(w3)}
        pri_fee = int(self.priority_fee_wei)
        return {
            "maxFeePerGas": int(base_fee) * 2 + pri_fee,
            "maxPriorityFeePerGas": pri_fee,
        }
