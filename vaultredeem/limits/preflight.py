from __future__ import annotations

import asyncio
import logging

from vaultredeem.domain import LimitCheck, ValidationError
from vaultredeem.numeric.fixed_point import parse_units, token_to_usd18, usd_integer_to_usd18

log = logging.getLogger("vaultredeem.limits")


class LimitPreflight:
    """Compares a requested amount with the wallet's remaining daily USD limit.

    The vault reports the remaining limit in whole USD; it is lifted to USD18
    here so both sides of the comparison share one scale. Never raises: every
    failure becomes ``ok=False`` with a reason.
    """

    def __init__(self, reader):
        self.reader = reader

    async def remaining_usd18(self, wallet: str) -> int:
        return usd_integer_to_usd18(await self.reader.user_limit_usd(wallet))

    async def daily_limit_usd(self) -> int:
        return await self.reader.daily_limit_usd()

    async def used_usd(self, wallet: str) -> int:
        limit, remaining = await asyncio.gather(
            self.reader.daily_limit_usd(),
            self.reader.user_limit_usd(wallet),
        )
        return max(0, min(int(limit), int(limit) - int(remaining)))

    async def check(self, wallet: str, token: str, amount_human, token_decimals: int = 18) -> LimitCheck:
        if not wallet:
            return LimitCheck(ok=False, reason="no wallet given")
        if not token:
            return LimitCheck(ok=False, reason="no token given")

        try:
            amount = parse_units(amount_human, token_decimals)
        except ValidationError as e:
            return LimitCheck(ok=False, reason=f"invalid amount: {e}")

        price_res, remaining_res = await asyncio.gather(
            self.reader.fixed_usd_price(token),
            self.remaining_usd18(wallet),
            return_exceptions=True,
        )
        if isinstance(price_res, BaseException):
            log.warning("limit preflight price read failed: %s", price_res)
            return LimitCheck(ok=False, reason=f"price read failed: {price_res}")
        if isinstance(remaining_res, BaseException):
            log.warning("limit preflight limit read failed: %s", remaining_res)
            return LimitCheck(ok=False, reason=f"limit read failed: {remaining_res}")
        if int(price_res) <= 0:
            return LimitCheck(ok=False, reason="token has no fixed USD price", remaining_usd18=remaining_res)

        amount_usd18 = token_to_usd18(amount, token_decimals, int(price_res))
        ok = amount_usd18 <= remaining_res
        return LimitCheck(
            ok=ok,
            amount_usd18=amount_usd18,
            remaining_usd18=remaining_res,
            reason="" if ok else "exceeds daily limit",
        )
