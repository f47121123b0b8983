from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable

from web3 import Web3

from vaultredeem.domain import (
    PlanPreview,
    PlanStep,
    PriceReading,
    RedeemPlan,
    RedeemRequest,
    StaleData,
    TierResolution,
    ValidationError,
)
from vaultredeem.numeric.fixed_point import (
    parse_units,
    token_to_usd_fixed,
    usd_fixed_to_token,
    usd_integer_to_stable,
)
from vaultredeem.strategy.fee_tiers import ResolutionMode, apply_fee, resolve_fee_tier

log = logging.getLogger("vaultredeem.planner")

REASON_ZERO_AMOUNT = "amount must be greater than zero"
REASON_LIMIT = "exceeds daily limit"
REASON_ROUND_INACTIVE = "round not active"
REASON_ROUND_NOT_STARTED = "round not started"
REASON_LOCKED = "contract locked"
REASON_PAUSED = "vault paused"
REASON_UNSUPPORTED = "token not supported"
REASON_BAD_TARGET = "invalid redeem target"
REASON_NO_PRICE = "price unavailable"
REASON_LIQUIDITY = "insufficient liquidity"


def _addr(name: str, value: str) -> str:
    if not value or not Web3.is_address(value):
        raise ValidationError(f"{name} is not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def _failed(value) -> bool:
    return isinstance(value, BaseException)


class RedeemPlanner:
    """Builds a fully previewed, immutable ``RedeemPlan``.

    Everything the vault will check is read up front and reported as a
    blocking reason, so a plan that comes back ``ok`` should not revert for a
    predictable cause. Non-critical read failures only add warnings.
    """

    def __init__(
        self,
        reader,
        verifier,
        preflight,
        price_source,
        spender: str,
        stable_tokens: Iterable[str] | None = None,
        reference_token: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.reader = reader
        self.verifier = verifier
        self.preflight = preflight
        self.price_source = price_source
        self.spender = Web3.to_checksum_address(spender)
        self.stable_tokens = None if stable_tokens is None else {s.lower() for s in stable_tokens if s}
        self.reference_token = reference_token.lower() if reference_token else None
        self.clock = clock

    async def _targets(self) -> tuple[set[str], str | None]:
        stable = self.stable_tokens
        reference = self.reference_token
        if stable is None:
            try:
                stable = {str(await self.reader.stable_token()).lower()}
            except Exception as e:
                log.warning("stable token read failed: %s", e)
                stable = set()
            self.stable_tokens = stable
        if reference is None:
            try:
                reference = str(await self.reader.reference_token()).lower()
            except Exception as e:
                log.warning("reference token read failed: %s", e)
                reference = None
            self.reference_token = reference
        return stable, reference

    async def _price(self, needed: bool):
        if not needed:
            return None
        return await self.price_source.resolve_with_report()

    async def prepare(self, request: RedeemRequest) -> RedeemPlan:
        user = _addr("user", request.user)
        token = _addr("token_in", request.token_in)
        target = _addr("redeem_target", request.redeem_target)

        decimals = await self.reader.token_decimals(token)
        amount = parse_units(request.amount_human, decimals)

        stable, reference = await self._targets()
        target_l = target.lower()
        target_is_stable = target_l in stable
        target_is_reference = reference is not None and target_l == reference

        reasons: list[str] = []
        warnings: list[str] = []

        if amount == 0:
            return RedeemPlan(
                steps=(),
                preview=PlanPreview(0, 0, 0, TierResolution.none(), token_decimals=decimals),
                reasons=(REASON_ZERO_AMOUNT,),
            )

        (
            elig,
            limit,
            price_res,
            round_info,
            locked,
            tiers,
            fixed_price,
            supported,
            allowance,
            balances,
            out_decimals,
        ) = await asyncio.gather(
            self.verifier.check(user, request.proof),
            self.preflight.check(user, token, request.amount_human, decimals),
            self._price(target_is_reference),
            self.reader.round_info(),
            self.reader.is_locked(),
            self.reader.fee_tiers(),
            self.reader.fixed_usd_price(token),
            self.reader.is_token_supported(token),
            self.reader.allowance(token, user, self.spender),
            self.reader.vault_balances(),
            self.reader.token_decimals(target),
            return_exceptions=True,
        )

        # eligibility
        proof: tuple[str, ...] = ()
        if _failed(elig):
            reasons.append(f"eligibility check failed: {elig}")
        else:
            proof = elig.proof
            if not elig.ok:
                reasons.append(elig.reason)
            if elig.root_mismatch:
                stale = StaleData(
                    f"allow-list root mismatch (file {elig.file_root}, chain {elig.chain_root}); chain root is used"
                )
                warnings.append(str(stale))

        # daily limit
        if _failed(limit):
            reasons.append(f"limit check failed: {limit}")
        elif not limit.ok:
            reasons.append(limit.reason or REASON_LIMIT)

        # round / lock
        if _failed(round_info):
            reasons.append(f"round info unavailable: {round_info}")
        else:
            if not round_info.is_active:
                reasons.append(REASON_ROUND_INACTIVE)
            if round_info.start_time and self.clock() < round_info.start_time:
                reasons.append(REASON_ROUND_NOT_STARTED)
            if round_info.paused:
                reasons.append(REASON_PAUSED)
        if _failed(locked):
            warnings.append(f"could not read lock status: {locked}")
        elif locked:
            reasons.append(REASON_LOCKED)

        if _failed(supported):
            reasons.append(f"token support check failed: {supported}")
        elif not supported:
            reasons.append(REASON_UNSUPPORTED)

        if not (target_is_stable or target_is_reference):
            reasons.append(REASON_BAD_TARGET)

        # prices
        price: PriceReading | None = None
        if _failed(price_res):
            reasons.append(REASON_NO_PRICE)
            warnings.append(f"price source degraded: {price_res}")
        elif price_res is not None:
            price, failures = price_res
            if failures:
                warnings.append(f"price source degraded: {'; '.join(failures)}")
        if _failed(fixed_price):
            reasons.append(f"{REASON_NO_PRICE}: {fixed_price}")
            fixed_price = 0
        elif int(fixed_price) <= 0:
            reasons.append(REASON_NO_PRICE)

        if _failed(tiers):
            reasons.append(f"fee tiers unavailable: {tiers}")
            thresholds, bps = [], []
        else:
            thresholds, bps = tiers

        if _failed(out_decimals):
            warnings.append(f"could not read redeem target decimals, assuming 18: {out_decimals}")
            out_decimals = 18

        # preview
        gross_usd = token_to_usd_fixed(amount, decimals, int(fixed_price)) if fixed_price else 0
        tier = resolve_fee_tier(gross_usd, thresholds, bps, ResolutionMode.CAP)
        fee_amount, net_amount = apply_fee(amount, tier.fee_bps)
        net_usd = token_to_usd_fixed(net_amount, decimals, int(fixed_price)) if fixed_price else 0
        fee_usd = gross_usd - net_usd

        amount_out = 0
        if target_is_stable:
            amount_out = usd_integer_to_stable(net_usd, out_decimals)
        elif target_is_reference and price is not None:
            amount_out = usd_fixed_to_token(net_usd, out_decimals, price.price18)

        if _failed(balances):
            warnings.append(f"could not read vault balances: {balances}")
        elif target_is_stable or target_is_reference:
            available = balances.get("stable" if target_is_stable else "reference", 0)
            if amount_out > available:
                reasons.append(REASON_LIQUIDITY)

        # steps
        steps: list[PlanStep] = []
        if _failed(allowance):
            warnings.append(f"could not read allowance, approval assumed: {allowance}")
            allowance = 0
        if int(allowance) < amount:
            steps.append(PlanStep(kind=PlanStep.APPROVE, token=token, amount=amount, spender_or_target=self.spender))
        steps.append(
            PlanStep(
                kind=PlanStep.REDEEM,
                token=token,
                amount=amount,
                spender_or_target=self.spender,
                redeem_target=target,
                proof=proof,
            )
        )

        preview = PlanPreview(
            gross_usd=gross_usd,
            fee_usd=fee_usd,
            net_usd=net_usd,
            tier=tier,
            fee_amount=fee_amount,
            amount_out=amount_out,
            token_decimals=decimals,
            out_decimals=out_decimals,
            price=price,
        )
        plan = RedeemPlan(
            steps=tuple(steps),
            preview=preview,
            warnings=tuple(dict.fromkeys(warnings)),
            reasons=tuple(dict.fromkeys(reasons)),
        )
        log.info(
            "plan ok=%s gross_usd=%s fee_usd=%s net_usd=%s tier=%s steps=%s reasons=%s",
            plan.ok, gross_usd, fee_usd, net_usd, tier.tier_index, [s.kind for s in steps], list(plan.reasons),
        )
        return plan
