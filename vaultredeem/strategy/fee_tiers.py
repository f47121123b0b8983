from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Iterable

from vaultredeem.domain import FeeTier, InvalidAmount, TierResolution

BPS_DENOMINATOR = 10_000


class ResolutionMode(str, Enum):
    CAP = "cap"  # first threshold >= value, else the top tier
    FLOOR = "floor"  # last threshold <= value, else none


def fee_percent_text(fee_bps: int) -> str:
    pct = Decimal(int(fee_bps)) / Decimal(100)
    return f"{pct:.2f}%"


def build_tiers(thresholds: Iterable[int], bps: Iterable[int]) -> list[FeeTier]:
    """Zip thresholds with bps (shortest wins) and sort ascending.

    ``sorted`` is stable, so equal thresholds keep their input order. Indexes
    are 1-based positions in the sorted table.
    """
    pairs = [(int(t), int(b)) for t, b in zip(thresholds, bps)]
    pairs.sort(key=lambda p: p[0])
    return [FeeTier(index=i + 1, threshold_usd=t, fee_bps=b) for i, (t, b) in enumerate(pairs)]


def resolve_fee_tier(
    usd_value: int,
    thresholds: Iterable[int],
    bps: Iterable[int],
    mode: ResolutionMode = ResolutionMode.CAP,
) -> TierResolution:
    tiers = build_tiers(thresholds, bps)
    if not tiers:
        return TierResolution.none()

    picked: FeeTier | None = None
    if mode == ResolutionMode.CAP:
        picked = next((t for t in tiers if t.threshold_usd >= usd_value), tiers[-1])
    elif mode == ResolutionMode.FLOOR:
        for tier in tiers:
            if tier.threshold_usd <= usd_value:
                picked = tier
    else:
        raise ValueError(f"unknown resolution mode: {mode!r}")

    if picked is None:
        return TierResolution.none()
    return TierResolution(
        tier_index=picked.index,
        fee_bps=picked.fee_bps,
        fee_percent_text=fee_percent_text(picked.fee_bps),
    )


def apply_fee(amount: int, fee_bps: int | None) -> tuple[int, int]:
    """Token-unit fee split as the vault charges it: ``(fee, net)``."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(f"amount must be a non-negative integer, got {amount!r}")
    bps = int(fee_bps or 0)
    if bps < 0 or bps > BPS_DENOMINATOR:
        raise InvalidAmount(f"fee bps out of range: {bps}")
    fee = amount * bps // BPS_DENOMINATOR
    return fee, amount - fee


class FeeTierResolver:
    """Fee table bound to one vault snapshot."""

    def __init__(self, thresholds: Iterable[int], bps: Iterable[int], mode: ResolutionMode = ResolutionMode.CAP):
        self.tiers = build_tiers(thresholds, bps)
        self.mode = mode

    @property
    def empty(self) -> bool:
        return not self.tiers

    def resolve(self, usd_value: int) -> TierResolution:
        return resolve_fee_tier(
            usd_value,
            [t.threshold_usd for t in self.tiers],
            [t.fee_bps for t in self.tiers],
            self.mode,
        )

    def split(self, amount: int, usd_value: int) -> tuple[TierResolution, int, int]:
        tier = self.resolve(usd_value)
        fee, net = apply_fee(amount, tier.fee_bps)
        return tier, fee, net
