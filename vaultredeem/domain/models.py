from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    READY = "ready"
    BLOCKED = "blocked"
    APPROVING = "approving"
    REDEEMING = "redeeming"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class FeeTier:
    index: int
    threshold_usd: int
    fee_bps: int


@dataclass(frozen=True)
class TierResolution:
    tier_index: int | None
    fee_bps: int | None
    fee_percent_text: str | None

    @classmethod
    def none(cls) -> "TierResolution":
        return cls(tier_index=None, fee_bps=None, fee_percent_text=None)

    @property
    def found(self) -> bool:
        return self.tier_index is not None


@dataclass(frozen=True)
class PriceReading:
    price18: int
    source_id: str
    decimals: int = 18

    @property
    def usable(self) -> bool:
        return self.price18 > 0


@dataclass(frozen=True)
class EligibilityResult:
    ok: bool
    proof: tuple[str, ...] = ()
    chain_root: str | None = None
    file_root: str | None = None
    root_mismatch: bool = False
    reason: str = ""


@dataclass(frozen=True)
class LimitCheck:
    ok: bool
    amount_usd18: int = 0
    remaining_usd18: int = 0
    reason: str = ""


@dataclass(frozen=True)
class RoundInfo:
    round_id: int
    start_time: int
    is_active: bool
    paused: bool
    limit_usd: int


@dataclass(frozen=True)
class RedeemRequest:
    user: str
    token_in: str
    amount_human: str
    redeem_target: str
    proof: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PlanStep:
    kind: str
    token: str
    amount: int
    spender_or_target: str
    redeem_target: str = ""
    proof: tuple[str, ...] = ()
    value: int = 0

    APPROVE = "approve"
    REDEEM = "redeem"


@dataclass(frozen=True)
class PlanPreview:
    gross_usd: int
    fee_usd: int
    net_usd: int
    tier: TierResolution
    fee_amount: int = 0
    amount_out: int = 0
    token_decimals: int = 18
    out_decimals: int = 18
    price: PriceReading | None = None


@dataclass(frozen=True)
class RedeemPlan:
    """Fully previewed, immutable description of a redemption."""

    steps: tuple[PlanStep, ...]
    preview: PlanPreview
    warnings: tuple[str, ...] = ()
    reasons: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.reasons

    @property
    def approval_steps(self) -> tuple[PlanStep, ...]:
        return tuple(s for s in self.steps if s.kind == PlanStep.APPROVE)

    @property
    def redeem_step(self) -> PlanStep | None:
        for step in self.steps:
            if step.kind == PlanStep.REDEEM:
                return step
        return None


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: int
    block_number: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass
class RedeemSession:
    state: SessionState = SessionState.IDLE
    plan: RedeemPlan | None = None
    error: str | None = None
    approval_receipts: list[TxReceipt] = field(default_factory=list)
    redeem_receipt: TxReceipt | None = None
    busy: bool = False
    request_seq: int = 0
