from .errors import (
    ChainRejection,
    DivisionByZero,
    InvalidAmount,
    InvalidTransition,
    NoPriceAvailable,
    SessionBusy,
    SourceUnavailable,
    StaleData,
    UserDeclined,
    ValidationError,
    VaultRedeemError,
)
from .models import (
    EligibilityResult,
    FeeTier,
    LimitCheck,
    PlanPreview,
    PlanStep,
    PriceReading,
    RedeemPlan,
    RedeemRequest,
    RedeemSession,
    RoundInfo,
    SessionState,
    TierResolution,
    TxReceipt,
)

__all__ = [
    "ChainRejection",
    "DivisionByZero",
    "EligibilityResult",
    "FeeTier",
    "InvalidAmount",
    "InvalidTransition",
    "LimitCheck",
    "NoPriceAvailable",
    "PlanPreview",
    "PlanStep",
    "PriceReading",
    "RedeemPlan",
    "RedeemRequest",
    "RedeemSession",
    "RoundInfo",
    "SessionBusy",
    "SessionState",
    "SourceUnavailable",
    "StaleData",
    "TierResolution",
    "TxReceipt",
    "UserDeclined",
    "ValidationError",
    "VaultRedeemError",
]
