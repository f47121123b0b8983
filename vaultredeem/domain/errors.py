from __future__ import annotations


class VaultRedeemError(Exception):
    """Base for every error raised by the redeem core."""


class ValidationError(VaultRedeemError):
    """Malformed caller input. Surfaced immediately, never retried."""


class InvalidAmount(ValidationError):
    pass


class DivisionByZero(ValidationError):
    pass


class SourceUnavailable(VaultRedeemError):
    """A single price/proof source failed; callers advance to the next one."""

    def __init__(self, source_id: str, message: str):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id


class NoPriceAvailable(SourceUnavailable):
    def __init__(self, failures: list[str] | None = None):
        self.failures = list(failures or [])
        detail = "; ".join(self.failures) if self.failures else "no providers configured"
        super().__init__("price", f"all providers failed ({detail})")


class StaleData(VaultRedeemError):
    """Cached allow-list data disagrees with the authoritative root."""


class ChainRejection(VaultRedeemError):
    """Decoded contract revert mapped to a user-facing category."""

    ROUND_NOT_STARTED = "round_not_started"
    NO_FUNDS = "no_funds"
    CONTRACT_LOCKED = "contract_locked"
    NOT_WHITELISTED = "not_whitelisted"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    REVERTED = "reverted"

    def __init__(self, category: str, message: str, raw: str = ""):
        super().__init__(message)
        self.category = category
        self.raw = raw


class UserDeclined(VaultRedeemError):
    """The key holder refused to sign."""


class SessionBusy(VaultRedeemError):
    pass


class InvalidTransition(VaultRedeemError):
    pass
