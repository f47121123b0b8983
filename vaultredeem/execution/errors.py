from __future__ import annotations

import re

from vaultredeem.domain import ChainRejection, UserDeclined, VaultRedeemError

# First match wins; order puts the specific vault reverts before the generic one.
REVERT_PATTERNS = [
    (re.compile(r"round not started", re.I), ChainRejection.ROUND_NOT_STARTED,
     "round has not started yet (round delay in progress)"),
    (re.compile(r"no funds", re.I), ChainRejection.NO_FUNDS,
     "vault has no funds for this round"),
    (re.compile(r"contract is locked", re.I), ChainRejection.CONTRACT_LOCKED,
     "contract is locked"),
    (re.compile(r"not whitelisted", re.I), ChainRejection.NOT_WHITELISTED,
     "wallet is not on the allow-list"),
    (re.compile(r"insufficient allowance", re.I), ChainRejection.INSUFFICIENT_ALLOWANCE,
     "allowance too low for the selected token"),
    (re.compile(r"insufficient funds|exceeds balance", re.I), ChainRejection.INSUFFICIENT_BALANCE,
     "insufficient balance for amount or gas"),
    (re.compile(r"execution reverted|reverted", re.I), ChainRejection.REVERTED,
     "transaction reverted by the contract"),
]

USER_REJECTED_CODES = {4001, "4001", "ACTION_REJECTED"}


def _error_code(err: BaseException):
    code = getattr(err, "code", None)
    if code is not None:
        return code
    for arg in getattr(err, "args", ()):
        if isinstance(arg, dict):
            if "code" in arg:
                return arg["code"]
            data = arg.get("data")
            if isinstance(data, dict) and "code" in data:
                return data["code"]
    return None


def is_user_rejection(err: BaseException) -> bool:
    if isinstance(err, UserDeclined):
        return True
    return _error_code(err) in USER_REJECTED_CODES


def error_text(err: BaseException) -> str:
    for attr in ("message", "reason"):
        value = getattr(err, attr, None)
        if isinstance(value, str) and value:
            return value
    for arg in getattr(err, "args", ()):
        if isinstance(arg, dict) and isinstance(arg.get("message"), str):
            return arg["message"]
    return str(err) or type(err).__name__


def normalize_error(err: BaseException) -> VaultRedeemError:
    """Map any failure from signing or broadcasting to the redeem error taxonomy."""
    if is_user_rejection(err):
        return err if isinstance(err, UserDeclined) else UserDeclined(error_text(err))
    if isinstance(err, VaultRedeemError):
        return err
    text = error_text(err)
    for pattern, category, message in REVERT_PATTERNS:
        if pattern.search(text):
            return ChainRejection(category, message, raw=text)
    return VaultRedeemError(text)
