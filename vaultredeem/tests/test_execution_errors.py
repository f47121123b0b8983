import pytest

from vaultredeem.domain import ChainRejection, UserDeclined, ValidationError, VaultRedeemError
from vaultredeem.execution import is_user_rejection, normalize_error


@pytest.mark.parametrize(
    "text, category",
    [
        ("execution reverted: Round not started", ChainRejection.ROUND_NOT_STARTED),
        ("execution reverted: No funds for round", ChainRejection.NO_FUNDS),
        ("execution reverted: Contract is locked", ChainRejection.CONTRACT_LOCKED),
        ("execution reverted: Not whitelisted", ChainRejection.NOT_WHITELISTED),
        ("ERC20: insufficient allowance", ChainRejection.INSUFFICIENT_ALLOWANCE),
        ("insufficient funds for gas * price + value", ChainRejection.INSUFFICIENT_BALANCE),
        ("ERC20: transfer amount exceeds balance", ChainRejection.INSUFFICIENT_BALANCE),
        ("execution reverted", ChainRejection.REVERTED),
    ],
)
def test_revert_text_categories(text, category) -> None:
    err = normalize_error(RuntimeError(text))
    assert isinstance(err, ChainRejection)
    assert err.category == category
    assert err.raw == text


def test_wallet_rejection_codes() -> None:
    assert is_user_rejection(ValueError({"code": 4001, "message": "denied"}))
    assert is_user_rejection(ValueError({"data": {"code": "ACTION_REJECTED"}}))
    assert not is_user_rejection(ValueError({"code": -32000, "message": "nonce too low"}))

    declined = UserDeclined("no")
    assert normalize_error(declined) is declined


def test_own_errors_pass_through() -> None:
    err = ValidationError("bad")
    assert normalize_error(err) is err


def test_unknown_error_keeps_text() -> None:
    err = normalize_error(ConnectionError("connection reset"))
    assert type(err) is VaultRedeemError
    assert str(err) == "connection reset"
