import pytest

from vaultredeem.chain import LocalSigner, PromptSigner
from vaultredeem.domain import UserDeclined

KEY = "0x" + "11" * 32


class _Inner:
    address = "0x" + "1a" * 20

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx, description=""):
        self.signed.append(description)
        return b"\x01"


def test_prompt_decline_raises() -> None:
    inner = _Inner()
    signer = PromptSigner(inner, prompt=lambda _: "n")
    with pytest.raises(UserDeclined):
        signer.sign_transaction({"nonce": 3}, "redeem")
    assert inner.signed == []


def test_prompt_accept_delegates() -> None:
    inner = _Inner()
    asked = []
    signer = PromptSigner(inner, prompt=lambda q: asked.append(q) or " YES ")
    assert signer.sign_transaction({"nonce": 3}, "approve") == b"\x01"
    assert inner.signed == ["approve"]
    assert "nonce=3" in asked[0]
    assert signer.address == inner.address


def test_local_signer_signs_legacy_tx() -> None:
    signer = LocalSigner(KEY)
    raw = signer.sign_transaction(
        {
            "to": "0x" + "22" * 20,
            "value": 0,
            "gas": 21_000,
            "gasPrice": 10**9,
            "nonce": 0,
            "chainId": 1666600000,
        }
    )
    assert isinstance(raw, bytes) and len(raw) > 0
    assert signer.address.startswith("0x")
