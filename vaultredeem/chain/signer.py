from __future__ import annotations

from typing import Callable

from eth_account import Account

from vaultredeem.domain import UserDeclined


class LocalSigner:
    """Signs with a private key held in process memory."""

    def __init__(self, private_key: str):
        self._acct = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._acct.address

    def sign_transaction(self, tx: dict, description: str = "") -> bytes:
        signed = self._acct.sign_transaction(tx)
        return bytes(signed.raw_transaction)


class PromptSigner:
    """Asks the operator before every signature; a refusal raises ``UserDeclined``."""

    def __init__(self, inner, prompt: Callable[[str], str] = input):
        self.inner = inner
        self.prompt = prompt

    @property
    def address(self) -> str:
        return self.inner.address

    def sign_transaction(self, tx: dict, description: str = "") -> bytes:
        answer = self.prompt(f"sign {description or 'transaction'} (nonce={tx.get('nonce')})? [y/N] ")
        if str(answer).strip().lower() not in {"y", "yes"}:
            raise UserDeclined(f"signature refused for {description or 'transaction'}")
        return self.inner.sign_transaction(tx, description)
