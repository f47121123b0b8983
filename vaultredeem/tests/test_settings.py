import pytest

from vaultredeem.config import load_settings
from vaultredeem.domain import ValidationError

KEYS = [
    "RPC_URLS",
    "CHAIN_ID",
    "VAULT_ADDRESS",
    "ORACLE_PRICE_OVERRIDE",
    "ORACLE_INVERT",
    "GAS_PRICE_GWEI",
    "PRIORITY_FEE_GWEI",
    "GAS_LIMIT",
    "DRY_RUN",
    "PRIVATE_KEY",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so monkeypatch also removes anything load_dotenv adds
    for key in KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults(tmp_path) -> None:
    s = load_settings(str(tmp_path / "missing.env"))
    assert s.rpc_urls == ()
    assert s.dry_run is True
    assert s.gas_limit == 5_000_000
    assert s.priority_fee_wei == 2 * 10**9
    assert s.oracle_price_override18 is None
    assert not s.can_sign


def test_env_values(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("RPC_URLS", "https://a, https://b ,")
    monkeypatch.setenv("ORACLE_PRICE_OVERRIDE", "0,0125")
    monkeypatch.setenv("GAS_PRICE_GWEI", "101")
    monkeypatch.setenv("DRY_RUN", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = load_settings(str(tmp_path / "missing.env"))
    assert s.rpc_urls == ("https://a", "https://b")
    assert s.oracle_price_override18 == 125 * 10**14
    assert s.gas_price_override_wei == 101 * 10**9
    assert s.dry_run is False
    assert s.log_level == "DEBUG"


def test_dotenv_file_does_not_override_environment(monkeypatch, tmp_path) -> None:
    env = tmp_path / "vault.env"
    env.write_text("VAULT_ADDRESS=0xfromfile\nCHAIN_ID=1666600000\nPRIVATE_KEY=abc\n")
    monkeypatch.setenv("CHAIN_ID", "1")
    s = load_settings(str(env))
    assert s.vault_address == "0xfromfile"
    assert s.chain_id == 1
    assert s.can_sign
    assert "abc" not in repr(s)


def test_bad_scaled_value(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("ORACLE_PRICE_OVERRIDE", "cheap")
    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "missing.env"))
