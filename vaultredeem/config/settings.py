from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from vaultredeem.domain import ValidationError

DEFAULT_ENV_FILE = "~/.vaultredeem.env"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None or not str(raw).strip():
        value = default
    else:
        value = int(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None or not str(raw).strip():
        value = default
    else:
        value = float(raw)
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_str(name: str, default: str = "") -> str:
    return str(os.environ.get(name, default) or "").strip().strip('"').strip("'")


def _env_scaled(name: str, decimals: int) -> int | None:
    """Decimal env value (``"0.0123"``, ``"5"``) as an integer scaled by 10**decimals."""
    raw = _env_str(name)
    if not raw:
        return None
    try:
        value = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        raise ValidationError(f"{name} is not a number: {raw!r}")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"{name} must be a non-negative number: {raw!r}")
    scaled = int(value.scaleb(decimals))
    return scaled if scaled > 0 else None


@dataclass(frozen=True)
class Settings:
    rpc_urls: tuple[str, ...]
    chain_id: int
    vault_address: str
    proof_base_path: str
    price_feed_address: str
    price_http_url: str
    price_http_field: str
    oracle_price_override18: int | None
    oracle_invert: bool
    price_timeout_sec: float
    proof_timeout_sec: float
    force_legacy_gas: bool
    gas_price_override_wei: int | None
    gas_limit: int
    priority_fee_wei: int
    dry_run: bool
    data_dir: str
    log_level: str
    rpc_poa: bool
    private_key: str = field(default="", repr=False)

    @property
    def can_sign(self) -> bool:
        return bool(self.private_key)


def load_settings(env_file: str | None = None) -> Settings:
    path = os.path.expanduser(env_file or os.environ.get("VAULT_ENV_FILE", DEFAULT_ENV_FILE))
    if os.path.exists(path):
        load_dotenv(path, override=False)

    return Settings(
        rpc_urls=tuple(u.strip() for u in _env_str("RPC_URLS").split(",") if u.strip()),
        chain_id=_env_int("CHAIN_ID", 0, min_value=0),
        vault_address=_env_str("VAULT_ADDRESS"),
        proof_base_path=_env_str("PROOF_BASE_PATH", "."),
        price_feed_address=_env_str("PRICE_FEED_ADDRESS"),
        price_http_url=_env_str("PRICE_HTTP_URL"),
        price_http_field=_env_str("PRICE_HTTP_FIELD", "price"),
        oracle_price_override18=_env_scaled("ORACLE_PRICE_OVERRIDE", 18),
        oracle_invert=_env_bool("ORACLE_INVERT", False),
        price_timeout_sec=_env_float("PRICE_TIMEOUT_SEC", 4.0, min_value=0.1),
        proof_timeout_sec=_env_float("PROOF_TIMEOUT_SEC", 6.0, min_value=0.1),
        force_legacy_gas=_env_bool("FORCE_LEGACY_GAS", False),
        gas_price_override_wei=_env_scaled("GAS_PRICE_GWEI", 9),
        gas_limit=_env_int("GAS_LIMIT", 5_000_000, min_value=21_000),
        priority_fee_wei=_env_scaled("PRIORITY_FEE_GWEI", 9) or 2_000_000_000,
        dry_run=_env_bool("DRY_RUN", True),
        data_dir=_env_str("DATA_DIR", "./data"),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        rpc_poa=_env_bool("RPC_POA", False),
        private_key=_env_str("PRIVATE_KEY"),
    )
