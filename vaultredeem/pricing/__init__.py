from .price_source import PriceSource
from .providers import (
    PriceProvider,
    chainlink_provider,
    http_json_provider,
    override_provider,
    vault_oracle_provider,
)

__all__ = [
    "PriceSource",
    "PriceProvider",
    "chainlink_provider",
    "http_json_provider",
    "override_provider",
    "vault_oracle_provider",
]
