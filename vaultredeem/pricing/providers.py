from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable

from vaultredeem.domain import PriceReading, SourceUnavailable
from vaultredeem.numeric.fixed_point import USD18, invert_price18, normalize_price18

log = logging.getLogger("vaultredeem.pricing")


@dataclass(frozen=True)
class PriceProvider:
    """One way of obtaining a 1e18 USD price.

    ``kind`` tags the strategy (override, chainlink, vault_oracle, http_json);
    ``fetch`` does the work and raises ``SourceUnavailable`` on failure.
    """

    kind: str
    source_id: str
    fetch: Callable[[], Awaitable[PriceReading]]


def _reading(raw: int, decimals: int, source_id: str, invert: bool = False) -> PriceReading:
    if raw <= 0:
        raise SourceUnavailable(source_id, f"non-positive answer {raw}")
    price18 = invert_price18(raw, decimals) if invert else normalize_price18(raw, decimals)
    return PriceReading(price18=price18, source_id=source_id)


def override_provider(price18: int) -> PriceProvider:
    async def fetch() -> PriceReading:
        if price18 <= 0:
            raise SourceUnavailable("override", "override price not set")
        return PriceReading(price18=int(price18), source_id="override")

    return PriceProvider(kind="override", source_id="override", fetch=fetch)


def chainlink_provider(reader, feed_address: str) -> PriceProvider:
    source_id = f"chainlink:{feed_address}"

    async def fetch() -> PriceReading:
        try:
            raw, decimals = await reader.oracle_latest_round_data(feed_address)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(source_id, str(e))
        return _reading(raw, decimals, source_id)

    return PriceProvider(kind="chainlink", source_id=source_id, fetch=fetch)


def vault_oracle_provider(reader, invert: bool = False) -> PriceProvider:
    """The vault's own ``oracle()``, whichever of the three ABIs it speaks."""
    source_id = "vault_oracle"

    async def fetch() -> PriceReading:
        try:
            oracle = await reader.oracle_address()
        except Exception as e:
            raise SourceUnavailable(source_id, f"oracle() failed: {e}")
        if not oracle or int(str(oracle), 16) == 0:
            raise SourceUnavailable(source_id, "vault has no oracle configured")

        errors = []
        for shape in ("latest_price", "latest_answer", "latest_round_data"):
            try:
                raw, decimals = await getattr(reader, f"oracle_{shape}")(oracle)
                return _reading(raw, decimals, f"{source_id}:{shape}", invert=invert)
            except Exception as e:
                errors.append(f"{shape}: {e}")
        raise SourceUnavailable(source_id, "; ".join(errors))

    return PriceProvider(kind="vault_oracle", source_id=source_id, fetch=fetch)


def http_json_provider(http, url: str, field: str, timeout: float = 5.0) -> PriceProvider:
    """Decimal USD price at a dotted ``field`` path of a JSON document."""
    source_id = f"http:{url}"

    async def fetch() -> PriceReading:
        try:
            payload = await http.get_json(url, timeout=timeout, cache_ttl=0.0)
        except Exception as e:
            raise SourceUnavailable(source_id, str(e))
        value = payload
        for part in [p for p in str(field or "").split(".") if p]:
            if isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            elif isinstance(value, dict) and part in value:
                value = value[part]
            else:
                raise SourceUnavailable(source_id, f"field {field!r} missing")
        try:
            price = Decimal(str(value))
        except InvalidOperation:
            raise SourceUnavailable(source_id, f"not a number: {value!r}")
        if not price.is_finite() or price <= 0:
            raise SourceUnavailable(source_id, f"unusable price {value!r}")
        return PriceReading(price18=int(price * USD18), source_id=source_id)

    return PriceProvider(kind="http_json", source_id=source_id, fetch=fetch)
