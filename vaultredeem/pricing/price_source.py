from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from vaultredeem.domain import NoPriceAvailable, PriceReading, SourceUnavailable
from vaultredeem.pricing.providers import PriceProvider

log = logging.getLogger("vaultredeem.pricing")


class PriceSource:
    """Ordered price providers with a per-attempt timeout.

    An operator override above zero short-circuits everything. Otherwise each
    provider gets ``timeout`` seconds; a timed-out attempt is cancelled and the
    next one starts. ``last_reading`` only ever holds the result of the newest
    request, so a slow older call that finishes late cannot clobber it.
    """

    def __init__(
        self,
        providers: Sequence[PriceProvider],
        timeout: float = 4.0,
        override_price18: int | None = None,
    ):
        self.providers = list(providers)
        self.timeout = max(0.01, float(timeout))
        self.override_price18 = override_price18
        self.last_reading: PriceReading | None = None
        self._seq = 0

    async def resolve_with_report(self) -> tuple[PriceReading, list[str]]:
        self._seq += 1
        seq = self._seq

        if self.override_price18 is not None and self.override_price18 > 0:
            reading = PriceReading(price18=int(self.override_price18), source_id="override")
            self._publish(seq, reading)
            return reading, []

        failures: list[str] = []
        for provider in self.providers:
            try:
                reading = await asyncio.wait_for(provider.fetch(), self.timeout)
            except asyncio.TimeoutError:
                failures.append(f"{provider.source_id}: timed out after {self.timeout:.2f}s")
                continue
            except SourceUnavailable as e:
                failures.append(str(e))
                continue
            except Exception as e:
                failures.append(f"{provider.source_id}: {e}")
                continue
            if not reading.usable:
                failures.append(f"{provider.source_id}: unusable price {reading.price18}")
                continue
            if failures:
                log.warning("price from %s after %d failed source(s): %s", reading.source_id, len(failures), failures)
            self._publish(seq, reading)
            return reading, failures

        raise NoPriceAvailable(failures)

    async def resolve(self) -> PriceReading:
        reading, _ = await self.resolve_with_report()
        return reading

    def _publish(self, seq: int, reading: PriceReading) -> None:
        if seq == self._seq:
            self.last_reading = reading
        else:
            log.debug("discarding stale price from %s (request %d < %d)", reading.source_id, seq, self._seq)
