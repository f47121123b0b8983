from __future__ import annotations

import asyncio
import json
import logging
import random
import time
import urllib.parse
from collections import defaultdict

import aiohttp


class HttpError(RuntimeError):
    def __init__(self, status: int, url: str):
        super().__init__(f"http {status} {url}")
        self.status = status
        self.url = url


class HttpService:
    """JSON-over-HTTP client for proof files and price endpoints.

    Requests to one host are serialized and spaced by ``min_gap_ms``. A 429
    puts the host into backoff (``Retry-After`` plus jitter); 5xx and transport
    errors are retried a few times. Any response younger than ``stale_ttl`` is
    served instead of an error when the host is failing. 4xx other than 429 is
    raised at once as ``HttpError`` so callers can tell "missing" from "down".
    """

    def __init__(
        self,
        *,
        conn_limit: int = 20,
        conn_per_host: int = 6,
        dns_ttl_sec: int = 300,
        keepalive_sec: float = 30.0,
        min_gap_ms: float = 0.0,
        retries_429: int = 2,
        retries_5xx: int = 2,
        default_cache_ttl: float = 0.0,
        default_stale_ttl: float = 60.0,
        user_agent: str = "vaultredeem/0.1",
        log: logging.Logger | None = None,
    ):
        self._conn_limit = max(1, int(conn_limit))
        self._conn_per_host = max(1, int(conn_per_host))
        self._dns_ttl_sec = max(0, int(dns_ttl_sec))
        self._keepalive_sec = max(5.0, float(keepalive_sec))
        self._min_gap_s = max(0.0, float(min_gap_ms) / 1000.0)
        self._retries_429 = max(0, int(retries_429))
        self._retries_5xx = max(0, int(retries_5xx))
        self._cache_ttl = max(0.0, float(default_cache_ttl))
        self._stale_ttl = max(1.0, float(default_stale_ttl))
        self._user_agent = user_agent
        self.log = log or logging.getLogger("vaultredeem.http")

        self._session: aiohttp.ClientSession | None = None
        self._cache: dict[str, tuple[float, object]] = {}
        self._backoff_until: dict[str, float] = {}
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._error_counts: dict[str, int] = defaultdict(int)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpService":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self._conn_limit,
                limit_per_host=self._conn_per_host,
                ttl_dns_cache=self._dns_ttl_sec,
                keepalive_timeout=self._keepalive_sec,
            )
            self._session = aiohttp.ClientSession(connector=connector, headers={"User-Agent": self._user_agent})
        return self._session

    def _cached(self, key: str, max_age: float):
        hit = self._cache.get(key)
        if hit is None or max_age <= 0 or time.time() - hit[0] > max_age:
            return None
        return hit

    def _error_tick(self, key: str, err, every: int = 20) -> None:
        self._error_counts[key] += 1
        n = self._error_counts[key]
        if n == 1 or n % every == 0:
            self.log.warning("%s failed %sx last=%s", key, n, err)

    async def _pace(self, host: str) -> None:
        gap = time.time() - self._last_request.get(host, 0.0)
        if gap < self._min_gap_s:
            await asyncio.sleep(self._min_gap_s - gap)
        self._last_request[host] = time.time()

    def _enter_backoff(self, host: str, retry_after: str | None, attempt: int) -> float:
        try:
            wait = max(1.0, float(retry_after or 2.0))
        except ValueError:
            wait = 2.0
        wait = min(90.0, wait + 0.35 * attempt + random.uniform(0.05, 0.35))
        self._backoff_until[host] = max(self._backoff_until.get(host, 0.0), time.time() + wait)
        return wait

    async def get_json(
        self,
        url: str,
        *,
        params: dict | None = None,
        timeout: float = 8.0,
        cache_ttl: float | None = None,
        stale_ttl: float | None = None,
    ):
        cache_ttl = self._cache_ttl if cache_ttl is None else max(0.0, float(cache_ttl))
        stale_ttl = self._stale_ttl if stale_ttl is None else max(1.0, float(stale_ttl))

        key = url + "?" + json.dumps(params or {}, sort_keys=True, separators=(",", ":"))
        fresh = self._cached(key, cache_ttl)
        if fresh is not None:
            return fresh[1]

        host = urllib.parse.urlparse(url).netloc
        lock = self._locks.setdefault(host, asyncio.Lock())
        async with lock:
            await self._pace(host)

            left = self._backoff_until.get(host, 0.0) - time.time()
            if left > 0:
                stale = self._cached(key, stale_ttl)
                if stale is not None:
                    return stale[1]
                raise HttpError(429, f"{url} (backoff {left:.0f}s left)")

            session = self._client()
            attempts = 1 + max(self._retries_429, self._retries_5xx)
            last_err: Exception | None = None
            for attempt in range(attempts):
                try:
                    async with session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=timeout)) as r:
                        if r.status == 429:
                            wait = self._enter_backoff(host, r.headers.get("Retry-After"), attempt)
                            if attempt < min(attempts - 1, self._retries_429):
                                await asyncio.sleep(wait)
                                continue
                            last_err = HttpError(429, url)
                            break
                        if r.status >= 500:
                            last_err = HttpError(r.status, url)
                            if attempt < self._retries_5xx:
                                await asyncio.sleep(0.25 * (attempt + 1))
                                continue
                            break
                        if r.status >= 400:
                            raise HttpError(r.status, url)
                        payload = await r.json(content_type=None)
                except HttpError:
                    raise
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    last_err = e
                    if attempt < attempts - 1:
                        await asyncio.sleep(0.2 + 0.15 * attempt)
                        continue
                    break
                self._cache[key] = (time.time(), payload)
                return payload

            stale = self._cached(key, stale_ttl)
            if stale is not None:
                self.log.warning("%s failing (%s), serving stale copy", host, last_err)
                return stale[1]
            self._error_tick(f"http_get_json {host}", last_err)
            if isinstance(last_err, HttpError):
                raise last_err
            raise RuntimeError(f"http get failed: {url} err={last_err}")
