from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from vaultredeem.data.http_service import HttpService
from vaultredeem.domain import SourceUnavailable
from vaultredeem.eligibility.merkle import to_bytes32_list

log = logging.getLogger("vaultredeem.proof_source")

SHARD_PREFIX_LEN = 2  # 256 shards

ROOT_FILES = ("data/merkleRoot.json", "merkleRoot.json")
BIG_PROOF_FILES = ("data/proofs.json", "proofs.json")


def address_shard(address: str) -> str:
    low = str(address or "").lower()
    return low[2:2 + SHARD_PREFIX_LEN] if low.startswith("0x") else low[:SHARD_PREFIX_LEN]


def candidate_paths(root: str, address: str) -> list[str]:
    """Relative paths probed for one address, most specific first."""
    a = str(address).lower()
    shard = address_shard(a)
    r = str(root).lower()
    return [
        f"proofs/{r}/{a}.json",
        f"proofs/{r}/{shard}.json",
        f"proofs/shards/{r}/{shard}.json",
        f"proofs/{a}.json",
        f"proofs/{shard}.json",
        f"data/shards/{shard}.json",
    ]


def extract_proof(payload, address: str) -> tuple[str, ...] | None:
    """Pull the proof for ``address`` out of any supported file shape.

    Accepted: a bare list, ``{"proof": [...]}``, a shard or full map
    ``{"0xaddr": [...]}`` and ``{"merkleRoot": ..., "proofs": {...}}``.
    ``None`` means the file does not mention the address.
    """
    a = str(address).lower()
    if isinstance(payload, list):
        return to_bytes32_list(payload)
    if not isinstance(payload, dict):
        return None
    if isinstance(payload.get("proof"), list):
        return to_bytes32_list(payload["proof"])
    proofs = payload.get("proofs")
    if isinstance(proofs, dict):
        payload = proofs
    for key, value in payload.items():
        if str(key).lower() == a:
            return to_bytes32_list(value)
    return None


class ProofSource:
    """Loads allow-list files from a directory or an HTTP base URL."""

    def __init__(self, base: str, http: HttpService | None = None, timeout: float = 6.0):
        self.base = str(base or "").rstrip("/")
        self.http = http
        self.timeout = max(0.1, float(timeout))
        self._file_root: str | None = None
        self._root_loaded = False

    @property
    def is_remote(self) -> bool:
        return self.base.startswith(("http://", "https://"))

    async def _fetch(self, rel: str):
        """One candidate; ``None`` when it simply does not exist."""
        if self.is_remote:
            if self.http is None:
                raise SourceUnavailable(rel, "no http client configured")
            url = f"{self.base}/{rel}"
            try:
                return await asyncio.wait_for(
                    self.http.get_json(url, timeout=self.timeout, cache_ttl=0.0), self.timeout
                )
            except asyncio.TimeoutError:
                raise SourceUnavailable(url, f"timed out after {self.timeout:.1f}s")
            except Exception as e:
                if getattr(e, "status", None) == 404:
                    return None
                raise SourceUnavailable(url, str(e))

        path = Path(self.base or ".") / rel
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise SourceUnavailable(str(path), f"unreadable: {e}")

    async def _scan(self, paths, pick):
        """First non-``None`` ``pick(payload)`` across ``paths``; failed candidates are skipped."""
        for rel in paths:
            try:
                payload = await self._fetch(rel)
            except SourceUnavailable as e:
                log.debug("proof candidate failed: %s", e)
                continue
            if payload is None:
                continue
            found = pick(payload)
            if found is not None:
                log.debug("allow-list data found in %s", rel)
                return found
        return None

    async def file_root(self) -> str | None:
        """Root published next to the proofs, loaded once."""
        if self._root_loaded:
            return self._file_root

        def _root(payload):
            if isinstance(payload, dict) and isinstance(payload.get("merkleRoot"), str):
                return payload["merkleRoot"]
            return None

        self._file_root = await self._scan(ROOT_FILES, _root) or await self._scan(BIG_PROOF_FILES, _root)
        self._root_loaded = True
        return self._file_root

    async def proof_for(self, address: str, root: str) -> tuple[str, ...] | None:
        proof = await self._scan(
            candidate_paths(root, address),
            lambda payload: extract_proof(payload, address) or None,
        )
        if proof is not None:
            return proof
        return await self._scan(BIG_PROOF_FILES, lambda payload: extract_proof(payload, address))

    def reset(self) -> None:
        self._file_root = None
        self._root_loaded = False
