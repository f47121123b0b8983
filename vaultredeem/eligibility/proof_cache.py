from __future__ import annotations

import json
import logging
from pathlib import Path

log = logging.getLogger("vaultredeem.proof_cache")


def cache_key(root: str, address: str) -> str:
    return f"wl::{str(root).lower()}::{str(address).lower()}"


class ProofCache:
    """JSON file of proofs already fetched, keyed by root and address.

    A new chain root changes every key, so proofs for an old root are never
    served again.
    """

    def __init__(self, data_dir: str, filename: str = "proof_cache.json"):
        self.path = Path(data_dir) / filename
        self._entries: dict[str, list[str]] | None = None

    def _load(self) -> dict[str, list[str]]:
        if self._entries is not None:
            return self._entries
        entries: dict[str, list[str]] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text())
                if isinstance(raw, dict):
                    entries = {str(k): list(v) for k, v in raw.items() if isinstance(v, list)}
            except (OSError, ValueError) as e:
                log.warning("proof cache unreadable, starting empty: %s", e)
        self._entries = entries
        return entries

    def get(self, root: str, address: str) -> tuple[str, ...] | None:
        hit = self._load().get(cache_key(root, address))
        return tuple(hit) if hit else None

    def put(self, root: str, address: str, proof: tuple[str, ...]) -> None:
        if not proof:
            return
        entries = self._load()
        entries[cache_key(root, address)] = list(proof)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(entries, ensure_ascii=True, separators=(",", ":")))
        tmp.replace(self.path)

    def clear_memory(self) -> None:
        self._entries = None
