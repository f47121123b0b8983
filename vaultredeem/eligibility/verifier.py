from __future__ import annotations

import logging

from vaultredeem.domain import EligibilityResult
from vaultredeem.eligibility.merkle import is_zero_root, same_root, to_bytes32_list, verify_proof
from vaultredeem.eligibility.proof_cache import ProofCache
from vaultredeem.eligibility.proof_source import ProofSource

log = logging.getLogger("vaultredeem.eligibility")

NOT_WHITELISTED = "not whitelisted"
PROOF_INVALID = "proof invalid for current chain root"


class EligibilityVerifier:
    """Decides allow-list membership against the root the vault enforces.

    The chain root is authoritative. A published file root that differs is
    reported as ``root_mismatch`` but never blocks on its own; only a proof that
    fails local recomputation against the chain root does.
    """

    def __init__(self, reader, source: ProofSource | None, cache: ProofCache | None = None):
        self.reader = reader
        self.source = source
        self.cache = cache
        self._memo: dict[str, tuple[str, ...]] = {}

    async def _find_proof(self, address: str, chain_root: str) -> tuple[str, ...] | None:
        key = f"{chain_root.lower()}::{address.lower()}"
        if key in self._memo:
            return self._memo[key]
        proof = self.cache.get(chain_root, address) if self.cache is not None else None
        if proof is None and self.source is not None:
            proof = await self.source.proof_for(address, chain_root)
            if proof and self.cache is not None:
                self.cache.put(chain_root, address, proof)
        if proof is not None:
            self._memo[key] = proof
        return proof

    async def check(self, address: str, proof=None) -> EligibilityResult:
        chain_root = await self.reader.merkle_root()
        if is_zero_root(chain_root):
            log.debug("allow-list disabled (zero root)")
            return EligibilityResult(ok=True, proof=(), chain_root=chain_root)

        file_root = await self.source.file_root() if self.source is not None else None
        mismatch = file_root is not None and not same_root(file_root, chain_root)
        if mismatch:
            log.warning("allow-list root mismatch file=%s chain=%s", file_root, chain_root)

        if proof is not None:
            found = to_bytes32_list(list(proof))
        else:
            found = await self._find_proof(address, chain_root)

        if found is None:
            return EligibilityResult(
                ok=False,
                chain_root=chain_root,
                file_root=file_root,
                root_mismatch=mismatch,
                reason=NOT_WHITELISTED,
            )

        ok = verify_proof(address, found, chain_root)
        return EligibilityResult(
            ok=ok,
            proof=tuple(found),
            chain_root=chain_root,
            file_root=file_root,
            root_mismatch=mismatch,
            reason="" if ok else PROOF_INVALID,
        )

    def reset(self) -> None:
        self._memo.clear()
        if self.source is not None:
            self.source.reset()
        if self.cache is not None:
            self.cache.clear_memory()
