from .merkle import (
    ZERO_ROOT,
    build_tree,
    compute_root,
    hash_pair,
    is_zero_root,
    leaf_for_address,
    to_bytes32_list,
    verify_proof,
)
from .proof_cache import ProofCache
from .proof_source import ProofSource
from .verifier import NOT_WHITELISTED, PROOF_INVALID, EligibilityVerifier

__all__ = [
    "ZERO_ROOT",
    "build_tree",
    "compute_root",
    "hash_pair",
    "is_zero_root",
    "leaf_for_address",
    "to_bytes32_list",
    "verify_proof",
    "ProofCache",
    "ProofSource",
    "NOT_WHITELISTED",
    "PROOF_INVALID",
    "EligibilityVerifier",
]
