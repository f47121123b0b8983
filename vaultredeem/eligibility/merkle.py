"""
Allow-list Merkle tree helpers.

Leaves are ``keccak256(abi.encodePacked(address))`` and every internal node
hashes its two children in ascending byte order, so a proof is just the list
of sibling hashes with no left/right flags. Odd nodes are promoted unchanged
to the next level (they are not duplicated).
"""

from __future__ import annotations

from typing import Iterable

from web3 import Web3

ZERO_ROOT = "0x" + "00" * 32


def _hex32(value: bytes) -> str:
    return "0x" + bytes(value).hex()


def _as_bytes(value) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return Web3.to_bytes(hexstr=str(value))


def leaf_for_address(address: str) -> bytes:
    return bytes(Web3.solidity_keccak(["address"], [Web3.to_checksum_address(address)]))


def hash_pair(a, b) -> bytes:
    x, y = _as_bytes(a), _as_bytes(b)
    if y < x:
        x, y = y, x
    return bytes(Web3.keccak(x + y))


def compute_root(leaf, proof: Iterable) -> str:
    node = _as_bytes(leaf)
    for sibling in proof:
        node = hash_pair(node, sibling)
    return _hex32(node)


def same_root(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return str(a).lower() == str(b).lower()


def verify_proof(address: str, proof: Iterable, root: str) -> bool:
    try:
        return same_root(compute_root(leaf_for_address(address), proof), root)
    except ValueError:
        return False


def is_zero_root(root) -> bool:
    if not root:
        return True
    try:
        return int(_as_bytes(root).hex() or "0", 16) == 0
    except ValueError:
        return False


def to_bytes32_list(values) -> tuple[str, ...]:
    """Sanitise a proof read from a file.

    Entries that are not hex, or longer than 32 bytes, are dropped; short ones
    are left-padded. A non-list input yields an empty proof.
    """
    if not isinstance(values, (list, tuple)):
        return ()
    out = []
    for v in values:
        try:
            raw = _as_bytes(v)
        except (TypeError, ValueError):
            continue
        if len(raw) > 32:
            continue
        out.append(_hex32(raw.rjust(32, b"\x00")))
    return tuple(out)


def build_tree(addresses: Iterable[str]) -> tuple[str, dict[str, tuple[str, ...]]]:
    """Root and per-address proofs for an allow-list.

    Addresses are lower-cased and de-duplicated keeping first occurrence;
    ``#`` lines are treated as comments.
    """
    seen: dict[str, None] = {}
    for a in addresses:
        a = str(a).strip().lower()
        if a and not a.startswith("#"):
            seen.setdefault(a, None)
    addrs = list(seen)
    if not addrs:
        return ZERO_ROOT, {}

    levels = [[leaf_for_address(a) for a in addrs]]
    while len(levels[-1]) > 1:
        cur = levels[-1]
        nxt = []
        for i in range(0, len(cur), 2):
            if i + 1 < len(cur):
                nxt.append(hash_pair(cur[i], cur[i + 1]))
            else:
                nxt.append(cur[i])
        levels.append(nxt)

    proofs: dict[str, tuple[str, ...]] = {}
    for idx, addr in enumerate(addrs):
        path = []
        pos = idx
        for level in levels[:-1]:
            sib = pos ^ 1
            if sib < len(level):
                path.append(_hex32(level[sib]))
            pos //= 2
        proofs[addr] = tuple(path)
    return _hex32(levels[-1][0]), proofs
