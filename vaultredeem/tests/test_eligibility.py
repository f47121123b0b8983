import asyncio
import json
from pathlib import Path

from fakes import FakeReader

from vaultredeem.eligibility import (
    NOT_WHITELISTED,
    PROOF_INVALID,
    EligibilityVerifier,
    ProofCache,
    ProofSource,
    build_tree,
)
from vaultredeem.eligibility.proof_source import address_shard, candidate_paths, extract_proof

MEMBERS = ["0x" + c * 40 for c in "abc"]
OUTSIDER = "0x" + "d" * 40


def _publish(tmp_path: Path, file_root: str | None = None):
    root, proofs = build_tree(MEMBERS)
    (tmp_path / "proofs.json").write_text(
        json.dumps({"merkleRoot": file_root or root, "proofs": {a: list(p) for a, p in proofs.items()}})
    )
    return root, proofs


def test_member_passes_with_file_proof(tmp_path: Path) -> None:
    root, proofs = _publish(tmp_path)
    cache = ProofCache(str(tmp_path / "cache"))
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)), cache)
    out = asyncio.run(v.check(MEMBERS[1]))
    assert out.ok
    assert out.proof == proofs[MEMBERS[1]]
    assert not out.root_mismatch
    assert cache.get(root, MEMBERS[1]) == proofs[MEMBERS[1]]


def test_absent_address_not_whitelisted(tmp_path: Path) -> None:
    root, _ = _publish(tmp_path)
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(OUTSIDER))
    assert not out.ok
    assert out.reason == NOT_WHITELISTED
    assert out.proof == ()


def test_bad_supplied_proof_is_invalid(tmp_path: Path) -> None:
    root, _ = _publish(tmp_path)
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(MEMBERS[0], proof=["0x" + "ab" * 32]))
    assert not out.ok
    assert out.reason == PROOF_INVALID


def test_root_mismatch_is_only_a_warning(tmp_path: Path) -> None:
    root, _ = _publish(tmp_path, file_root="0x" + "99" * 32)
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(MEMBERS[2]))
    assert out.ok
    assert out.root_mismatch
    assert out.file_root == "0x" + "99" * 32


def test_stale_file_proof_fails_against_new_chain_root(tmp_path: Path) -> None:
    _publish(tmp_path)
    new_root, _ = build_tree(MEMBERS + [OUTSIDER])
    v = EligibilityVerifier(FakeReader(root=new_root), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(MEMBERS[0]))
    assert not out.ok
    assert out.reason == PROOF_INVALID
    assert out.root_mismatch


def test_zero_root_disables_allow_list(tmp_path: Path) -> None:
    v = EligibilityVerifier(FakeReader(), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(OUTSIDER))
    assert out.ok
    assert out.proof == ()


def test_per_address_file_wins_over_big_file(tmp_path: Path) -> None:
    root, proofs = _publish(tmp_path)
    target = tmp_path / "proofs" / root.lower()
    target.mkdir(parents=True)
    (target / f"{MEMBERS[0]}.json").write_text(json.dumps({"proof": list(proofs[MEMBERS[0]])}))
    (tmp_path / "proofs.json").write_text("{}")
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)))
    out = asyncio.run(v.check(MEMBERS[0]))
    assert out.ok


def test_reset_drops_memo(tmp_path: Path) -> None:
    root, _ = _publish(tmp_path)
    v = EligibilityVerifier(FakeReader(root=root), ProofSource(str(tmp_path)))
    asyncio.run(v.check(MEMBERS[0]))
    assert v._memo
    v.reset()
    assert not v._memo


def test_candidate_helpers() -> None:
    addr = "0xABcd" + "0" * 36
    assert address_shard(addr) == "ab"
    paths = candidate_paths("0xROOT", addr)
    assert paths[0] == f"proofs/0xroot/{addr.lower()}.json"
    assert paths[1] == "proofs/0xroot/ab.json"
    assert extract_proof({addr.lower(): ["0x01"]}, addr) == ("0x" + "00" * 31 + "01",)
    assert extract_proof({"other": []}, addr) is None
