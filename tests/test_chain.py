"""
Tests for the proof chain verifier.

Covers:
- A 5-step chain verifies; swapping steps 2 and 3 yields ChainBroken
- Tampered responses (s + 1) yield ProofInvalid at the right position
- A proof spliced from a different genesis is rejected
- Final SRS must match the chain tip
- Pinned genesis point (pairing link to the first proof)
- ProofChain storage: load order, append-only semantics, file numbers in load errors
- Contributions that zero τ are rejected
"""

import pytest

from ptau.chain import ProofChain, check_chain, verify_chain
from ptau.errors import ChainBroken, MalformedFile, ZeroContribution
from ptau.genesis import GenesisReference
from ptau.schnorr import UpdateProof
from ptau.srs import SRS
from ptau.update import contribute, update


DELTAS = [5, 11, 23, 42, 60]


def build_chain(srs, deltas):
    """srs 에 deltas 를 순서대로 적용한 (SRS 목록, 증명 목록)."""
    versions = [srs]
    proofs = []
    for index, delta in enumerate(deltas, start=1):
        new_srs, proof = update(versions[-1], delta, index=index)
        versions.append(new_srs)
        proofs.append(proof)
    return versions, proofs


@pytest.fixture
def toy_chain(toy_srs):
    return build_chain(toy_srs, DELTAS)


# ─────────────────────────────────────────────────────────────────────
# 체인 검증
# ─────────────────────────────────────────────────────────────────────

class TestVerifyChain:
    """verify_chain 테스트."""

    def test_five_step_chain(self, toy, toy_chain):
        """An honest 5-step chain passes."""
        versions, proofs = toy_chain
        result = verify_chain(versions[0].digest(), proofs, versions[-1], toy)
        assert result
        assert result.details["count"] == 5
        assert result.details["final_digest"] == versions[-1].digest().hex()

    def test_swap_steps_2_and_3(self, toy, toy_chain):
        """Reordering proofs breaks the chain at position 2."""
        versions, proofs = toy_chain
        swapped = [proofs[0], proofs[2], proofs[1], proofs[3], proofs[4]]
        result = verify_chain(versions[0].digest(), swapped, versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 2

    def test_swap_with_renumbered_indices(self, toy, toy_chain):
        """Even with rewritten indices the digest links do not match."""
        versions, proofs = toy_chain
        p2, p3 = proofs[1], proofs[2]
        swapped = list(proofs)
        swapped[1] = UpdateProof(2, p3.commitment, p3.response, p3.old_digest,
                                 p3.new_digest, p3.old_point, p3.new_point, toy)
        swapped[2] = UpdateProof(3, p2.commitment, p2.response, p2.old_digest,
                                 p2.new_digest, p2.old_point, p2.new_point, toy)
        result = verify_chain(versions[0].digest(), swapped, versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 2

    def test_tampered_response(self, toy, toy_chain):
        """s + 1 on proof 3 is ProofInvalid at index 3."""
        versions, proofs = toy_chain
        proofs[2].response = proofs[2].response + 1
        result = verify_chain(versions[0].digest(), proofs, versions[-1], toy)
        assert result.kind == "ProofInvalid"
        assert result.index == 3

    def test_spliced_genesis(self, toy, toy_chain):
        """A chain built from a different genesis does not start at ours."""
        versions, proofs = toy_chain
        other = SRS.generate(4, toy, tau=7)
        result = verify_chain(other.digest(), proofs, versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 1

    def test_spliced_proof(self, toy, toy_srs, toy_chain):
        """A proof taken from a parallel chain breaks the link."""
        versions, proofs = toy_chain
        _, other_proofs = build_chain(toy_srs, [6, 7, 8])
        mixed = proofs[:2] + [other_proofs[2]] + proofs[3:]
        result = verify_chain(versions[0].digest(), mixed, versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 3

    def test_final_srs_mismatch(self, toy, toy_chain):
        """The final SRS must be the chain tip."""
        versions, proofs = toy_chain
        result = verify_chain(versions[0].digest(), proofs, versions[3], toy)
        assert result.kind == "ChainBroken"

    def test_missing_proof(self, toy, toy_chain):
        """A gap in indices is detected."""
        versions, proofs = toy_chain
        result = verify_chain(versions[0].digest(), proofs[:2] + proofs[3:], versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 3

    def test_empty_chain(self, toy, toy_srs):
        """With no proofs the final SRS must be the genesis SRS."""
        assert verify_chain(toy_srs.digest(), [], toy_srs, toy)
        assert not verify_chain(bytes(64), [], toy_srs, toy)

    def test_unchanged_point_is_zero_contribution(self, toy, toy_srs):
        """A proof with new_point == old_point is rejected before Schnorr."""
        proof = UpdateProof.create(1, 3, 3, toy_srs.digest(), toy_srs.digest(),
                                   toy.FR(1), toy)
        with pytest.raises(ZeroContribution):
            check_chain(toy_srs.digest(), [proof], toy_srs.digest(), 3, toy)

    def test_zeroed_tau_rejected(self, toy, toy_srs):
        """A contribution that sends τ·H to the identity cannot pass.

        With new_point = 0 the Schnorr equation collapses to s·old == T,
        so anyone can satisfy it without knowing a δ.
        """
        _, proof1 = update(toy_srs, 5)
        final = SRS([1, 0, 0, 0], [1, 0], toy)
        response = toy.FR(7)
        forged = UpdateProof(2, toy.scalar_mul(proof1.new_point, response), response,
                             proof1.new_digest, final.digest(), proof1.new_point, 0, toy)

        with pytest.raises(ZeroContribution):
            forged.check()
        assert not forged.verify()

        result = verify_chain(toy_srs.digest(), [proof1, forged], final, toy)
        assert result.kind == "ZeroContribution"
        assert result.index == 2

    def test_bls_chain(self, bls, bls_srs):
        """BLS12-381: a two-step chain passes and a swap fails."""
        versions, proofs = build_chain(bls_srs, [3, 1000003])
        assert verify_chain(versions[0].digest(), proofs, versions[-1], bls)
        assert not verify_chain(versions[0].digest(), proofs[::-1], versions[-1], bls)


class TestGenesisLink:
    """고정된 시작점 [τ₀]₁ 연결 테스트."""

    def test_pinned_point(self, toy, toy_srs_file, toy_chain):
        """e([τ₀]₁, H) == e(G, first.old_point) holds for the real genesis."""
        versions, proofs = toy_chain
        reference = GenesisReference.from_srs(toy_srs_file, toy)
        assert reference.point == 3
        assert verify_chain(reference, proofs, versions[-1], toy)

    def test_wrong_pinned_point(self, toy, toy_srs, toy_chain):
        """A different pinned point breaks the first link."""
        versions, proofs = toy_chain
        reference = GenesisReference(5, toy_srs.digest(), toy)
        result = verify_chain(reference, proofs, versions[-1], toy)
        assert result.kind == "ChainBroken"
        assert result.index == 1

    def test_from_srs_checks_point(self, toy, toy_srs_file):
        """Pinning an SRS whose P₁ differs from the extracted point fails."""
        with pytest.raises(ChainBroken):
            GenesisReference.from_srs(toy_srs_file, toy, point=4)

    def test_reference_file(self, toy, toy_srs_file, tmp_path):
        """Genesis reference files are point || digest."""
        reference = GenesisReference.from_srs(toy_srs_file, toy)
        path = tmp_path / "genesis"
        reference.write(path)
        assert path.stat().st_size == toy.g1_size + 64
        restored = GenesisReference.read(path, toy)
        assert restored.point == reference.point
        assert restored.digest == reference.digest


# ─────────────────────────────────────────────────────────────────────
# 저장소
# ─────────────────────────────────────────────────────────────────────

class TestProofChain:
    """ProofChain 저장소 테스트."""

    def test_missing_directory(self, toy, tmp_path):
        """A missing proofs directory is an empty chain."""
        chain = ProofChain.load(tmp_path / "proofs", toy)
        assert len(chain) == 0
        assert chain.last is None

    def test_numeric_order(self, toy, tmp_path):
        """proof10 sorts after proof9."""
        _, proofs = build_chain(SRS.generate(4, toy, tau=3), [2 + i for i in range(10)])
        chain = ProofChain(tmp_path / "proofs", toy)
        for proof in proofs:
            chain.append(proof)
        loaded = ProofChain.load(tmp_path / "proofs", toy)
        assert [p.index for p in loaded] == list(range(1, 11))
        assert loaded.last.index == 10

    def test_append_wrong_index(self, toy, toy_chain, tmp_path):
        """Only the next index can be appended."""
        _, proofs = toy_chain
        chain = ProofChain(tmp_path / "proofs", toy)
        with pytest.raises(ChainBroken):
            chain.append(proofs[1])

    def test_append_unlinked(self, toy, toy_chain, tmp_path):
        """An appended proof must continue from the tip digest."""
        _, proofs = toy_chain
        _, other = build_chain(SRS.generate(4, toy, tau=7), [5, 6])
        chain = ProofChain(tmp_path / "proofs", toy)
        chain.append(proofs[0])
        with pytest.raises(ChainBroken):
            chain.append(other[1])

    def test_files_verify(self, toy, toy_srs_file, tmp_path):
        """A ceremony directory built by contribute verifies from files."""
        proofs_dir = tmp_path / "proofs"
        old = toy_srs_file
        for delta in (5, 11, 23):
            old, _, _ = contribute(old, proofs_dir, delta, toy)
        genesis = GenesisReference.from_srs(toy_srs_file, toy)
        chain = ProofChain.load(proofs_dir, toy)
        result = verify_chain(genesis, chain, old)
        assert result
        assert result.details["count"] == 3

    def test_corrupted_final_file(self, toy, toy_srs_file, tmp_path):
        """A modified final SRS file no longer matches the chain."""
        proofs_dir = tmp_path / "proofs"
        new_path, _, _ = contribute(toy_srs_file, proofs_dir, 5, toy)
        with open(new_path, "r+b") as f:
            f.seek(8 + 8)
            f.write((16).to_bytes(8, "little"))
        chain = ProofChain.load(proofs_dir, toy)
        result = verify_chain(GenesisReference.from_srs(toy_srs_file, toy), chain, new_path)
        assert result.kind == "ChainBroken"

    def test_corrupted_proof_file_index(self, toy, toy_srs_file, tmp_path):
        """A truncated proof file reports its number in the chain."""
        proofs_dir = tmp_path / "proofs"
        old = toy_srs_file
        for delta in (5, 11, 23):
            old, _, _ = contribute(old, proofs_dir, delta, toy)
        path = proofs_dir / "proof2"
        path.write_bytes(path.read_bytes()[:-1])
        with pytest.raises(MalformedFile) as exc:
            ProofChain.load(proofs_dir, toy)
        assert exc.value.index == 2
        assert "proof2" in exc.value.message
