"""
증명 체인 (Proof Chain)
=======================

세레모니의 모든 갱신 증명을 순서대로 보관하고, 신뢰 출발점(genesis)부터
최종 SRS 까지 끊김 없이 이어지는지 검증한다.

**저장 방식**:
  증명은 ``proofs/proof1``, ``proofs/proof2``, ... 처럼 인덱스별 파일로 저장된다.
  증명 사이의 연결은 포인터가 아니라 다이제스트 동등성만으로 표현된다:

      genesis ──▶ proof1.old_digest
      proof1.new_digest ──▶ proof2.old_digest
      ...
      proofN.new_digest ──▶ digest(최종 SRS)

  체인은 추가만 가능하며(append-only) 기존 증명 파일은 다시 쓰지 않는다.

**검증 순서** (처음부터 끝까지):
  1. 인덱스가 1부터 연속인지
  2. old_digest 가 이전 증명의 new_digest (첫 증명은 genesis 다이제스트) 와 같은지
  3. old_point 가 이전 증명의 new_point 와 같은지
     (첫 증명은 고정된 [τ₀]₁ 이 있으면 e([τ₀]₁, H) == e(G, old_point))
  4. new_point 가 항등원이 아니고 old_point 와도 다른지 (δ = 0, δ = 1 기여 거부)
  5. Schnorr 방정식
  마지막으로 최종 SRS 의 다이제스트와 τ·H 가 마지막 증명과 일치하는지 확인한다.

사용 예시:
    >>> chain = ProofChain.load("proofs", group)
    >>> result = verify_chain(genesis_digest, chain, "srs5")
    >>> if not result:
    ...     print(result.kind, result.index)
"""

import logging
import os
import re

from ptau.codec import SRSReader
from ptau.errors import (
    CeremonyError,
    ChainBroken,
    MalformedFile,
    VerificationResult,
    ZeroContribution,
)
from ptau.genesis import GenesisReference
from ptau.schnorr import UpdateProof
from ptau.srs import SRS
from ptau.utils import file_digest

logger = logging.getLogger(__name__)

PROOF_PREFIX = "proof"

_PROOF_NAME = re.compile(r"^proof(\d+)$")


class ProofChain:
    """인덱스로 접근하는 추가 전용 증명 저장소.

    속성:
        directory: 증명 파일 디렉터리
        group: 곡선 그룹
        proofs: 위치 순서의 UpdateProof 리스트 (위치 p 의 증명 인덱스는 p + 1)
    """

    def __init__(self, directory, group, proofs=None):
        self.directory = os.fspath(directory)
        self.group = group
        self.proofs = list(proofs or [])

    @classmethod
    def load(cls, directory, group):
        """디렉터리의 ``proof{N}`` 파일들을 번호 순서대로 읽는다.

        디렉터리가 없으면 빈 체인을 반환한다.

        Raises:
            MalformedFile, InvalidPoint: 증명 파일이 손상되었을 때 (파일 번호 포함)
        """
        directory = os.fspath(directory)
        if not os.path.isdir(directory):
            return cls(directory, group)

        numbered = []
        for name in os.listdir(directory):
            m = _PROOF_NAME.match(name)
            if m:
                numbered.append((int(m.group(1)), name))
        numbered.sort()

        proofs = []
        for number, name in numbered:
            try:
                proofs.append(UpdateProof.read(os.path.join(directory, name), group))
            except MalformedFile as e:
                raise MalformedFile(f"{name}: {e.message}", number) from e
        logger.debug("%s 에서 증명 %d개를 읽었습니다", directory, len(proofs))
        return cls(directory, group, proofs)

    def path_for(self, index):
        return os.path.join(self.directory, f"{PROOF_PREFIX}{index}")

    def append(self, proof):
        """다음 순번의 증명을 파일로 쓰고 체인에 추가한다.

        Raises:
            ChainBroken: 증명 인덱스가 다음 순번이 아니거나
                이전 증명의 새 다이제스트에서 이어지지 않을 때
            FileExistsError: 같은 번호의 증명 파일이 이미 있을 때
        """
        expected = len(self.proofs) + 1
        if proof.index != expected:
            raise ChainBroken(f"증명 인덱스 {proof.index} 대신 {expected} 가 필요합니다", expected)
        if self.proofs and proof.old_digest != self.last.new_digest:
            raise ChainBroken("이전 증명의 새 다이제스트에서 이어지지 않습니다", expected)
        os.makedirs(self.directory, exist_ok=True)
        proof.write(self.path_for(proof.index))
        self.proofs.append(proof)
        return proof

    @property
    def last(self):
        return self.proofs[-1] if self.proofs else None

    def __len__(self):
        return len(self.proofs)

    def __iter__(self):
        return iter(self.proofs)

    def __getitem__(self, position):
        return self.proofs[position]

    def __repr__(self):
        return f"ProofChain({self.directory!r}, count={len(self.proofs)})"


# ─────────────────────────────────────────────────────────────────────
# 체인 검증
# ─────────────────────────────────────────────────────────────────────

def final_state(final_srs, group):
    """최종 SRS 의 (다이제스트, Q₁) 을 구한다. 파일 경로 또는 SRS 객체."""
    if isinstance(final_srs, SRS):
        return final_srs.digest(), final_srs.g2_powers[1]
    with SRSReader(final_srs, group) as reader:
        _, q1 = reader.read_g2()
    return file_digest(final_srs), q1


def check_chain(genesis, proofs, final_digest, final_point, group):
    """증명 체인을 처음부터 끝까지 검사한다.

    Args:
        genesis: 시작 다이제스트(bytes) 또는 GenesisReference
        proofs: UpdateProof 시퀀스 (위치 순서)
        final_digest: 최종 SRS 다이제스트
        final_point: 최종 SRS 의 Q₁
        group: 곡선 그룹

    Returns:
        int: 검증한 증명 수

    Raises:
        ChainBroken, ProofInvalid, ZeroContribution
    """
    if isinstance(genesis, GenesisReference):
        prev_digest, genesis_point = genesis.digest, genesis.point
    else:
        prev_digest, genesis_point = bytes(genesis), None

    prev_point = None
    count = 0
    for position, proof in enumerate(proofs, start=1):
        if proof.index != position:
            raise ChainBroken(f"위치 {position} 의 증명 인덱스가 {proof.index} 입니다", position)
        if proof.old_digest != prev_digest:
            raise ChainBroken("이전 SRS 다이제스트가 체인과 이어지지 않습니다", position)
        if prev_point is None:
            if genesis_point is not None and not group.pairing_eq(
                    genesis_point, group.G2, group.G1, proof.old_point):
                raise ChainBroken("첫 증명의 τ·H 가 고정된 시작점 [τ₀]₁ 과 맞지 않습니다", position)
        elif not group.eq(proof.old_point, prev_point):
            raise ChainBroken("이전 τ·H 가 앞 증명의 새 τ·H 와 다릅니다", position)
        if group.is_identity(proof.new_point):
            raise ZeroContribution("τ·H 가 항등원이 된 기여입니다 (δ = 0)", position)
        if group.eq(proof.new_point, proof.old_point):
            raise ZeroContribution("τ·H 가 바뀌지 않은 기여입니다", position)
        proof.check()

        prev_digest, prev_point = proof.new_digest, proof.new_point
        count = position

    if final_digest != prev_digest:
        raise ChainBroken("최종 SRS 다이제스트가 체인의 마지막 다이제스트와 다릅니다", count)
    if prev_point is not None:
        if not group.eq(final_point, prev_point):
            raise ChainBroken("최종 SRS 의 τ·H 가 마지막 증명과 다릅니다", count)
    elif genesis_point is not None and not group.pairing_eq(
            genesis_point, group.G2, group.G1, final_point):
        raise ChainBroken("최종 SRS 의 τ·H 가 고정된 시작점과 맞지 않습니다", 0)
    return count


def verify_chain(genesis, proof_chain, final_srs, group=None):
    """증명 체인 검증 진입점.

    Args:
        genesis: 시작 다이제스트(bytes) 또는 GenesisReference
        proof_chain: ProofChain 또는 UpdateProof 리스트
        final_srs: 최종 SRS 파일 경로 또는 SRS 객체
        group: 곡선 그룹 (생략하면 체인이나 SRS 에서 가져온다)

    Returns:
        VerificationResult: 실패 시 오류 종류와 체인 위치를 담는다.
            통과하면 details 에 count 와 final_digest 가 있다.
    """
    if group is None:
        group = getattr(proof_chain, "group", None) or getattr(final_srs, "group", None)
        if group is None:
            raise ValueError("곡선 그룹을 알 수 없습니다")

    try:
        final_digest, final_point = final_state(final_srs, group)
        count = check_chain(genesis, proof_chain, final_digest, final_point, group)
    except CeremonyError as e:
        logger.warning("증명 체인 검증 실패: %s", e)
        return VerificationResult.failed(e)

    logger.info("증명 체인이 올바릅니다 (증명 %d개)", count)
    return VerificationResult.passed(count=count, final_digest=final_digest.hex())
