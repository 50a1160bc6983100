"""
갱신 증명 (Update Proof)
========================

새 SRS 가 이전 SRS 의 모든 점에 같은 비밀 δ 를 일관되게 적용한 결과임을,
δ 를 드러내지 않고 증명한다.

**관계**:
  G2 부분 구조만 사용한다 (점 2개라 저렴하다):
      new_Q₁ = δ · old_Q₁

**Schnorr 지식 증명 (Fiat-Shamir)**:
  Prover:
    1. 랜덤 k 선택, 커밋먼트 T = k · old_Q₁
    2. 챌린지 c = H(old_digest, new_digest, old_Q₁, new_Q₁, T)
    3. 응답 s = k + c · δ
  Verifier:
    s · old_Q₁ == T + c · new_Q₁

  다이제스트를 챌린지에 묶으므로 같은 증명을 다른 SRS 쌍에 재사용할 수 없다.
  δ 와 k 는 증명 생성 후 버려지며 어디에도 기록되지 않는다.

**파일 레이아웃** (정수는 리틀엔디안, 인덱스별 파일 ``proof{index}``):

  u64 index || T (G2) || s (스칼라) || old_digest (64) || new_digest (64)
  || old_Q₁ (G2) || new_Q₁ (G2)

사용 예시:
    >>> proof = UpdateProof.create(1, old_q1, new_q1, old_digest, new_digest, delta, group)
    >>> proof.verify()  # True
"""

import os

from ptau.errors import MalformedFile, ProofInvalid, ZeroContribution
from ptau.transcript import Transcript
from ptau.utils import DIGEST_SIZE

INDEX_SIZE = 8


def schnorr_challenge(group, old_digest, new_digest, old_point, new_point, commitment):
    """갱신 증명의 Fiat-Shamir 챌린지 c 를 계산한다."""
    t = Transcript(group)
    t.append_bytes(b"old_digest", old_digest)
    t.append_bytes(b"new_digest", new_digest)
    t.append_g2(b"old_point", old_point)
    t.append_g2(b"new_point", new_point)
    t.append_g2(b"T", commitment)
    return t.challenge_scalar(b"c")


class UpdateProof:
    """한 번의 SRS 갱신에 대한 증명 레코드.

    속성:
        index: 체인에서의 순번 (1부터 증가)
        commitment: Schnorr 커밋먼트 T (G2)
        response: Schnorr 응답 s (FR)
        old_digest, new_digest: 이전/새 SRS 다이제스트 (각 64바이트)
        old_point, new_point: 이전/새 SRS 의 τ·H (G2)
    """

    def __init__(self, index, commitment, response, old_digest, new_digest,
                 old_point, new_point, group):
        self.index = index
        self.commitment = commitment
        self.response = response
        self.old_digest = bytes(old_digest)
        self.new_digest = bytes(new_digest)
        self.old_point = old_point
        self.new_point = new_point
        self.group = group

    @classmethod
    def create(cls, index, old_point, new_point, old_digest, new_digest, delta, group):
        """δ 에 대한 지식 증명을 만든다.

        Args:
            index: 증명 순번
            old_point: 이전 SRS 의 Q₁
            new_point: 새 SRS 의 Q₁ (= δ · old_point)
            old_digest, new_digest: 두 SRS 의 다이제스트
            delta: 비밀 기여 δ (FR)
            group: 곡선 그룹

        Returns:
            UpdateProof
        """
        k = group.random_scalar()
        commitment = group.scalar_mul(old_point, k)
        c = schnorr_challenge(group, old_digest, new_digest, old_point, new_point, commitment)
        response = k + c * delta
        return cls(index, commitment, response, old_digest, new_digest,
                   old_point, new_point, group)

    def challenge(self):
        return schnorr_challenge(self.group, self.old_digest, self.new_digest,
                                 self.old_point, self.new_point, self.commitment)

    def check(self):
        """Schnorr 방정식을 검사한다.

        Raises:
            ProofInvalid: 방정식이 성립하지 않거나 기준점이 항등원일 때
            ZeroContribution: 새 τ·H 가 항등원일 때
        """
        group = self.group
        if group.is_identity(self.old_point):
            raise ProofInvalid("이전 τ·H 가 항등원입니다", self.index)
        if group.is_identity(self.new_point):
            raise ZeroContribution("새 τ·H 가 항등원입니다 (δ = 0)", self.index)
        c = self.challenge()
        lhs = group.scalar_mul(self.old_point, self.response)
        rhs = group.add(self.commitment, group.scalar_mul(self.new_point, c))
        if not group.eq(lhs, rhs):
            raise ProofInvalid("Schnorr 방정식 s·old == T + c·new 가 성립하지 않습니다",
                               self.index)

    def verify(self):
        try:
            self.check()
        except (ProofInvalid, ZeroContribution):
            return False
        return True

    # ── 직렬화 ──

    @staticmethod
    def encoded_size(group):
        return INDEX_SIZE + 3 * group.g2_size + group.scalar_size + 2 * DIGEST_SIZE

    def to_bytes(self):
        group = self.group
        return b"".join([
            self.index.to_bytes(INDEX_SIZE, "little"),
            group.encode_g2(self.commitment),
            group.encode_scalar(self.response),
            self.old_digest,
            self.new_digest,
            group.encode_g2(self.old_point),
            group.encode_g2(self.new_point),
        ])

    @classmethod
    def from_bytes(cls, data, group):
        """바이트열에서 증명을 복원한다.

        Raises:
            MalformedFile: 길이가 맞지 않을 때
            InvalidPoint: 포함된 G2 점이 유효하지 않을 때
        """
        if len(data) != cls.encoded_size(group):
            raise MalformedFile(
                f"증명 길이 {len(data)}가 기대값 {cls.encoded_size(group)}와 다릅니다"
            )
        pos = 0

        def take(size):
            nonlocal pos
            chunk = data[pos:pos + size]
            pos += size
            return chunk

        index = int.from_bytes(take(INDEX_SIZE), "little")
        commitment = group.decode_g2(take(group.g2_size), index=index)
        response = group.decode_scalar(take(group.scalar_size))
        old_digest = take(DIGEST_SIZE)
        new_digest = take(DIGEST_SIZE)
        old_point = group.decode_g2(take(group.g2_size), index=index)
        new_point = group.decode_g2(take(group.g2_size), index=index)
        return cls(index, commitment, response, old_digest, new_digest,
                   old_point, new_point, group)

    def write(self, path):
        """증명을 파일로 쓴다. 이미 존재하는 파일은 절대 덮어쓰지 않는다."""
        with open(path, "xb") as f:
            f.write(self.to_bytes())
            f.flush()
            os.fsync(f.fileno())

    @classmethod
    def read(cls, path, group):
        with open(path, "rb") as f:
            return cls.from_bytes(f.read(), group)

    def __repr__(self):
        return (f"UpdateProof(index={self.index}, old={self.old_digest[:4].hex()}…, "
                f"new={self.new_digest[:4].hex()}…)")
