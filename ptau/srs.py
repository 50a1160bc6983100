"""
Powers-of-Tau Structured Reference String (SRS)
================================================

다항식 커밋먼트 스킴(KZG)의 공개 파라미터를 표현한다.

**SRS란?**
  알 수 없는 비밀 값 τ 의 거듭제곱을 고정 생성자 (G, H) 위에 올려 놓은 점들이다.

  SRS = {
      G1 powers: [G, τ·G, τ²·G, ..., τ^(n-1)·G]     (n = 2^k)
      G2 powers: [H, τ·H]
  }

**불변성**:
  SRS 의 각 버전은 한 번 쓰이면 변경되지 않으며 내용 다이제스트
  (Blake2b-512) 로 식별된다. 갱신은 항상 새 SRS 를 만든다.

이 모듈의 ``SRS`` 는 메모리에 모두 올릴 수 있는 작은 SRS (테스트, 시연) 용이다.
세레모니 규모의 파일은 ``ptau.codec`` 의 스트리밍 리더/라이터로 다룬다.

사용 예시:
    >>> srs = SRS.generate(8, group, tau=group.FR(3))
    >>> len(srs.g1_powers)  # 8
"""

import hashlib

from ptau.codec import HEADER_SIZE, decode_g1_block, encode_g1_block, encode_header
from ptau.errors import MalformedFile
from ptau.utils import bytes_digest, is_power_of_2, powers


class SRS:
    """Structured Reference String.

    속성:
        g1_powers: [G, τ·G, ..., τ^(n-1)·G]
        g2_powers: [H, τ·H]
        group: 곡선 그룹 (CurveGroup)
    """

    def __init__(self, g1_powers, g2_powers, group):
        self.g1_powers = list(g1_powers)
        self.g2_powers = list(g2_powers)
        self.group = group

    @property
    def n(self):
        return len(self.g1_powers)

    @classmethod
    def generate(cls, n, group, tau=None, seed=None):
        """τ 를 알고 있는 상태에서 SRS 를 직접 생성한다 (테스트/시연용).

        실제 세레모니의 시작점(genesis)은 외부 세레모니에서 가져오며,
        이후에는 ``ptau.update`` 로만 갱신한다.

        Args:
            n: G1 점 개수 (2의 거듭제곱)
            group: 곡선 그룹
            tau: 비밀 값 (FR). 주어지지 않으면 seed 또는 OS 난수에서 만든다.
            seed: 결정론적 생성을 위한 시드

        Returns:
            SRS
        """
        if not is_power_of_2(n):
            raise ValueError(f"n은 2의 거듭제곱이어야 합니다: {n}")
        if tau is None:
            if seed is not None:
                h = hashlib.sha256(str(seed).encode()).digest()
                tau = group.FR(int.from_bytes(h, "big") % group.order)
            else:
                tau = group.random_scalar(exclude=(0, 1))
        elif not isinstance(tau, group.FR):
            tau = group.FR(tau)

        g1_powers = [group.scalar_mul(group.G1, p) for p in powers(tau, n)]
        g2_powers = [group.G2, group.scalar_mul(group.G2, tau)]
        return cls(g1_powers, g2_powers, group)

    # ── 직렬화 ──

    def to_bytes(self):
        """SRS 바이너리 레이아웃으로 직렬화한다 (``ptau.codec`` 참고)."""
        return b"".join([
            encode_header(self.n),
            encode_g1_block(self.g1_powers, self.group),
            self.group.encode_g2(self.g2_powers[0]),
            self.group.encode_g2(self.g2_powers[1]),
        ])

    @classmethod
    def from_bytes(cls, data, group):
        """바이트열에서 SRS 를 복원한다. 모든 점의 유효성을 검사한다.

        Raises:
            MalformedFile: 길이 접두사/크기 불일치
            InvalidPoint: 유효하지 않은 점 (index 포함)
        """
        if len(data) < HEADER_SIZE:
            raise MalformedFile("길이 접두사를 읽을 수 없습니다")
        n = int.from_bytes(data[:HEADER_SIZE], "little")
        if not is_power_of_2(n):
            raise MalformedFile(f"G1 점 개수 {n}가 2의 거듭제곱이 아닙니다")
        g2_start = HEADER_SIZE + n * group.g1_size
        if len(data) != g2_start + 2 * group.g2_size:
            raise MalformedFile("데이터 길이가 길이 접두사와 맞지 않습니다")

        g1_powers = decode_g1_block(data[HEADER_SIZE:g2_start], 0, group)
        q0 = group.decode_g2(data[g2_start:g2_start + group.g2_size], index=0)
        q1 = group.decode_g2(data[g2_start + group.g2_size:], index=1)
        return cls(g1_powers, [q0, q1], group)

    def write(self, path):
        with open(path, "wb") as f:
            f.write(self.to_bytes())

    @classmethod
    def read(cls, path, group):
        with open(path, "rb") as f:
            return cls.from_bytes(f.read(), group)

    def digest(self):
        """SRS 직렬화 바이트의 Blake2b-512 다이제스트."""
        return bytes_digest(self.to_bytes())

    def __eq__(self, other):
        if not isinstance(other, SRS):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __repr__(self):
        return f"SRS(n={self.n}, group={self.group.name})"
