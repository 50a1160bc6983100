"""
페어링 친화 곡선 그룹 인터페이스
================================

세레모니 엔진은 구체적인 곡선 구현과 독립적으로 작성된다.
엔진이 필요로 하는 능력(capability)은 다음이 전부이다:

  - 스칼라 필드 FR (py_ecc ``FQ`` 를 상속한 유한체 원소)
  - G1/G2 점 덧셈, 스칼라 곱셈, 다중 스칼라 곱셈(MSM)
  - 쌍선형 페어링 e(G1, G2) → GT 와 페어링 등식 검사
  - 점/스칼라의 고정 길이 바이트 인코딩과 검증을 포함한 디코딩

구현:
  - ``bls12_381``: 실제 세레모니에 사용하는 BLS12-381 (py_ecc)
  - ``toy``: 위수 97 의 교육/테스트용 장난감 그룹 (G = H = 1, e(a, b) = a·b)

사용 예시:
    >>> from ptau.group import get_group
    >>> group = get_group("bls12_381")
    >>> P = group.scalar_mul(group.G1, group.FR(5))  # 5·G1
"""

import secrets

from ptau.errors import MalformedFile


class CurveGroup:
    """곡선 그룹 능력 인터페이스.

    하위 클래스가 채워야 하는 속성:
        name: 그룹 이름 (설정 파일에서 사용)
        FR: 스칼라 필드 원소 클래스
        order: 스칼라 필드 위수
        G1, G2: 고정 생성자 (G, H)
        Z1, Z2: 항등원
        g1_size, g2_size: 압축 인코딩 길이
        g1_uncompressed_size: 상위 세레모니 파일의 G1 인코딩 길이
        g2_uncompressed_size: 상위 세레모니 파일의 G2 인코딩 길이 (헤더 건너뛰기용)
        scalar_size: 스칼라 인코딩 길이
        multiplicative_generator: FR* 의 생성자 (단위근 계산용)
    """

    name = None
    FR = None
    order = None
    G1 = None
    G2 = None
    Z1 = None
    Z2 = None
    g1_size = None
    g2_size = None
    g1_uncompressed_size = None
    g2_uncompressed_size = None
    scalar_size = None
    multiplicative_generator = None

    # ── 그룹 연산 ──

    def add(self, p1, p2):
        raise NotImplementedError

    def neg(self, point):
        raise NotImplementedError

    def scalar_mul(self, point, scalar):
        raise NotImplementedError

    def eq(self, p1, p2):
        raise NotImplementedError

    def is_identity(self, point):
        raise NotImplementedError

    def pair(self, g1_point, g2_point):
        raise NotImplementedError

    def multi_scalar_mul(self, points, scalars, zero=None):
        """다중 스칼라 곱셈 Σ sᵢ · Pᵢ.

        Args:
            points: 같은 그룹의 점 리스트
            scalars: FR 원소 또는 정수 리스트
            zero: 결과 그룹의 항등원 (기본값: Z1)

        Returns:
            점: 선형결합 결과
        """
        acc = self.Z1 if zero is None else zero
        for point, scalar in zip(points, scalars):
            acc = self.add(acc, self.scalar_mul(point, scalar))
        return acc

    def pairing_eq(self, a1, a2, b1, b2):
        """e(a1, a2) == e(b1, b2) 를 검사한다 (a1, b1 ∈ G1, a2, b2 ∈ G2)."""
        return self.pair(a1, a2) == self.pair(b1, b2)

    # ── 인코딩 ──

    def encode_g1(self, point):
        raise NotImplementedError

    def decode_g1(self, data, index=None):
        raise NotImplementedError

    def decode_g1_uncompressed(self, data, index=None):
        raise NotImplementedError

    def encode_g2(self, point):
        raise NotImplementedError

    def decode_g2(self, data, index=None):
        raise NotImplementedError

    def encode_scalar(self, scalar):
        """스칼라를 ``scalar_size`` 바이트 리틀엔디안으로 직렬화한다."""
        return (int(scalar) % self.order).to_bytes(self.scalar_size, "little")

    def decode_scalar(self, data):
        """리틀엔디안 바이트열을 FR 원소로 역직렬화한다.

        Raises:
            MalformedFile: 길이가 맞지 않거나 값이 위수 이상일 때
        """
        if len(data) != self.scalar_size:
            raise MalformedFile(
                f"스칼라 길이 {len(data)}가 기대값 {self.scalar_size}와 다릅니다"
            )
        value = int.from_bytes(data, "little")
        if value >= self.order:
            raise MalformedFile("스칼라 값이 필드 위수 이상입니다 (비정규 인코딩)")
        return self.FR(value)

    # ── 스칼라 유틸리티 ──

    def random_scalar(self, exclude=(0,)):
        """OS 난수로 균등한 FR 원소를 뽑는다. ``exclude`` 의 값은 다시 뽑는다."""
        while True:
            value = secrets.randbelow(self.order)
            if value not in exclude:
                return self.FR(value)

    def root_of_unity(self, n):
        """n차 원시 단위근 ω = g^((p-1)/n) 를 반환한다.

        Raises:
            ValueError: n 이 (p-1) 을 나누지 않을 때
        """
        if n < 1 or (self.order - 1) % n != 0:
            raise ValueError(f"{n}차 단위근이 스칼라 필드에 존재하지 않습니다")
        return self.FR(self.multiplicative_generator) ** ((self.order - 1) // n)

    def __repr__(self):
        return f"<CurveGroup {self.name}>"


_GROUPS = {}


def register_group(name, factory):
    _GROUPS[name] = factory


def get_group(name):
    """이름으로 그룹 구현을 반환한다.

    Raises:
        ValueError: 알 수 없는 그룹 이름일 때
    """
    if isinstance(name, CurveGroup):
        return name
    if name not in _GROUPS:
        # 구현 모듈은 처음 요청될 때 불러온다
        if name == "bls12_381":
            from ptau.group import bls12_381  # noqa: F401
        elif name == "toy":
            from ptau.group import toy  # noqa: F401
    try:
        factory = _GROUPS[name]
    except KeyError:
        raise ValueError(f"알 수 없는 곡선 그룹: {name}") from None
    return factory()
