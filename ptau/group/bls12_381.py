"""
BLS12-381 곡선 그룹
===================

실제 세레모니에 사용하는 pairing-friendly 곡선이다.
py_ecc 의 ``optimized_bls12_381`` (사영 좌표) 구현 위에서
``CurveGroup`` 능력 인터페이스를 제공한다.

**스칼라 필드 FR**:
  BLS12-381 곡선 위수 r (≈ 2^255) 위의 소수체.
  r - 1 = 2^32 × t (t 홀수) 이므로 최대 2^32차 단위근을 지원하며,
  곱셈군 생성자는 7 이다.

**점 인코딩**:
  ZCash 표준 압축 인코딩 (G1 48바이트, G2 96바이트, 빅엔디안, 상위 3비트 플래그).
  상위 세레모니(Filecoin powers-of-tau) 파일은 비압축 G1 (96바이트) 을 쓴다.

**검증**:
  디코딩 시 곡선 위 여부와 부분군(위수 r) 소속을 모두 확인한다.
  부분군 검사는 r·P == O 를 직접 계산하므로 점마다 스칼라 곱셈 한 번의 비용이 든다.

사용 예시:
    >>> group = Bls12381Group()
    >>> data = group.encode_g1(group.G1)   # 48 bytes
    >>> group.eq(group.decode_g1(data), group.G1)  # True
"""

from py_ecc import optimized_bls12_381 as bls
from py_ecc.bls.g2_primitives import (
    G1_to_pubkey,
    G2_to_signature,
    pubkey_to_G1,
    signature_to_G2,
    subgroup_check,
)
from py_ecc.fields import bls12_381_FQ as FQ

from ptau.errors import InvalidPoint
from ptau.group import CurveGroup, register_group


class FR(FQ):
    """BLS12-381 스칼라 필드 위의 유한체 원소.

    예시:
        >>> FR(3) * FR(7)   # FR(21)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bls.curve_order


CURVE_ORDER = bls.curve_order

# 비압축 인코딩의 플래그 비트 (첫 바이트 상위 3비트)
_COMPRESSION_FLAG = 1 << 383
_INFINITY_FLAG = 1 << 382
_SORT_FLAG = 1 << 381
_COORD_MASK = (1 << 381) - 1


class Bls12381Group(CurveGroup):
    """py_ecc 기반 BLS12-381 구현."""

    name = "bls12_381"
    FR = FR
    order = CURVE_ORDER
    G1 = bls.G1
    G2 = bls.G2
    Z1 = bls.Z1
    Z2 = bls.Z2
    g1_size = 48
    g2_size = 96
    g1_uncompressed_size = 96
    g2_uncompressed_size = 192
    scalar_size = 32
    multiplicative_generator = 7

    def add(self, p1, p2):
        return bls.add(p1, p2)

    def neg(self, point):
        return bls.neg(point)

    def scalar_mul(self, point, scalar):
        return bls.multiply(point, int(scalar) % CURVE_ORDER)

    def eq(self, p1, p2):
        return bls.eq(p1, p2)

    def is_identity(self, point):
        return bls.is_inf(point)

    def pair(self, g1_point, g2_point):
        # py_ecc 의 인자 순서는 (G2, G1) 이다
        return bls.pairing(g2_point, g1_point)

    def pairing_eq(self, a1, a2, b1, b2):
        """e(a1, a2) · e(-b1, b2) == 1 을 최종 지수승 한 번으로 검사한다."""
        product = (
            bls.pairing(a2, a1, final_exponentiate=False)
            * bls.pairing(b2, bls.neg(b1), final_exponentiate=False)
        )
        return bls.final_exponentiate(product) == bls.FQ12.one()

    # ── 인코딩 ──

    def encode_g1(self, point):
        return bytes(G1_to_pubkey(point))

    def decode_g1(self, data, index=None):
        if len(data) != self.g1_size:
            raise InvalidPoint(f"G1 인코딩 길이 {len(data)} != {self.g1_size}", index)
        try:
            point = pubkey_to_G1(data)
        except (ValueError, AssertionError) as e:
            raise InvalidPoint(f"G1 점 디코딩 실패: {e}", index) from e
        self._check_g1(point, index)
        return point

    def decode_g1_uncompressed(self, data, index=None):
        """ZCash 비압축 G1 인코딩 (x || y, 각 48바이트 빅엔디안) 을 디코딩한다."""
        if len(data) != self.g1_uncompressed_size:
            raise InvalidPoint(
                f"비압축 G1 인코딩 길이 {len(data)} != {self.g1_uncompressed_size}", index
            )
        x_raw = int.from_bytes(data[:48], "big")
        y = int.from_bytes(data[48:], "big")
        if x_raw & _COMPRESSION_FLAG or x_raw & _SORT_FLAG:
            raise InvalidPoint("비압축 인코딩에 압축/정렬 플래그가 설정되어 있습니다", index)
        if x_raw & _INFINITY_FLAG:
            if (x_raw & _COORD_MASK) != 0 or y != 0:
                raise InvalidPoint("무한원점 인코딩의 좌표가 0이 아닙니다", index)
            return bls.Z1
        x = x_raw & _COORD_MASK
        if x >= bls.field_modulus or y >= bls.field_modulus:
            raise InvalidPoint("좌표가 기저 필드 위수 이상입니다", index)
        point = (bls.FQ(x), bls.FQ(y), bls.FQ.one())
        self._check_g1(point, index)
        return point

    def encode_g2(self, point):
        return bytes(G2_to_signature(point))

    def decode_g2(self, data, index=None):
        if len(data) != self.g2_size:
            raise InvalidPoint(f"G2 인코딩 길이 {len(data)} != {self.g2_size}", index)
        try:
            point = signature_to_G2(data)
        except (ValueError, AssertionError) as e:
            raise InvalidPoint(f"G2 점 디코딩 실패: {e}", index) from e
        if not bls.is_on_curve(point, bls.b2):
            raise InvalidPoint("G2 점이 곡선 위에 있지 않습니다", index)
        if not subgroup_check(point):
            raise InvalidPoint("G2 점이 위수 r 부분군에 속하지 않습니다", index)
        return point

    def _check_g1(self, point, index):
        if not bls.is_on_curve(point, bls.b):
            raise InvalidPoint("G1 점이 곡선 위에 있지 않습니다", index)
        if not subgroup_check(point):
            raise InvalidPoint("G1 점이 위수 r 부분군에 속하지 않습니다", index)


register_group("bls12_381", Bls12381Group)
