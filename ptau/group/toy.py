"""
장난감 그룹 (위수 97)
=====================

세레모니 알고리즘의 모듈러 산술을 손으로 따라갈 수 있게 해 주는
교육/테스트용 그룹이다. **보안성은 전혀 없다** (이산로그가 자명하다).

구성:
  - 스칼라 필드, G1, G2 모두 Z_97 (덧셈군)
  - 생성자 G = H = 1, 따라서 "점" a 는 곧 스칼라 a 이다
  - 페어링 e(a, b) = a · b mod 97 (쌍선형: e(xa, yb) = xy · e(a, b))
  - 곱셈군 Z_97* 의 생성자는 5 (96 = 2^5 · 3 이므로 32차 단위근까지 존재)

예시 (τ = 3, n = 4):
    P = [1, 3, 9, 27], Q = [1, 3]
    δ = 5 를 적용하면 P'ᵢ = δⁱ · Pᵢ mod 97 = [1, 15, 31, 77], Q' = [1, 15]
"""

from py_ecc.fields import bls12_381_FQ as FQ

from ptau.errors import InvalidPoint
from ptau.group import CurveGroup, register_group

TOY_ORDER = 97


class ToyFR(FQ):
    field_modulus = TOY_ORDER


class ToyGroup(CurveGroup):
    """정수 mod 97 로 표현한 장난감 그룹."""

    name = "toy"
    FR = ToyFR
    order = TOY_ORDER
    G1 = 1
    G2 = 1
    Z1 = 0
    Z2 = 0
    g1_size = 8
    g2_size = 8
    g1_uncompressed_size = 8
    g2_uncompressed_size = 8
    scalar_size = 8
    multiplicative_generator = 5

    def add(self, p1, p2):
        return (p1 + p2) % TOY_ORDER

    def neg(self, point):
        return (-point) % TOY_ORDER

    def scalar_mul(self, point, scalar):
        return (point * int(scalar)) % TOY_ORDER

    def eq(self, p1, p2):
        return p1 % TOY_ORDER == p2 % TOY_ORDER

    def is_identity(self, point):
        return point % TOY_ORDER == 0

    def pair(self, g1_point, g2_point):
        return (g1_point * g2_point) % TOY_ORDER

    def encode_g1(self, point):
        return (point % TOY_ORDER).to_bytes(self.g1_size, "little")

    def decode_g1(self, data, index=None):
        return self._decode(data, self.g1_size, index)

    def decode_g1_uncompressed(self, data, index=None):
        return self._decode(data, self.g1_uncompressed_size, index)

    def encode_g2(self, point):
        return (point % TOY_ORDER).to_bytes(self.g2_size, "little")

    def decode_g2(self, data, index=None):
        return self._decode(data, self.g2_size, index)

    def _decode(self, data, size, index):
        if len(data) != size:
            raise InvalidPoint(f"인코딩 길이 {len(data)} != {size}", index)
        value = int.from_bytes(data, "little")
        if value >= TOY_ORDER:
            raise InvalidPoint(f"값 {value}가 그룹 위수 {TOY_ORDER} 이상입니다", index)
        return value


register_group("toy", ToyGroup)
