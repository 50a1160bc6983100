"""
세레모니 시작점 (Genesis)
=========================

세레모니는 빈 상태에서 시작하지 않고, 이전에 공개적으로 진행된 세레모니의
결과를 이어받는다. 이 모듈은 그 연결 고리를 만든다.

**상위 세레모니 파일 (Lagrange 형태)**:
  상위 세레모니는 SRS 를 계수 형태가 아닌 Lagrange 형태로 공개한다:

      [α]₁, [β]₁, [β]₂, [L₀(τ)]₁, [L₁(τ)]₁, ..., [L_{n-1}(τ)]₁, ...

  점은 모두 비압축 인코딩이며, 앞의 세 원소는 사용하지 않는다.

**[τ]₁ 복원**:
  Lᵢ 는 n차 단위근 ω 위의 Lagrange 기저이므로 다항식 X 는

      X = Σᵢ ωⁱ · Lᵢ(X)

  로 쓸 수 있다. 따라서 한 번의 다중 스칼라 곱셈으로

      [τ]₁ = Σᵢ ωⁱ · [Lᵢ(τ)]₁

  를 얻는다. 전체 역 FFT 를 수행할 필요가 없다.

**고정(pin)**:
  ``GenesisReference`` 는 복원한 [τ₀]₁ 과 세레모니 첫 SRS 의 다이제스트를 묶는다.
  체인 검증은 이 다이제스트에서 출발하고, 첫 증명의 τ₀·H 를 페어링으로
  [τ₀]₁ 에 연결한다.

사용 예시:
    >>> point = extract_genesis_point("phase1radix2m19", 19, group)
    >>> ref = GenesisReference.from_srs("srs0", group, point=point)
    >>> ref.write("genesis")
"""

import logging
import os

from ptau.codec import DEFAULT_CHUNK_SIZE, SRSReader
from ptau.errors import ChainBroken, MalformedFile
from ptau.group import get_group
from ptau.utils import DIGEST_SIZE, chunk_ranges, file_digest, powers, run_chunks

logger = logging.getLogger(__name__)


def lagrange_header_size(group):
    """[α]₁, [β]₁, [β]₂ 헤더의 바이트 크기."""
    return 2 * group.g1_uncompressed_size + group.g2_uncompressed_size


def _lagrange_chunk(group_name, path, start, stop, omega_int):
    """작업자: Σ_{i∈[start, stop)} ωⁱ · Lᵢ."""
    group = get_group(group_name)
    size = group.g1_uncompressed_size
    with open(path, "rb") as f:
        f.seek(lagrange_header_size(group) + start * size)
        data = f.read((stop - start) * size)
    if len(data) != (stop - start) * size:
        raise MalformedFile("Lagrange 점 영역을 끝까지 읽지 못했습니다", start)

    omega = group.FR(omega_int)
    points = [
        group.decode_g1_uncompressed(data[j * size:(j + 1) * size], index=start + j)
        for j in range(stop - start)
    ]
    offset = omega ** start
    return group.multi_scalar_mul(points, [offset * w for w in powers(omega, stop - start)])


def extract_genesis_point(source_path, k, group, chunk_size=DEFAULT_CHUNK_SIZE, workers=1):
    """상위 세레모니의 Lagrange 형태 파일에서 [τ]₁ 을 복원한다.

    Args:
        source_path: 상위 세레모니 파일 경로
        k: 점 개수의 로그 (n = 2^k)
        group: 곡선 그룹
        chunk_size: 청크당 점 수
        workers: 작업자 프로세스 수

    Returns:
        G1 점: [τ]₁

    Raises:
        MalformedFile: 파일이 n 개의 점을 담기에 너무 짧을 때
        InvalidPoint: 유효하지 않은 점 (인덱스 포함)
    """
    n = 1 << k
    required = lagrange_header_size(group) + n * group.g1_uncompressed_size
    actual = os.path.getsize(source_path)
    if actual < required:
        raise MalformedFile(
            f"파일 크기 {actual}가 2^{k}개의 Lagrange 점에 필요한 {required}보다 작습니다"
        )

    omega = group.root_of_unity(n)
    logger.info("Lagrange 형태에서 [τ]₁ 을 복원하는 중 (점 %d개)", n)
    tasks = [
        (group.name, os.fspath(source_path), lo, hi, int(omega))
        for lo, hi in chunk_ranges(0, n, chunk_size)
    ]
    point = group.Z1
    for partial in run_chunks(_lagrange_chunk, tasks, workers):
        point = group.add(point, partial)
    return point


def write_point(path, point, group):
    """G1 점 하나를 압축 인코딩으로 쓴다 (이미 있으면 실패)."""
    with open(path, "xb") as f:
        f.write(group.encode_g1(point))


def read_point(path, group):
    with open(path, "rb") as f:
        return group.decode_g1(f.read())


class GenesisReference:
    """체인 검증의 신뢰 출발점.

    속성:
        point: 고정된 [τ₀]₁ (없으면 페어링 연결 검사를 건너뛴다)
        digest: 세레모니 첫 SRS 의 다이제스트 (64바이트)
    """

    def __init__(self, point, digest, group):
        if len(digest) != DIGEST_SIZE:
            raise MalformedFile(f"다이제스트 길이 {len(digest)} != {DIGEST_SIZE}")
        self.point = point
        self.digest = bytes(digest)
        self.group = group

    @classmethod
    def from_srs(cls, path, group, point=None):
        """SRS 파일을 시작점으로 고정한다.

        point 가 주어지면 SRS 의 P₁ 이 그 점과 같은지 확인한다.
        주어지지 않으면 SRS 의 P₁ 을 그대로 고정한다.

        Raises:
            ChainBroken: P₁ 이 주어진 점과 다를 때
        """
        with SRSReader(path, group) as reader:
            if reader.n < 2:
                raise MalformedFile("시작점 SRS 에 τ·G 가 없습니다")
            p1 = reader.read_g1(1)
        if point is not None and not group.eq(p1, point):
            raise ChainBroken("시작점 SRS 의 τ·G 가 상위 세레모니에서 추출한 점과 다릅니다", 0)
        return cls(p1, file_digest(path), group)

    def to_bytes(self):
        return self.group.encode_g1(self.point) + self.digest

    @classmethod
    def from_bytes(cls, data, group):
        if len(data) != group.g1_size + DIGEST_SIZE:
            raise MalformedFile(
                f"시작점 파일 길이 {len(data)}가 기대값 {group.g1_size + DIGEST_SIZE}와 다릅니다"
            )
        point = group.decode_g1(data[:group.g1_size], index=0)
        return cls(point, data[group.g1_size:], group)

    def write(self, path):
        with open(path, "xb") as f:
            f.write(self.to_bytes())

    @classmethod
    def read(cls, path, group):
        with open(path, "rb") as f:
            return cls.from_bytes(f.read(), group)

    def __repr__(self):
        return f"GenesisReference(digest={self.digest[:4].hex()}…)"
