"""
확장 SRS 일관성 검증
====================

증명 시스템은 세레모니 SRS 를 계수 형태와 Lagrange 형태를 함께 담은
확장 SRS 로 변환해서 쓴다. 이 모듈은 확장 SRS 가 세레모니 결과에서
올바르게 만들어졌는지 확인한다.

**확장 SRS 레이아웃** (모든 정수는 리틀엔디안, 점은 압축 인코딩):

  ┌──────────────────────────────────────────────┐
  │  u32 k           n = 2^k                     │
  ├──────────────────────────────────────────────┤
  │  n × G1          계수 형태 [1, τ, ..., τⁿ⁻¹]₁ │
  ├──────────────────────────────────────────────┤
  │  n × G1          Lagrange 형태 [Lⱼ(τ)]₁       │
  ├──────────────────────────────────────────────┤
  │  2 × G2          [1, τ]₂                      │
  └──────────────────────────────────────────────┘

**검사 항목**:
  1. 계수 형태 G1 점이 세레모니 SRS 의 G1 점과 바이트 단위로 같다
  2. G2 점이 바이트 단위로 같다
  3. Lagrange 형태가 계수 형태에서 올바르게 유도되었다

**3번: 랜덤 다항식 커밋**:
  차수 n 미만의 다항식 f 를 두 형태로 커밋하면 같은 점 [f(τ)]₁ 이 나와야 한다:

      Σᵢ fᵢ · Pᵢ == Σⱼ f(ωʲ) · Lⱼ

  f 로 기하 다항식 f(X) = Σᵢ zⁱ Xⁱ 를 쓰면 Lagrange 쪽 스칼라가 닫힌 형태

      f(ωʲ) = (zⁿ - 1) / (z·ωʲ - 1)

  로 주어지므로 FFT 없이 청크마다 독립적으로 계산할 수 있다.
  두 형태가 어긋나면 양변의 차는 z 에 대한 n-1 차 이하의 다항식이므로,
  랜덤 z 에 대해 실패를 놓칠 확률은 (n-1)/|F| 이하이다.
  zⁿ = 1 이면 분모가 0 이 되므로 그런 z 는 다시 뽑는다.

사용 예시:
    >>> result = verify_consistency("srs7", "extended_srs", group)
    >>> bool(result)  # True
"""

import logging
import os

from ptau.codec import DEFAULT_CHUNK_SIZE, SRSReader, encode_g1_block
from ptau.errors import CeremonyError, MalformedFile, StructuralMismatch, VerificationResult
from ptau.group import get_group
from ptau.utils import chunk_ranges, powers, run_chunks

logger = logging.getLogger(__name__)

EXTENDED_HEADER_SIZE = 4

# 1 << k 를 만들기 전에 거르는 상한
_MAX_LOG2_LEN = 40


def extended_srs_size(n, group):
    """G1 점 n개짜리 확장 SRS 파일의 정확한 바이트 크기."""
    return EXTENDED_HEADER_SIZE + 2 * n * group.g1_size + 2 * group.g2_size


def coefficient_offset(index, group):
    return EXTENDED_HEADER_SIZE + index * group.g1_size


def lagrange_offset(index, n, group):
    return EXTENDED_HEADER_SIZE + (n + index) * group.g1_size


def read_extended_header(path, group):
    """확장 SRS 의 k 를 읽고 파일 크기를 확인한 뒤 n = 2^k 를 반환한다.

    Raises:
        MalformedFile: 헤더를 읽을 수 없거나 파일 크기가 맞지 않을 때
    """
    with open(path, "rb") as f:
        header = f.read(EXTENDED_HEADER_SIZE)
        actual = os.fstat(f.fileno()).st_size
    if len(header) != EXTENDED_HEADER_SIZE:
        raise MalformedFile(f"확장 SRS 헤더를 읽을 수 없습니다: {path}")
    k = int.from_bytes(header, "little")
    if k > _MAX_LOG2_LEN:
        raise MalformedFile(f"확장 SRS 의 k = {k} 가 너무 큽니다")
    n = 1 << k
    expected = extended_srs_size(n, group)
    if actual != expected:
        raise MalformedFile(
            f"확장 SRS 크기 {actual}가 k = {k} 로부터 계산한 {expected}와 다릅니다"
        )
    return n


def lagrange_basis(g1_powers, group):
    """계수 형태 [τⁱ]₁ 에서 Lagrange 형태 [Lⱼ(τ)]₁ 를 직접 계산한다.

    Lⱼ(τ) = (1/n) Σᵢ ω^(-ij) τⁱ 를 그대로 쓰므로 O(n²) 이다.
    작은 SRS (테스트, 예제) 에서만 쓴다.
    """
    n = len(g1_powers)
    omega_inv = group.FR(1) / group.root_of_unity(n)
    n_inv = group.FR(1) / group.FR(n)
    return [
        group.multi_scalar_mul(g1_powers, [n_inv * w for w in powers(omega_inv ** j, n)])
        for j in range(n)
    ]


def write_extended_srs(path, srs, group=None):
    """메모리 위의 SRS 로 확장 SRS 파일을 쓴다 (이미 있으면 실패)."""
    group = group or srs.group
    k = srs.n.bit_length() - 1
    with open(path, "xb") as f:
        f.write(k.to_bytes(EXTENDED_HEADER_SIZE, "little"))
        f.write(encode_g1_block(srs.g1_powers, group))
        f.write(encode_g1_block(lagrange_basis(srs.g1_powers, group), group))
        for point in srs.g2_powers:
            f.write(group.encode_g2(point))


def _read_at(f, offset, size, index):
    f.seek(offset)
    data = f.read(size)
    if len(data) != size:
        raise MalformedFile("확장 SRS 영역을 끝까지 읽지 못했습니다", index)
    return data


def _consistency_chunk(group_name, srs_path, extended_path, start, stop, n, z_int, omega_int):
    """작업자: [start, stop) 구간의 바이트 비교와 두 부분 커밋.

    Returns:
        (Σ zⁱ · Pᵢ, Σ f(ωʲ) · Lⱼ) 의 청크 부분합
    """
    group = get_group(group_name)
    size = (stop - start) * group.g1_size
    with SRSReader(srs_path, group) as reader:
        srs_bytes = reader.read_g1_bytes(start, stop)
    with open(extended_path, "rb") as f:
        coeff_bytes = _read_at(f, coefficient_offset(start, group), size, start)
        lagrange_bytes = _read_at(f, lagrange_offset(start, n, group), size, start)

    if coeff_bytes != srs_bytes:
        g1 = group.g1_size
        first = next(j for j in range(stop - start)
                     if coeff_bytes[j * g1:(j + 1) * g1] != srs_bytes[j * g1:(j + 1) * g1])
        raise StructuralMismatch("계수 형태 G1 점이 세레모니 SRS 와 다릅니다", start + first)

    z = group.FR(z_int)
    omega = group.FR(omega_int)
    g1 = group.g1_size
    coefficients = [
        group.decode_g1(coeff_bytes[j * g1:(j + 1) * g1], index=start + j)
        for j in range(stop - start)
    ]
    lagrange = [
        group.decode_g1(lagrange_bytes[j * g1:(j + 1) * g1], index=start + j)
        for j in range(stop - start)
    ]

    zn_minus_1 = z ** n - 1
    com_coeff = group.multi_scalar_mul(
        coefficients, [z ** start * p for p in powers(z, stop - start)])
    com_lagrange = group.multi_scalar_mul(
        lagrange, [zn_minus_1 / (z * omega ** start * w - 1) for w in powers(omega, stop - start)])
    return com_coeff, com_lagrange


def _evaluation_point(z, n, group):
    if z is None:
        while True:
            z = group.random_scalar()
            if z ** n != group.FR(1):
                return z
    if not isinstance(z, group.FR):
        z = group.FR(z)
    if int(z) == 0 or z ** n == group.FR(1):
        raise ValueError("평가점 z 는 0 이 아니고 zⁿ ≠ 1 이어야 합니다")
    return z


def check_consistency(srs_path, extended_path, group, chunk_size=DEFAULT_CHUNK_SIZE,
                      workers=1, z=None):
    """세레모니 SRS 와 확장 SRS 의 일관성을 검사하고 실패 시 예외를 던진다.

    Args:
        srs_path: 세레모니 SRS 파일
        extended_path: 확장 SRS 파일
        group: 곡선 그룹
        chunk_size: 청크당 G1 점 수
        workers: 작업자 프로세스 수
        z: 랜덤 다항식의 평가점 (None 이면 OS 난수, 테스트에서만 지정)

    Returns:
        int: G1 점 개수 n

    Raises:
        MalformedFile: 파일 크기나 점 개수가 맞지 않을 때
        InvalidPoint: 디코딩할 수 없는 점 (인덱스 포함)
        StructuralMismatch: 세 검사 중 하나라도 실패할 때
    """
    n = read_extended_header(extended_path, group)
    with SRSReader(srs_path, group) as reader:
        if reader.n != n:
            raise MalformedFile(f"세레모니 SRS 는 G1 {reader.n}개, 확장 SRS 는 {n}개입니다")
        srs_g2 = reader.read_g2_bytes()

    g2_size = 2 * group.g2_size
    with open(extended_path, "rb") as f:
        extended_g2 = _read_at(f, lagrange_offset(n, n, group), g2_size, None)
    if extended_g2 != srs_g2:
        raise StructuralMismatch("G2 점이 세레모니 SRS 와 다릅니다")

    try:
        omega = group.root_of_unity(n)
    except ValueError as e:
        raise MalformedFile(str(e)) from e
    z = _evaluation_point(z, n, group)

    logger.info("확장 SRS 일관성 검사 중 (G1 %d개)", n)
    tasks = [
        (group.name, os.fspath(srs_path), os.fspath(extended_path), lo, hi, n, int(z), int(omega))
        for lo, hi in chunk_ranges(0, n, chunk_size)
    ]
    com_coeff, com_lagrange = group.Z1, group.Z1
    for partial_coeff, partial_lagrange in run_chunks(_consistency_chunk, tasks, workers):
        com_coeff = group.add(com_coeff, partial_coeff)
        com_lagrange = group.add(com_lagrange, partial_lagrange)

    if not group.eq(com_coeff, com_lagrange):
        raise StructuralMismatch("계수 형태와 Lagrange 형태의 커밋이 다릅니다")
    return n


def verify_consistency(srs_path, extended_path, group, chunk_size=DEFAULT_CHUNK_SIZE,
                       workers=1, z=None):
    """확장 SRS 일관성 검증 진입점.

    Returns:
        VerificationResult: 통과하면 details 에 n 이 있다.
    """
    try:
        n = check_consistency(srs_path, extended_path, group, chunk_size=chunk_size,
                              workers=workers, z=z)
    except CeremonyError as e:
        logger.warning("확장 SRS 일관성 검증 실패: %s", e)
        return VerificationResult.failed(e)
    logger.info("확장 SRS 가 세레모니 SRS 와 일치합니다 (G1 %d개)", n)
    return VerificationResult.passed(n=n)
