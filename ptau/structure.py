"""
SRS 구조 검증
=============

SRS 하나만 보고, 그것이 어떤 (알 수 없는) τ 의 올바른 거듭제곱 수열인지 확인한다.

**문제**:
  연속된 점마다 e(Pᵢ₊₁, Q₀) == e(Pᵢ, Q₁) 를 따로 확인하면
  2(n-1) 번의 페어링이 필요하다. n 이 수천만이면 불가능하다.

**일괄 검사 (Schwartz–Zippel)**:
  0 이 아닌 랜덤 r 하나를 뽑아

      A = Σ_{i=0}^{n-2} rⁱ · Pᵢ
      B = Σ_{i=0}^{n-2} rⁱ · Pᵢ₊₁

  를 만들고 페어링 한 번 e(A, Q₁) == e(B, Q₀) 로 확인한다.
  수열이 기하수열이 아니면 실패 확률 ≤ (n-1)/|F| 를 제외하고 검사가 실패한다.

**한 번의 MSM**:
  S = Σ_{i=0}^{n-1} rⁱ · Pᵢ 를 한 번의 선형 패스로 계산하면
      A   = S - r^(n-1) · P_{n-1}
      r·B = S - P₀
  이므로 점마다 스칼라 곱셈 한 번이면 된다. 검사식은 양변에 r 을 곱한
  e(r·A, Q₁) == e(r·B, Q₀) 를 쓴다 (r ≠ 0 이므로 동치).

**추가 검사**:
  - P₀ == G, Q₀ == H (고정 생성자)
  - 모든 점이 곡선 위에 있고 올바른 부분군에 속함 (디코딩 시 검사)
  - 어떤 G1 점도 항등원이 아님
  - Q₁ 은 항등원도 아니고 Q₀ 와 같지도 않음

사용 예시:
    >>> result = verify_structure("srs3", group, expected_length=1 << 10)
    >>> bool(result)  # True
"""

import logging

from ptau.codec import DEFAULT_CHUNK_SIZE, SRSReader
from ptau.errors import CeremonyError, MalformedFile, StructuralMismatch, VerificationResult
from ptau.group import get_group
from ptau.srs import SRS
from ptau.utils import chunk_ranges, run_chunks

logger = logging.getLogger(__name__)


def check_generators(p0, q0, q1, group):
    """고정 생성자와 Q₁ 의 퇴화 여부를 확인한다.

    Raises:
        StructuralMismatch: 조건이 하나라도 어긋날 때
    """
    if not group.eq(p0, group.G1):
        raise StructuralMismatch("P₀ 가 G1 생성자가 아닙니다", 0)
    if not group.eq(q0, group.G2):
        raise StructuralMismatch("Q₀ 가 G2 생성자가 아닙니다", 0)
    if group.is_identity(q1):
        raise StructuralMismatch("Q₁ 이 항등원입니다", 1)
    if group.eq(q1, q0):
        raise StructuralMismatch("Q₁ 이 생성자와 같습니다 (τ = 1)", 1)


def accumulate(points, start, r, group):
    """청크의 부분합 Σ r^(start+j) · points[j] 를 계산한다.

    Raises:
        StructuralMismatch: 항등원인 G1 점이 있을 때 (전역 인덱스 포함)
    """
    acc = group.Z1
    power = r ** start
    for j, point in enumerate(points):
        if group.is_identity(point):
            raise StructuralMismatch("G1 점이 항등원입니다", start + j)
        acc = group.add(acc, group.scalar_mul(point, power))
        power = power * r
    return acc


def _accumulate_chunk(group_name, path, start, stop, r_int):
    """작업자: 파일의 [start, stop) 구간 부분합."""
    group = get_group(group_name)
    with SRSReader(path, group) as reader:
        points = reader.read_g1_range(start, stop)
    return accumulate(points, start, group.FR(r_int), group)


def batched_check(total, p0, p_last, q0, q1, r, n, group):
    """S 로부터 A, r·B 를 만들어 페어링 한 번으로 확인한다."""
    a = group.add(total, group.neg(group.scalar_mul(p_last, r ** (n - 1))))
    r_b = group.add(total, group.neg(p0))
    if not group.pairing_eq(group.scalar_mul(a, r), q1, r_b, q0):
        raise StructuralMismatch("일괄 페어링 검사 e(A, Q₁) == e(B, Q₀) 가 실패했습니다")


def check_structure(source, group, expected_length=None, chunk_size=DEFAULT_CHUNK_SIZE,
                    workers=1, r=None):
    """SRS 구조를 검사하고 실패 시 예외를 던진다.

    Args:
        source: SRS 파일 경로 또는 메모리 위의 SRS
        group: 곡선 그룹
        expected_length: 기대하는 G1 점 개수 (None 이면 확인하지 않음)
        chunk_size: 청크당 G1 점 수
        workers: 작업자 프로세스 수 (파일 입력에서만 사용)
        r: 일괄 검사용 스칼라 (None 이면 OS 난수, 테스트에서만 지정)

    Raises:
        MalformedFile, InvalidPoint, StructuralMismatch
    """
    if r is None:
        r = group.random_scalar()
    elif not isinstance(r, group.FR):
        r = group.FR(r)
    if int(r) == 0:
        raise ValueError("일괄 검사 스칼라 r 은 0 이 아니어야 합니다")

    if isinstance(source, SRS):
        return _check_in_memory(source, group, expected_length, chunk_size, r)

    with SRSReader(source, group, expected_length=expected_length) as reader:
        n = reader.n
        if n < 2:
            raise MalformedFile(f"구조를 검사하려면 G1 점이 2개 이상 필요합니다: {n}")
        q0, q1 = reader.read_g2()
        p0 = reader.read_g1(0)
        p_last = reader.read_g1(n - 1)
    check_generators(p0, q0, q1, group)

    logger.info("SRS 구조 검사 중 (G1 %d개)", n)
    tasks = [
        (group.name, str(source), lo, hi, int(r))
        for lo, hi in chunk_ranges(0, n, chunk_size)
    ]
    total = group.Z1
    for partial in run_chunks(_accumulate_chunk, tasks, workers):
        total = group.add(total, partial)

    batched_check(total, p0, p_last, q0, q1, r, n, group)
    return n


def _check_in_memory(srs, group, expected_length, chunk_size, r):
    n = srs.n
    if expected_length is not None and n != expected_length:
        raise MalformedFile(f"G1 점 {expected_length}개를 기대했지만 {n}개가 있습니다")
    if n < 2 or len(srs.g2_powers) != 2:
        raise MalformedFile(f"SRS 모양이 잘못되었습니다: G1 {n}개, G2 {len(srs.g2_powers)}개")
    q0, q1 = srs.g2_powers
    check_generators(srs.g1_powers[0], q0, q1, group)

    total = group.Z1
    for lo, hi in chunk_ranges(0, n, chunk_size):
        total = group.add(total, accumulate(srs.g1_powers[lo:hi], lo, r, group))

    batched_check(total, srs.g1_powers[0], srs.g1_powers[-1], q0, q1, r, n, group)
    return n


def verify_structure(source, group, expected_length=None, chunk_size=DEFAULT_CHUNK_SIZE,
                     workers=1, r=None):
    """SRS 구조 검증 진입점.

    Returns:
        VerificationResult: 통과하면 참. 실패 시 오류 종류와 점 인덱스를 담는다.
    """
    try:
        n = check_structure(source, group, expected_length=expected_length,
                            chunk_size=chunk_size, workers=workers, r=r)
    except CeremonyError as e:
        logger.warning("SRS 구조 검증 실패: %s", e)
        return VerificationResult.failed(e)
    logger.info("SRS 구조가 올바릅니다 (G1 %d개)", n)
    return VerificationResult.passed(n=n)
