"""
SRS 갱신 엔진
=============

한 참여자의 비밀 기여 δ 를 기존 SRS 에 적용하여 새 SRS 와 갱신 증명을 만든다.

**갱신 규칙**:
  τ 를 계산하지 않고 τ 를 δ·τ 로 바꾸는 것과 같다:

      new_Pᵢ = δⁱ · old_Pᵢ      (= (δτ)ⁱ · G,  P₀ 은 그대로)
      new_Q₀ = old_Q₀
      new_Q₁ = δ · old_Q₁

  δ = 0 은 τ 를 지워 버리고, δ = 1 은 τ 를 바꾸지 않으므로 둘 다 거부한다.

**스트리밍 파이프라인**:
  SRS 파일은 수 기가바이트이므로 읽기 → 스케일링 → 쓰기를 청크 단위로 한다.
  청크 [lo, hi) 는 δ^lo 에서 시작하여 δ 를 곱해 가며 스케일링하고,
  미리 크기를 확보한 출력 파일의 같은 인덱스 영역에 쓴다.
  따라서 청크들을 프로세스 풀에 나눠도 출력 인덱스 i 는 항상
  입력 인덱스 i 를 δⁱ 로 한 번 스케일링한 결과이다.

**원자적 완료**:
  1. 새 SRS 와 증명을 목적 디렉터리의 임시 파일에 쓴다
  2. 새 SRS 다이제스트로 증명을 만들고 로컬에서 다시 검증한다
  3. 둘 다 성공했을 때만 rename 으로 공개한다
  중간에 실패하거나 중단되면 임시 파일은 삭제되며 완료된 기여로 보이지 않는다.

사용 예시:
    >>> new_srs, proof = update(old_srs, delta)
    >>> update_file("srs0", "srs1", "proofs/proof1", delta, group, index=1)
"""

import logging
import os

from ptau.chain import ProofChain
from ptau.codec import (
    DEFAULT_CHUNK_SIZE,
    SRSReader,
    SRSWriter,
    encode_g1_block,
    write_g1_at,
)
from ptau.errors import ChainBroken, MalformedFile, ProofInvalid, ZeroContribution
from ptau.group import get_group
from ptau.schnorr import UpdateProof
from ptau.srs import SRS
from ptau.utils import (
    AtomicOutput,
    chunk_ranges,
    file_digest,
    is_power_of_2,
    run_chunks,
)

logger = logging.getLogger(__name__)


def check_contribution(delta, group):
    """δ 가 덧셈/곱셈 항등원이 아닌지 확인한다.

    Raises:
        ZeroContribution: δ ≡ 0 또는 δ ≡ 1 (mod r)
    """
    value = int(delta) % group.order
    if value == 0:
        raise ZeroContribution("δ = 0 은 τ 를 소거하므로 허용되지 않습니다")
    if value == 1:
        raise ZeroContribution("δ = 1 은 τ 를 바꾸지 않으므로 허용되지 않습니다")
    return group.FR(value)


def scale_points(points, start, delta, group):
    """points[j] 에 δ^(start + j) 를 곱한 리스트를 반환한다."""
    factor = delta ** start
    scaled = []
    for point in points:
        scaled.append(group.scalar_mul(point, factor))
        factor = factor * delta
    return scaled


def update(old_srs, delta, index=1):
    """메모리 위의 SRS 에 δ 를 적용한다.

    Args:
        old_srs: 이전 SRS
        delta: 비밀 기여 (FR 또는 정수)
        index: 생성할 증명의 순번

    Returns:
        (SRS, UpdateProof): 새 SRS 와 갱신 증명

    Raises:
        ZeroContribution: δ 가 0 또는 1 일 때
        MalformedFile: 이전 SRS 의 모양이 잘못되었을 때 (스케일링 전에 실패)
    """
    group = old_srs.group
    delta = check_contribution(delta, group)
    if not is_power_of_2(old_srs.n) or len(old_srs.g2_powers) != 2:
        raise MalformedFile(
            f"SRS 모양이 잘못되었습니다: G1 {old_srs.n}개, G2 {len(old_srs.g2_powers)}개"
        )

    new_srs = SRS(
        scale_points(old_srs.g1_powers, 0, delta, group),
        [old_srs.g2_powers[0], group.scalar_mul(old_srs.g2_powers[1], delta)],
        group,
    )
    proof = UpdateProof.create(
        index,
        old_srs.g2_powers[1],
        new_srs.g2_powers[1],
        old_srs.digest(),
        new_srs.digest(),
        delta,
        group,
    )
    proof.check()
    return new_srs, proof


def _update_chunk(group_name, old_path, new_path, start, stop, delta_int):
    """작업자: 입력 [start, stop) 을 스케일링하여 출력의 같은 영역에 쓴다."""
    group = get_group(group_name)
    with SRSReader(old_path, group) as reader:
        points = reader.read_g1_range(start, stop)
    scaled = scale_points(points, start, group.FR(delta_int), group)
    write_g1_at(new_path, group, start, encode_g1_block(scaled, group))
    return stop - start


def update_file(old_path, new_path, proof_path, delta, group, index=1,
                chunk_size=DEFAULT_CHUNK_SIZE, workers=1, expected_old_digest=None):
    """파일 사이에서 SRS 를 스트리밍 갱신하고 증명을 쓴다.

    Args:
        old_path: 이전 SRS 파일
        new_path: 새 SRS 파일 (완료 시 생성)
        proof_path: 증명 파일 (완료 시 생성, 이미 있으면 실패)
        delta: 비밀 기여
        group: 곡선 그룹
        index: 증명 순번
        chunk_size: 청크당 G1 점 수
        workers: 작업자 프로세스 수
        expected_old_digest: 이전 SRS 가 가져야 하는 다이제스트 (체인 끝)

    Returns:
        UpdateProof: 공개된 증명

    Raises:
        ZeroContribution, MalformedFile, InvalidPoint, ChainBroken, ProofInvalid
        FileExistsError: 새 SRS 또는 증명 파일이 이미 존재할 때
    """
    delta = check_contribution(delta, group)
    for path in (new_path, proof_path):
        if os.path.exists(path):
            raise FileExistsError(f"출력 파일이 이미 존재합니다: {path}")

    with SRSReader(old_path, group) as reader:
        n = reader.n
        q0, q1 = reader.read_g2()

    old_digest = file_digest(old_path)
    if expected_old_digest is not None and old_digest != bytes(expected_old_digest):
        raise ChainBroken("이전 SRS 가 증명 체인의 마지막 SRS 와 일치하지 않습니다", index - 1)

    logger.info("SRS 에 무작위성을 더하는 중 (G1 %d개)", n)
    with AtomicOutput(new_path, exclusive=True) as srs_out, \
            AtomicOutput(proof_path, exclusive=True) as proof_out:
        new_q1 = group.scalar_mul(q1, delta)
        with SRSWriter(srs_out.tmp_path, group, n) as writer:
            writer.preallocate()
            writer.write_g2(q0, new_q1)

        tasks = [
            (group.name, os.fspath(old_path), srs_out.tmp_path, lo, hi, int(delta))
            for lo, hi in chunk_ranges(0, n, chunk_size)
        ]
        done = 0
        for count in run_chunks(_update_chunk, tasks, workers):
            done += count
            logger.debug("스케일링 진행: %d/%d", done, n)

        new_digest = file_digest(srs_out.tmp_path)
        proof = UpdateProof.create(index, q1, new_q1, old_digest, new_digest, delta, group)

        # 공개 전에 기록된 파일 기준으로 다시 검증한다
        with SRSReader(srs_out.tmp_path, group, expected_length=n) as written:
            _, written_q1 = written.read_g2()
        if not group.eq(written_q1, proof.new_point):
            raise ProofInvalid("기록된 새 SRS 의 τ·H 가 증명과 다릅니다", index)
        proof.check()

        with open(proof_out.tmp_path, "wb") as f:
            f.write(proof.to_bytes())
            f.flush()
            os.fsync(f.fileno())

        # 어느 쪽이든 이미 있으면 아무것도 공개하지 않는다.
        # 증명이 보이면 그 SRS 도 이미 공개되어 있다.
        for path in (new_path, proof_path):
            if os.path.exists(path):
                raise FileExistsError(f"출력 파일이 이미 존재합니다: {path}")
        srs_out.commit()
        proof_out.commit()

    logger.info("새 SRS 를 %s 에, 갱신 증명을 %s 에 저장했습니다", new_path, proof_path)
    return proof


def contribute(old_path, proofs_dir, delta, group, output_dir=None, genesis_digest=None,
               chunk_size=DEFAULT_CHUNK_SIZE, workers=1):
    """세레모니 디렉터리에서 다음 기여를 수행한다.

    체인의 마지막 증명이 가리키는 새 다이제스트와 이전 SRS 가 일치하는지
    확인한 뒤, ``srs{N}`` 과 ``proofs/proof{N}`` 을 만든다
    (N = 기존 증명 수 + 1). 첫 기여는 genesis_digest 가 주어지면 그것과 비교한다.

    Returns:
        (새 SRS 경로, 증명 경로, UpdateProof)
    """
    chain = ProofChain.load(proofs_dir, group)
    index = len(chain) + 1
    expected = chain.last.new_digest if len(chain) else genesis_digest

    output_dir = output_dir or os.path.dirname(os.path.abspath(old_path))
    new_path = os.path.join(output_dir, f"srs{index}")
    proof_path = chain.path_for(index)

    proof = update_file(old_path, new_path, proof_path, delta, group, index=index,
                        chunk_size=chunk_size, workers=workers,
                        expected_old_digest=expected)
    return new_path, proof_path, proof
