"""
세레모니 공유 유틸리티
======================

여러 세레모니 모듈에서 공유되는 보조 함수를 제공한다.

**주요 기능**:
  - powers: 스칼라 거듭제곱 [1, s, s², ..., s^(n-1)]
  - chunk_ranges: 인덱스 범위를 고정 크기 청크로 분할
  - run_chunks: 청크 작업을 프로세스 풀(또는 현재 프로세스)에서 실행
  - file_digest: 파일 내용의 스트리밍 Blake2b-512 다이제스트
  - AtomicOutput: 임시 파일에 쓰고 완료 시 rename 하는 출력 파일

**병렬화 모델**:
  점 스케일링과 일괄 합산은 인덱스 범위에 대해 완전히 독립적이다.
  각 작업자는 서로 겹치지 않는 인덱스 범위를 소유하고,
  입력 파일의 해당 영역만 읽으며 (갱신의 경우) 출력 파일의 해당 영역에만 쓴다.
  작업 사이의 통신은 마지막 합산(reduction) 또는 완료 대기뿐이다.
"""

import hashlib
import logging
import os
import secrets
from concurrent.futures import ProcessPoolExecutor

logger = logging.getLogger(__name__)

DIGEST_SIZE = 64

_READ_BLOCK = 1 << 20


def powers(s, n):
    """n개의 거듭제곱 [1, s, s², ..., s^(n-1)] 을 반환한다.

    예시:
        >>> powers(FR(2), 4)  # [1, 2, 4, 8]
    """
    result = []
    current = type(s)(1)
    for _ in range(n):
        result.append(current)
        current = current * s
    return result


def is_power_of_2(n):
    return n >= 1 and (n & (n - 1)) == 0


def chunk_ranges(start, stop, chunk_size):
    """[start, stop) 을 길이 chunk_size 이하의 연속 구간들로 나눈다.

    예시:
        >>> list(chunk_ranges(0, 10, 4))  # [(0, 4), (4, 8), (8, 10)]
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size는 1 이상이어야 합니다: {chunk_size}")
    lo = start
    while lo < stop:
        hi = min(lo + chunk_size, stop)
        yield lo, hi
        lo = hi


def run_chunks(fn, tasks, workers=1):
    """청크 작업들을 실행하고 결과를 작업 순서대로 반환한다.

    workers <= 1 이면 현재 프로세스에서 순차 실행한다.
    그 외에는 ProcessPoolExecutor 로 분산한다 (fn 은 모듈 최상위 함수여야 한다).

    Args:
        fn: 작업 함수 fn(*task)
        tasks: 인자 튜플 리스트
        workers: 작업자 프로세스 수

    Returns:
        list: 각 작업의 반환값 (tasks 와 같은 순서)
    """
    tasks = list(tasks)
    if workers <= 1 or len(tasks) <= 1:
        return [fn(*task) for task in tasks]

    logger.debug("%d개 청크를 %d개 작업자로 실행", len(tasks), workers)
    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(fn, *task) for task in tasks]
        return [f.result() for f in futures]


def file_digest(path):
    """파일 전체 바이트의 Blake2b-512 다이제스트 (64바이트).

    파일은 고정 크기 블록으로 스트리밍하여 읽는다.
    """
    h = hashlib.blake2b(digest_size=DIGEST_SIZE)
    with open(path, "rb") as f:
        while True:
            block = f.read(_READ_BLOCK)
            if not block:
                break
            h.update(block)
    return h.digest()


def bytes_digest(data):
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).digest()


class AtomicOutput:
    """쓰기 후 이름 변경(write-then-rename)으로 완성되는 출력 파일.

    목적 파일과 같은 디렉터리에 임시 파일을 만들고,
    ``commit()`` 이 호출될 때만 ``os.replace`` 로 목적지에 옮긴다.
    ``commit()`` 전에 컨텍스트를 벗어나면 임시 파일은 삭제된다.
    따라서 중단된 갱신이 완료된 기여로 오인되는 일이 없다.

    사용 예시:
        >>> with AtomicOutput("srs2") as out:
        ...     with open(out.tmp_path, "wb") as f:
        ...         f.write(data)
        ...     out.commit()
    """

    def __init__(self, path, exclusive=False):
        self.path = os.fspath(path)
        self.exclusive = exclusive
        self.tmp_path = None
        self.committed = False

    def __enter__(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        name = f".{os.path.basename(self.path)}.{secrets.token_hex(8)}.partial"
        self.tmp_path = os.path.join(directory, name)
        # 권한은 umask 를 따른다 (공개 파일)
        with open(self.tmp_path, "xb"):
            pass
        return self

    def commit(self):
        if self.exclusive and os.path.exists(self.path):
            raise FileExistsError(f"이미 존재하는 파일은 덮어쓰지 않습니다: {self.path}")
        os.replace(self.tmp_path, self.path)
        self.committed = True

    def __exit__(self, exc_type, exc, tb):
        if not self.committed and self.tmp_path and os.path.exists(self.tmp_path):
            os.remove(self.tmp_path)
        return False
