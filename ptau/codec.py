"""
SRS 바이너리 코덱
=================

SRS 파일의 스트리밍 직렬화/역직렬화를 담당한다.
세레모니 규모의 SRS 는 수 기가바이트이므로 전체 구조를
메모리에 두 번 올리지 않고 고정 크기 청크 단위로 읽고 쓴다.

**파일 레이아웃** (모든 정수는 리틀엔디안):

  ┌──────────────────────────────────────────────┐
  │  u64 n           G1 점 개수 (2의 거듭제곱)   │
  ├──────────────────────────────────────────────┤
  │  n × G1          P₀ = G, P₁ = τG, ...        │
  ├──────────────────────────────────────────────┤
  │  2 × G2          Q₀ = H, Q₁ = τH              │
  └──────────────────────────────────────────────┘

점 인코딩의 길이는 곡선 그룹이 정한다 (BLS12-381 압축: G1 48, G2 96).

사용 예시:
    >>> with SRSReader("srs0", group) as reader:
    ...     q0, q1 = reader.read_g2()
    ...     for start, points in reader.iter_g1(chunk_size=4096):
    ...         ...
"""

import logging
import os

from ptau.errors import MalformedFile
from ptau.utils import is_power_of_2

logger = logging.getLogger(__name__)

HEADER_SIZE = 8

DEFAULT_CHUNK_SIZE = 1 << 14


def srs_file_size(n, group):
    """n개의 G1 점을 가진 SRS 파일의 정확한 바이트 크기."""
    return HEADER_SIZE + n * group.g1_size + 2 * group.g2_size


def encode_header(n):
    return n.to_bytes(HEADER_SIZE, "little")


def g1_offset(index, group):
    return HEADER_SIZE + index * group.g1_size


def g2_offset(n, group):
    return HEADER_SIZE + n * group.g1_size


class SRSReader:
    """SRS 파일의 스트리밍 리더.

    열 때 길이 접두사와 파일 크기가 일치하는지 먼저 확인하므로,
    잘린 파일이나 잘못된 접두사는 점 하나 읽기 전에 ``MalformedFile`` 로 실패한다.

    속성:
        n: G1 점 개수
        path: 파일 경로
    """

    def __init__(self, path, group, expected_length=None):
        self.path = os.fspath(path)
        self.group = group
        self._file = open(self.path, "rb")
        try:
            self.n = self._read_header(expected_length)
        except BaseException:
            self._file.close()
            raise

    def _read_header(self, expected_length):
        header = self._file.read(HEADER_SIZE)
        if len(header) != HEADER_SIZE:
            raise MalformedFile(f"길이 접두사를 읽을 수 없습니다: {self.path}")
        n = int.from_bytes(header, "little")
        if not is_power_of_2(n):
            raise MalformedFile(f"G1 점 개수 {n}가 2의 거듭제곱이 아닙니다")
        if expected_length is not None and n != expected_length:
            raise MalformedFile(
                f"G1 점 {expected_length}개를 기대했지만 {n}개가 있습니다"
            )
        actual = os.fstat(self._file.fileno()).st_size
        expected = srs_file_size(n, self.group)
        if actual != expected:
            raise MalformedFile(
                f"파일 크기 {actual}가 길이 접두사로부터 계산한 {expected}와 다릅니다"
            )
        return n

    def read_g1_bytes(self, start, stop):
        self._file.seek(g1_offset(start, self.group))
        size = (stop - start) * self.group.g1_size
        data = self._file.read(size)
        if len(data) != size:
            raise MalformedFile("G1 영역을 끝까지 읽지 못했습니다", start)
        return data

    def read_g1_range(self, start, stop):
        """인덱스 [start, stop) 의 G1 점을 디코딩하여 반환한다."""
        return decode_g1_block(self.read_g1_bytes(start, stop), start, self.group)

    def read_g1(self, index):
        if not 0 <= index < self.n:
            raise IndexError(f"G1 인덱스 범위 초과: {index}")
        return self.read_g1_range(index, index + 1)[0]

    def iter_g1(self, start=0, stop=None, chunk_size=DEFAULT_CHUNK_SIZE):
        """(청크 시작 인덱스, 점 리스트) 를 청크 단위로 생성한다."""
        stop = self.n if stop is None else stop
        lo = start
        while lo < stop:
            hi = min(lo + chunk_size, stop)
            yield lo, self.read_g1_range(lo, hi)
            lo = hi

    def read_g2_bytes(self):
        self._file.seek(g2_offset(self.n, self.group))
        size = 2 * self.group.g2_size
        data = self._file.read(size)
        if len(data) != size:
            raise MalformedFile("G2 영역을 끝까지 읽지 못했습니다")
        return data

    def read_g2(self):
        """[Q₀, Q₁] 을 디코딩하여 반환한다."""
        data = self.read_g2_bytes()
        size = self.group.g2_size
        return [
            self.group.decode_g2(data[:size], index=0),
            self.group.decode_g2(data[size:], index=1),
        ]

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def decode_g1_block(data, start, group):
    """연속된 G1 인코딩 블록을 디코딩한다. 오류에는 전역 점 인덱스가 붙는다."""
    size = group.g1_size
    return [
        group.decode_g1(data[j * size:(j + 1) * size], index=start + j)
        for j in range(len(data) // size)
    ]


def encode_g1_block(points, group):
    return b"".join(group.encode_g1(p) for p in points)


class SRSWriter:
    """SRS 파일의 헤더와 G2 점을 쓰는 라이터.

    ``preallocate()`` 로 전체 크기를 먼저 확보하면 작업자들이
    ``write_g1_at`` 으로 서로 겹치지 않는 영역에 독립적으로 쓸 수 있다.
    """

    def __init__(self, path, group, n):
        self.path = os.fspath(path)
        self.group = group
        self.n = n
        self._file = open(self.path, "wb")
        self._file.write(encode_header(n))

    def preallocate(self):
        self._file.truncate(srs_file_size(self.n, self.group))

    def write_g2(self, q0, q1):
        self._file.seek(g2_offset(self.n, self.group))
        self._file.write(self.group.encode_g2(q0))
        self._file.write(self.group.encode_g2(q1))

    def close(self):
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self._file.close()
        return False


def write_g1_at(path, group, start, data):
    """미리 확보된 SRS 파일의 start 인덱스 위치에 인코딩된 G1 블록을 쓴다."""
    with open(path, "r+b") as f:
        f.seek(g1_offset(start, group))
        f.write(data)
