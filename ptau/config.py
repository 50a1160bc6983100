"""
세레모니 설정
=============

환경 변수에서 읽는 기본 설정. CLI 옵션이 주어지면 그 값이 우선한다.

  PTAU_CURVE             곡선 그룹 이름 (bls12_381 | toy)
  PTAU_CEREMONY_DIR      SRS 파일 디렉터리 (srs0, srs1, ...)
  PTAU_PROOFS_DIR        증명 파일 디렉터리 (proof1, proof2, ...)
  PTAU_GENESIS_PATH      고정된 시작점 파일
  PTAU_CHUNK_SIZE        청크당 G1 점 수
  PTAU_WORKERS           작업자 프로세스 수
  PTAU_DRAND_URL         drand HTTP API 주소
  PTAU_DRAND_PUBLIC_KEY  drand 공개키 (16진)
  PTAU_DB_PATH           검증 기록 TinyDB 파일
  PTAU_LOG_LEVEL         로그 레벨
"""

import os

from ptau.beacon import DRAND_PUBLIC_KEY, DRAND_URL
from ptau.codec import DEFAULT_CHUNK_SIZE

DEFAULT_CURVE = "bls12_381"
DEFAULT_CEREMONY_DIR = "."
DEFAULT_PROOFS_DIR = "proofs"
DEFAULT_GENESIS_PATH = "genesis"
DEFAULT_WORKERS = os.cpu_count() or 1
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_DB_PATH = "db.json"


class Config:
    """설정 클래스. 생성 시점의 환경 변수를 읽는다."""

    def __init__(self, environ=None):
        env = os.environ if environ is None else environ
        self.curve = env.get("PTAU_CURVE", DEFAULT_CURVE)
        self.ceremony_dir = env.get("PTAU_CEREMONY_DIR", DEFAULT_CEREMONY_DIR)
        self.proofs_dir = env.get("PTAU_PROOFS_DIR", DEFAULT_PROOFS_DIR)
        self.genesis_path = env.get("PTAU_GENESIS_PATH", DEFAULT_GENESIS_PATH)
        self.chunk_size = int(env.get("PTAU_CHUNK_SIZE", DEFAULT_CHUNK_SIZE))
        self.workers = int(env.get("PTAU_WORKERS", DEFAULT_WORKERS))
        self.drand_url = env.get("PTAU_DRAND_URL", DRAND_URL)
        self.drand_public_key = env.get("PTAU_DRAND_PUBLIC_KEY", DRAND_PUBLIC_KEY)
        self.db_path = env.get("PTAU_DB_PATH", DEFAULT_DB_PATH)
        self.log_level = env.get("PTAU_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    def srs_path(self, index):
        return os.path.join(self.ceremony_dir, f"srs{index}")

    @property
    def proofs_path(self):
        """증명 디렉터리. 상대 경로면 세레모니 디렉터리 기준이다."""
        if os.path.isabs(self.proofs_dir):
            return self.proofs_dir
        return os.path.join(self.ceremony_dir, self.proofs_dir)

    def __repr__(self):
        return f"Config(curve={self.curve!r}, ceremony_dir={self.ceremony_dir!r})"

