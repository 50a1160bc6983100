"""
공개 랜덤 비콘과 커밋-공개 (Commit-Reveal)
==========================================

세레모니의 마지막 기여는 사람이 아니라 공개 랜덤 비콘으로 만든다.
누구나 그 기여가 미리 약속한 비콘 라운드에서 나왔음을 재현할 수 있다.

**절차**:
  1. 비콘 라운드 N 이 나오기 전에 커밋먼트를 공개한다:
         salt = 16 랜덤 바이트
         C    = SHA-256( N (16바이트 리틀엔디안) || salt )
  2. 라운드 N 의 비콘 값이 공개되면 비밀 기여를 유도한다:
         δ = derive_secret(beacon_value, salt)
     (유도 방법은 ``ptau.entropy`` 참고)
  3. δ 로 마지막 갱신을 수행하고 (N, salt) 를 공개한다.

**검증** (``verify_final_update``):
  - (N, salt) 가 C 로 해시되는지 (커밋먼트 열기)
  - 마지막 증명의 Schnorr 방정식
  - δ · old_point == new_point (마지막 갱신이 정확히 이 δ 를 썼는지)

**drand**:
  drand 메인넷(chained 스킴)은 라운드마다 BLS 서명을 공개한다.
      메시지     = SHA-256( previous_signature || round (8바이트 빅엔디안) )
      서명 검증  = BLS (공개키 G1, 서명 G2)
      비콘 값    = SHA-256( signature )

사용 예시:
    >>> salt = generate_salt()
    >>> c = commit(4_000_000, salt)
    >>> beacon = DrandBeacon()
    >>> value = beacon.randomness(4_000_000)
    >>> delta = derive_secret(value, salt, group)
"""

import hashlib
import hmac
import logging
import secrets

import requests
from py_ecc.bls import G2Basic

from ptau.entropy import EntropySource
from ptau.errors import (
    BeaconUnverifiable,
    CeremonyError,
    CommitmentViolated,
    MalformedFile,
    ProofInvalid,
    VerificationResult,
)

logger = logging.getLogger(__name__)

ROUND_SIZE = 16
SALT_SIZE = 16
COMMITMENT_SIZE = 32

DRAND_URL = "https://api.drand.sh/v2/beacons/default"

# https://api.drand.sh/v2/beacons/default/info
DRAND_PUBLIC_KEY = (
    "868f005eb8e6e4ca0a47c8a77ceaa5309a47978a7c71bc5cce96366b5d7a5699"
    "37c529eeda66c7293784a9402801af31"
)


# ─────────────────────────────────────────────────────────────────────
# 커밋-공개
# ─────────────────────────────────────────────────────────────────────

def generate_salt():
    return secrets.token_bytes(SALT_SIZE)


def commit(round_number, salt):
    """라운드 번호와 salt 에 대한 커밋먼트 C 를 계산한다.

    Args:
        round_number: 비콘 라운드 번호 (음이 아닌 정수)
        salt: 16바이트 salt

    Returns:
        bytes: 32바이트 SHA-256 커밋먼트
    """
    if len(salt) != SALT_SIZE:
        raise MalformedFile(f"salt 는 {SALT_SIZE}바이트여야 합니다: {len(salt)}")
    if round_number < 0:
        raise ValueError(f"라운드 번호는 음수일 수 없습니다: {round_number}")
    data = round_number.to_bytes(ROUND_SIZE, "little") + bytes(salt)
    return hashlib.sha256(data).digest()


def check_opening(round_number, salt, commitment):
    """(round, salt) 가 커밋먼트로 해시되는지 확인한다.

    Raises:
        CommitmentViolated: 해시가 다를 때
    """
    if not hmac.compare_digest(commit(round_number, salt), bytes(commitment)):
        raise CommitmentViolated(
            f"SHA-256({round_number} || {bytes(salt).hex()}) 가 커밋먼트와 다릅니다"
        )


def verify_opening(round_number, salt, commitment):
    try:
        check_opening(round_number, salt, commitment)
    except CommitmentViolated:
        return False
    return True


def derive_secret(beacon_value, salt, group):
    """비콘 값과 salt 로부터 마지막 기여의 δ 를 결정론적으로 유도한다."""
    return EntropySource(group).from_beacon(beacon_value, salt)


def check_final_update(round_number, salt, commitment, beacon_value, last_proof):
    """마지막 갱신이 커밋된 비콘 라운드에서 유도한 δ 를 썼는지 검사한다.

    Raises:
        CommitmentViolated: 커밋먼트 열기 실패
        ProofInvalid: 증명 자체가 틀렸거나 δ · old_point != new_point
    """
    check_opening(round_number, salt, commitment)
    last_proof.check()

    group = last_proof.group
    delta = derive_secret(beacon_value, salt, group)
    if not group.eq(group.scalar_mul(last_proof.old_point, delta), last_proof.new_point):
        raise ProofInvalid("마지막 기여가 비콘에서 유도한 δ 로 만들어지지 않았습니다",
                           last_proof.index)


def verify_final_update(round_number, salt, commitment, beacon_value, last_proof):
    """마지막 (비콘) 갱신 검증 진입점.

    Returns:
        VerificationResult
    """
    try:
        check_final_update(round_number, salt, commitment, beacon_value, last_proof)
    except CeremonyError as e:
        logger.warning("마지막 갱신 검증 실패: %s", e)
        return VerificationResult.failed(e)
    logger.info("마지막 기여(증명 %d)가 비콘 라운드 %d 로 만들어졌습니다",
                last_proof.index, round_number)
    return VerificationResult.passed(round=round_number, index=last_proof.index)


# ─────────────────────────────────────────────────────────────────────
# drand
# ─────────────────────────────────────────────────────────────────────

class BeaconRound:
    """drand 라운드 하나.

    속성:
        round: 라운드 번호
        signature: 라운드 서명 (G2 압축, 96바이트)
        previous_signature: 이전 라운드 서명 (chained 스킴)
    """

    def __init__(self, round_number, signature, previous_signature=b""):
        self.round = round_number
        self.signature = bytes(signature)
        self.previous_signature = bytes(previous_signature)

    @classmethod
    def from_json(cls, data):
        """drand HTTP API 응답에서 라운드를 만든다.

        Raises:
            BeaconUnverifiable: 필드가 없거나 16진 인코딩이 잘못되었을 때
        """
        try:
            return cls(
                int(data["round"]),
                bytes.fromhex(data["signature"]),
                bytes.fromhex(data.get("previous_signature") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BeaconUnverifiable(f"drand 응답 형식이 잘못되었습니다: {e}") from e

    def message(self):
        return hashlib.sha256(self.previous_signature + self.round.to_bytes(8, "big")).digest()

    @property
    def randomness(self):
        return hashlib.sha256(self.signature).digest()

    def __repr__(self):
        return f"BeaconRound(round={self.round})"


class DrandBeacon:
    """drand HTTP API 클라이언트."""

    def __init__(self, url=DRAND_URL, public_key=DRAND_PUBLIC_KEY, timeout=30):
        self.url = url.rstrip("/")
        self.public_key = bytes.fromhex(public_key) if isinstance(public_key, str) else public_key
        self.timeout = timeout

    def fetch_round(self, round_number):
        """라운드를 가져온다. 네트워크 오류(requests 예외)는 그대로 전파한다.

        Raises:
            BeaconUnverifiable: 응답 형식이 잘못되었거나 다른 라운드가 왔을 때
        """
        resp = requests.get(f"{self.url}/rounds/{round_number}", timeout=self.timeout)
        resp.raise_for_status()
        beacon_round = BeaconRound.from_json(resp.json())
        if beacon_round.round != round_number:
            raise BeaconUnverifiable(
                f"라운드 {round_number} 를 요청했지만 {beacon_round.round} 를 받았습니다"
            )
        return beacon_round

    def check(self, beacon_round):
        """라운드 서명을 drand 공개키로 검증한다.

        Raises:
            BeaconUnverifiable: 서명이 유효하지 않을 때
        """
        if not G2Basic.Verify(self.public_key, beacon_round.message(), beacon_round.signature):
            raise BeaconUnverifiable(f"drand 라운드 {beacon_round.round} 의 서명이 유효하지 않습니다")

    def verify(self, beacon_round):
        try:
            self.check(beacon_round)
        except BeaconUnverifiable:
            return False
        return True

    def randomness(self, round_number):
        """검증된 라운드의 비콘 값 SHA-256(signature) 를 반환한다."""
        beacon_round = self.fetch_round(round_number)
        self.check(beacon_round)
        logger.info("drand 라운드 %d 서명 검증 완료, 비콘 값 %s",
                    round_number, beacon_round.randomness.hex())
        return beacon_round.randomness
