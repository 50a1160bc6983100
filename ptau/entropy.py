"""
비밀 기여(toxic waste) 생성
===========================

갱신에 쓰일 비밀 스칼라 δ 를 만든다. 두 가지 경로가 있다.

**대화식 경로 (일반 참여자)**:
  1. 참여자가 키보드를 무작위로 두드린 입력
  2. OS 난수 512바이트
  를 Blake2b-512 로 함께 해싱하고, 앞 32바이트를 ChaCha20 스트림의 키로 써서
  δ 를 뽑는다. 사람의 입력은 유일한 엔트로피 원천이 아니다.

**비콘 경로 (마지막 기여)**:
  공개 랜덤 비콘 값과 미리 커밋된 salt 로부터 누구나 같은 δ 를 재현할 수 있다:

      seed = Blake2b-512( hex(beacon_value) || hex(salt) )[0:32]
      δ    = scalar_from_seed(seed)

  해시 입력은 두 값을 소문자 16진 문자열로 이어 붙인 ASCII 바이트열이다.

**바이트 → 스칼라 (고정된 방법)**:
  ChaCha20 (키 = seed, 16바이트 0 논스) 키스트림에서 64바이트를 읽어
  리틀엔디안 정수로 해석하고 스칼라 위수로 축소한다 (wide reduction).
  결과가 0 또는 1 이면 다음 64바이트로 다시 뽑는다.
  512비트를 약 255비트 위수로 줄이므로 편향은 2^-256 미만이다.

사용 예시:
    >>> delta = EntropySource(group).from_beacon(beacon_value, salt)
"""

import hashlib
import logging
import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

logger = logging.getLogger(__name__)

SEED_SIZE = 32
WIDE_BYTES = 64
OS_ENTROPY_BYTES = 512

_ZERO_NONCE = b"\x00" * 16


def chacha20_keystream(seed):
    """seed 를 키로 하는 ChaCha20 키스트림을 64바이트 블록 단위로 생성한다."""
    if len(seed) != SEED_SIZE:
        raise ValueError(f"시드는 {SEED_SIZE}바이트여야 합니다: {len(seed)}")
    encryptor = Cipher(algorithms.ChaCha20(seed, _ZERO_NONCE), mode=None).encryptor()
    while True:
        yield encryptor.update(b"\x00" * WIDE_BYTES)


def scalar_from_seed(seed, group, exclude=(0, 1)):
    """32바이트 시드로부터 결정론적으로 균등한 스칼라를 뽑는다.

    Args:
        seed: 32바이트 시드
        group: 곡선 그룹 (스칼라 위수)
        exclude: 다시 뽑아야 하는 값 (기본값: 덧셈/곱셈 항등원)

    Returns:
        FR: 스칼라
    """
    for block in chacha20_keystream(seed):
        value = int.from_bytes(block, "little") % group.order
        if value not in exclude:
            return group.FR(value)


def beacon_seed(beacon_value, salt):
    """비콘 값과 salt 로부터 ChaCha20 시드를 만든다."""
    material = (bytes(beacon_value).hex() + bytes(salt).hex()).encode("ascii")
    return hashlib.blake2b(material, digest_size=64).digest()[:SEED_SIZE]


class EntropySource:
    """비밀 스칼라 δ 의 생성기.

    세레모니 상태를 갖지 않으며 호출마다 새 δ 를 만든다.
    """

    def __init__(self, group):
        self.group = group

    def interactive(self, user_input=None, prompt=input):
        """사람의 입력과 OS 난수를 섞어 δ 를 만든다.

        Args:
            user_input: 이미 받은 사용자 입력 (없으면 prompt 로 묻는다)
            prompt: 입력 함수 (기본값: 내장 input)

        Raises:
            RuntimeError: OS 엔트로피 원천을 사용할 수 없을 때 (갱신 불가)
        """
        if user_input is None:
            user_input = prompt(
                "\n키보드를 무작위로 두드린 뒤 [ENTER] 를 누르세요. "
                "(이것이 유일한 엔트로피 원천은 아닙니다.)\n"
            )
        try:
            os_input = secrets.token_bytes(OS_ENTROPY_BYTES)
        except NotImplementedError as e:
            raise RuntimeError("OS 엔트로피 원천을 사용할 수 없어 기여를 만들 수 없습니다") from e

        hasher = hashlib.blake2b(digest_size=64)
        hasher.update(user_input.encode("utf-8"))
        hasher.update(os_input)
        seed = hasher.digest()[:SEED_SIZE]
        logger.debug("대화식 엔트로피로부터 시드를 만들었습니다")
        return scalar_from_seed(seed, self.group)

    def from_beacon(self, beacon_value, salt):
        """공개 비콘 값과 salt 로부터 재현 가능한 δ 를 만든다."""
        return scalar_from_seed(beacon_seed(beacon_value, salt), self.group)
