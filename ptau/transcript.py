"""
갱신 증명용 Fiat-Shamir 트랜스크립트
====================================

Schnorr 지식 증명을 비대화식(non-interactive)으로 만들기 위한 해싱.

**Fiat-Shamir 변환이란?**
  원래 Schnorr 증명은 대화식이다:
  - Prover 가 커밋먼트 T 를 보내면
  - Verifier 가 랜덤 챌린지 c 를 보내고
  - Prover 가 응답 s 를 보낸다

  Fiat-Shamir 변환은 Verifier 의 역할을 해시 함수로 대신한다.
  Prover 와 Verifier 는 같은 데이터를 같은 순서로 흡수하여 같은 c 를 얻는다.

**바인딩**:
  챌린지는 이전/새 SRS 의 다이제스트를 흡수하므로, 증명을 다른 SRS 쌍에
  재사용(replay)할 수 없다.

**해시**:
  Blake2b-512 출력(512비트)을 스칼라 필드 위수로 축소한다 (wide reduction).
  출력이 위수보다 256비트 이상 넓으므로 편향은 무시할 수 있다.

사용 예시:
    >>> t = Transcript(group)
    >>> t.append_bytes(b"old_digest", old_digest)
    >>> t.append_g2(b"T", T)
    >>> c = t.challenge_scalar(b"c")
"""

import hashlib


class Transcript:
    """Blake2b-512 기반 Fiat-Shamir 트랜스크립트.

    속성:
        state: 현재까지 누적된 해시 입력 바이트열
        group: 점/스칼라 인코딩에 사용하는 곡선 그룹

    보안 주의:
        - 모든 데이터는 레이블과 길이와 함께 추가하여 도메인 분리를 보장한다
    """

    def __init__(self, group, label=b"ptau-update-proof-v1"):
        self.group = group
        self.state = bytearray()
        self._absorb(b"domain", label)

    def _absorb(self, label, data):
        self.state.extend(len(label).to_bytes(4, "little"))
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(8, "little"))
        self.state.extend(data)

    def append_bytes(self, label, data):
        self._absorb(label, bytes(data))

    def append_g2(self, label, point):
        self._absorb(label, self.group.encode_g2(point))

    def challenge_scalar(self, label):
        """트랜스크립트로부터 챌린지 스칼라를 생성한다.

        생성된 챌린지 다이제스트는 상태에 다시 추가된다 (체이닝).

        Returns:
            FR: 챌린지 스칼라
        """
        self.state.extend(label)
        h = hashlib.blake2b(bytes(self.state), digest_size=64).digest()
        challenge = self.group.FR(int.from_bytes(h, "little") % self.group.order)
        self.state.extend(h)
        return challenge
