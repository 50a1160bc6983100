"""
세레모니 오류 종류
==================

모든 암호학적 검증 실패는 ``CeremonyError`` 하위 클래스로 표현된다.
``kind`` 는 오류 종류 이름, ``index`` 는 문제가 된 위치
(점 인덱스, 증명 인덱스, 체인 위치)이다.

디스크/네트워크 I/O 오류(``OSError``)는 여기로 변환하지 않는다.
호출자가 재시도 가능한 오류와 재시도해도 의미 없는 검증 실패를
구분할 수 있어야 하기 때문이다.
"""


class CeremonyError(Exception):
    """세레모니 엔진 오류의 기반 클래스."""

    def __init__(self, message, index=None):
        super().__init__(message)
        self.message = message
        self.index = index

    @property
    def kind(self):
        return type(self).__name__

    def __str__(self):
        if self.index is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind} (index {self.index}): {self.message}"


class MalformedFile(CeremonyError):
    """길이가 맞지 않거나 잘린 파일, 잘못된 길이 접두사."""


class InvalidPoint(CeremonyError):
    """곡선 위에 있지 않거나 올바른 부분군에 속하지 않는 점."""


class StructuralMismatch(CeremonyError):
    """일괄 페어링 검사 등 SRS 구조 검사 실패."""


class ProofInvalid(CeremonyError):
    """Schnorr 방정식 실패 또는 다이제스트 바인딩 불일치."""


class ChainBroken(CeremonyError):
    """연속된 증명 사이의 다이제스트 불연속."""


class CommitmentViolated(CeremonyError):
    """공개된 커밋먼트로 해시되지 않는 열기(opening)."""


class BeaconUnverifiable(CeremonyError):
    """비콘 값의 서명/진위 검증 실패."""


class ZeroContribution(CeremonyError):
    """허용되지 않는 항등원(0 또는 1) 비밀 기여."""


class VerificationResult:
    """검증 진입점의 결과.

    통과하면 참(truthy), 실패하면 거짓이며 실패한 오류 종류와
    위치 정보를 함께 담는다.

    예시:
        >>> result = verify_structure(srs)
        >>> if not result:
        ...     print(result.kind, result.index)
    """

    def __init__(self, ok, error=None, details=None):
        self.ok = ok
        self.error = error
        self.details = details or {}

    @classmethod
    def passed(cls, **details):
        return cls(True, details=details)

    @classmethod
    def failed(cls, error, **details):
        return cls(False, error=error, details=details)

    @property
    def kind(self):
        return None if self.error is None else self.error.kind

    @property
    def index(self):
        return None if self.error is None else self.error.index

    @property
    def message(self):
        return None if self.error is None else self.error.message

    def __bool__(self):
        return self.ok

    def __repr__(self):
        if self.ok:
            return "VerificationResult(ok=True)"
        return f"VerificationResult(ok=False, kind={self.kind!r}, index={self.index!r})"
