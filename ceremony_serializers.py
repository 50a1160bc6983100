"""
세레모니 데이터 직렬화/역직렬화 헬퍼
====================================

TinyDB 와 JSON 응답에 저장 가능한 형태로 세레모니 객체를 변환한다.
점과 다이제스트는 파일 인코딩과 같은 바이트를 16진 문자열로 표현한다.
"""

from ptau.schnorr import UpdateProof


# ─── 바이트 ───

def serialize_bytes(data):
    """bytes → hex str"""
    return None if data is None else bytes(data).hex()


def deserialize_bytes(s):
    """hex str → bytes"""
    return None if s is None else bytes.fromhex(s)


def digest_short(digest):
    """64바이트 다이제스트를 화면 표시용으로 줄인다."""
    h = bytes(digest).hex()
    return f"{h[:8]}…{h[-8:]}"


# ─── 점 / 스칼라 ───

def serialize_g1(point, group):
    return group.encode_g1(point).hex()


def deserialize_g1(s, group):
    return group.decode_g1(bytes.fromhex(s))


def serialize_g2(point, group):
    return group.encode_g2(point).hex()


def deserialize_g2(s, group):
    return group.decode_g2(bytes.fromhex(s))


def serialize_scalar(value, group):
    return group.encode_scalar(value).hex()


def deserialize_scalar(s, group):
    return group.decode_scalar(bytes.fromhex(s))


# ─── 갱신 증명 ───

def serialize_proof(proof):
    """UpdateProof → dict"""
    group = proof.group
    return {
        "index": proof.index,
        "commitment": serialize_g2(proof.commitment, group),
        "response": serialize_scalar(proof.response, group),
        "old_digest": serialize_bytes(proof.old_digest),
        "new_digest": serialize_bytes(proof.new_digest),
        "old_point": serialize_g2(proof.old_point, group),
        "new_point": serialize_g2(proof.new_point, group),
    }


def deserialize_proof(data, group):
    """dict → UpdateProof"""
    return UpdateProof(
        data["index"],
        deserialize_g2(data["commitment"], group),
        deserialize_scalar(data["response"], group),
        deserialize_bytes(data["old_digest"]),
        deserialize_bytes(data["new_digest"]),
        deserialize_g2(data["old_point"], group),
        deserialize_g2(data["new_point"], group),
        group,
    )


def proof_summary(proof):
    """증명 목록 화면용 요약."""
    return {
        "index": proof.index,
        "old_digest": digest_short(proof.old_digest),
        "new_digest": digest_short(proof.new_digest),
    }


# ─── 검증 결과 ───

def serialize_result(result):
    """VerificationResult → dict"""
    return {
        "ok": bool(result),
        "kind": result.kind,
        "index": result.index,
        "message": result.message,
        "details": dict(result.details),
    }
