"""
세레모니 검증 Flask Blueprint
==============================

세레모니 디렉터리의 SRS 와 증명을 누구나 검증할 수 있게 하는 JSON 엔드포인트.
모든 검증 보고서는 TinyDB 에 감사 기록(audit log)으로 남는다.

  POST /ceremony/verify-structure   {"srs": "srs3", "log2_len": 10}
  POST /ceremony/verify-chain       {"final": "srs5", "genesis_digest": "…"}
  POST /ceremony/verify-final       {"round": N, "salt": "…", "commitment": "…"}
  POST /ceremony/commit             {"round": N, "salt": "…"}
  GET  /ceremony/proofs
  GET  /ceremony/proofs/<index>
  GET  /ceremony/history
  POST /ceremony/history/clear
"""

import logging
import os
from datetime import datetime, timezone

import requests
from flask import Blueprint, jsonify, request
from tinydb import Query

from ptau.beacon import DrandBeacon, commit, generate_salt, verify_final_update
from ptau.chain import ProofChain, verify_chain
from ptau.errors import CeremonyError
from ptau.genesis import GenesisReference
from ptau.group import get_group
from ptau.structure import verify_structure

from ceremony_serializers import (
    deserialize_bytes,
    proof_summary,
    serialize_bytes,
    serialize_proof,
    serialize_result,
)

logger = logging.getLogger(__name__)

ceremony_bp = Blueprint('ceremony', __name__, url_prefix='/ceremony')

DATA = Query()

REPORT = "ceremony.report"

# DB와 설정은 app.py에서 주입
DB = None
CONFIG = None


def init_ceremony_bp(db, config):
    """app.py에서 DB와 설정을 주입받는다."""
    global DB, CONFIG
    DB = db
    CONFIG = config


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def db_remove_prefix(prefix):
    """prefix로 시작하는 모든 키를 삭제한다."""
    DB.remove(DATA.type.test(lambda t: t.startswith(prefix)))


def record_report(name, params, result):
    """검증 보고서를 감사 기록에 추가하고 종류별 최신 보고서를 갱신한다."""
    report = {
        "check": name,
        "params": params,
        "result": serialize_result(result),
        "at": datetime.now(timezone.utc).isoformat(),
    }
    DB.insert({"type": REPORT, "data": report})
    db_set(f"ceremony.last.{name}", report)
    logger.info("검증 보고서 기록: %s ok=%s", name, bool(result))
    return report


# ─── 요청 헬퍼 ───

class InvalidRequest(ValueError):
    pass


def _group():
    return get_group(CONFIG.curve)


def _ceremony_file(name):
    """세레모니 디렉터리 안의 파일 이름만 허용한다."""
    if not isinstance(name, str) or os.path.basename(name) != name or name in ("", ".", ".."):
        raise InvalidRequest(f"세레모니 디렉터리 안의 파일 이름이 필요합니다: {name!r}")
    return os.path.join(CONFIG.ceremony_dir, name)


def _hex_field(body, key, required=True):
    value = body.get(key)
    if value is None:
        if required:
            raise InvalidRequest(f"'{key}' 가 필요합니다")
        return None
    try:
        return deserialize_bytes(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"'{key}' 는 16진 문자열이어야 합니다") from None


def _int_field(body, key, required=True):
    value = body.get(key)
    if value is None:
        if required:
            raise InvalidRequest(f"'{key}' 가 필요합니다")
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRequest(f"'{key}' 는 음이 아닌 정수여야 합니다")
    return value


@ceremony_bp.errorhandler(InvalidRequest)
def handle_bad_request(e):
    return jsonify({"error": str(e)}), 400


@ceremony_bp.errorhandler(FileNotFoundError)
def handle_missing_file(e):
    return jsonify({"error": f"파일이 없습니다: {e.filename}"}), 404


@ceremony_bp.errorhandler(requests.RequestException)
def handle_beacon_network(e):
    return jsonify({"error": f"비콘을 가져오지 못했습니다: {e}"}), 502


@ceremony_bp.errorhandler(CeremonyError)
def handle_ceremony_error(e):
    return jsonify({"error": str(e), "kind": e.kind, "index": e.index}), 422


# ──────────────────────────────────────────────────────────────
# 검증
# ──────────────────────────────────────────────────────────────

@ceremony_bp.route("/verify-structure", methods=["POST"])
def verify_structure_route():
    """SRS 구조 검증."""
    body = request.get_json(silent=True) or {}
    path = _ceremony_file(body.get("srs"))
    log2_len = _int_field(body, "log2_len", required=False)
    expected = None if log2_len is None else 1 << log2_len

    result = verify_structure(path, _group(), expected_length=expected,
                              chunk_size=CONFIG.chunk_size, workers=CONFIG.workers)
    report = record_report("verify-structure", {"srs": body["srs"], "log2_len": log2_len}, result)
    return jsonify(report)


@ceremony_bp.route("/verify-chain", methods=["POST"])
def verify_chain_route():
    """시작점부터 최종 SRS 까지 증명 체인 검증."""
    body = request.get_json(silent=True) or {}
    group = _group()
    chain = ProofChain.load(CONFIG.proofs_path, group)
    final_name = body.get("final") or f"srs{len(chain)}"
    final_path = _ceremony_file(final_name)

    genesis = _hex_field(body, "genesis_digest", required=False)
    if genesis is None:
        genesis = GenesisReference.read(CONFIG.genesis_path, group)

    result = verify_chain(genesis, chain, final_path, group)
    report = record_report("verify-chain", {"final": final_name, "count": len(chain)}, result)
    return jsonify(report)


@ceremony_bp.route("/verify-final", methods=["POST"])
def verify_final_route():
    """마지막 (비콘) 기여 검증."""
    body = request.get_json(silent=True) or {}
    round_number = _int_field(body, "round")
    salt = _hex_field(body, "salt")
    commitment = _hex_field(body, "commitment")
    value = _hex_field(body, "beacon_value", required=False)

    chain = ProofChain.load(CONFIG.proofs_path, _group())
    if not len(chain):
        raise InvalidRequest("증명 체인이 비어 있습니다")
    if value is None:
        value = DrandBeacon(CONFIG.drand_url, CONFIG.drand_public_key).randomness(round_number)

    result = verify_final_update(round_number, salt, commitment, value, chain.last)
    report = record_report("verify-final", {
        "round": round_number,
        "salt": serialize_bytes(salt),
        "commitment": serialize_bytes(commitment),
        "index": chain.last.index,
    }, result)
    return jsonify(report)


@ceremony_bp.route("/commit", methods=["POST"])
def commit_route():
    """비콘 라운드 커밋먼트를 계산한다 (salt 가 없으면 새로 만든다)."""
    body = request.get_json(silent=True) or {}
    round_number = _int_field(body, "round")
    salt = _hex_field(body, "salt", required=False)
    if salt is None:
        salt = generate_salt()
    return jsonify({
        "round": round_number,
        "salt": serialize_bytes(salt),
        "commitment": serialize_bytes(commit(round_number, salt)),
    })


# ──────────────────────────────────────────────────────────────
# 조회
# ──────────────────────────────────────────────────────────────

@ceremony_bp.route("/proofs")
def proofs_page():
    """증명 체인 요약."""
    chain = ProofChain.load(CONFIG.proofs_path, _group())
    return jsonify({
        "count": len(chain),
        "proofs": [proof_summary(p) for p in chain],
    })


@ceremony_bp.route("/proofs/<int:index>")
def proof_detail(index):
    """증명 하나의 전체 내용."""
    chain = ProofChain.load(CONFIG.proofs_path, _group())
    if not 1 <= index <= len(chain):
        return jsonify({"error": f"증명 {index} 가 없습니다"}), 404
    return jsonify(serialize_proof(chain[index - 1]))


@ceremony_bp.route("/history")
def history_page():
    """감사 기록 (오래된 것부터) 과 종류별 최신 보고서."""
    reports = [row["data"] for row in DB.search(DATA.type == REPORT)]
    latest = {
        name: db_get(f"ceremony.last.{name}")
        for name in ("verify-structure", "verify-chain", "verify-final")
    }
    return jsonify({"reports": reports, "latest": latest})


@ceremony_bp.route("/history/clear", methods=["POST"])
def history_clear():
    """감사 기록을 모두 지운다."""
    DB.remove(DATA.type == REPORT)
    db_remove_prefix("ceremony.last.")
    return jsonify({"cleared": True})
