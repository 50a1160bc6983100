"""
Tests for the ceremony verification web service.

Covers:
- verify-structure / verify-chain / verify-final endpoints and their reports
- commit endpoint
- proof listing and detail
- audit history in TinyDB
- request validation (400), missing files (404), verification errors (422)
- proof / point serializers
"""

import hashlib

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from app import create_app
from ceremony_serializers import (
    deserialize_g1,
    deserialize_proof,
    serialize_g1,
    serialize_proof,
    serialize_result,
)
from ptau.beacon import commit, derive_secret
from ptau.chain import ProofChain
from ptau.config import Config
from ptau.errors import ProofInvalid, VerificationResult
from ptau.genesis import GenesisReference
from ptau.update import contribute


ROUND = 777
SALT = bytes(range(16, 32))
BEACON_VALUE = hashlib.sha256(b"beacon 777").digest()


@pytest.fixture
def ceremony_dir(tmp_path, toy, toy_srs):
    """srs0 → srs1 (δ=11) → srs2 (비콘) 장난감 세레모니."""
    srs0 = tmp_path / "srs0"
    toy_srs.write(srs0)
    GenesisReference.from_srs(srs0, toy).write(tmp_path / "genesis")
    proofs = tmp_path / "proofs"
    srs1, _, _ = contribute(srs0, proofs, 11, toy)
    contribute(srs1, proofs, derive_secret(BEACON_VALUE, SALT, toy), toy)
    return tmp_path


@pytest.fixture
def db():
    return TinyDB(storage=MemoryStorage)


@pytest.fixture
def client(ceremony_dir, db):
    config = Config(environ={
        "PTAU_CURVE": "toy",
        "PTAU_CEREMONY_DIR": str(ceremony_dir),
        "PTAU_GENESIS_PATH": str(ceremony_dir / "genesis"),
        "PTAU_WORKERS": "1",
    })
    app = create_app(config, db=db)
    app.config["TESTING"] = True
    return app.test_client()


def test_index(client):
    data = client.get("/").get_json()
    assert data["curve"] == "toy"


# ─────────────────────────────────────────────────────────────────────
# 검증 엔드포인트
# ─────────────────────────────────────────────────────────────────────

class TestVerifyStructure:
    """POST /ceremony/verify-structure 테스트."""

    def test_ok(self, client):
        resp = client.post("/ceremony/verify-structure", json={"srs": "srs2", "log2_len": 2})
        assert resp.status_code == 200
        report = resp.get_json()
        assert report["check"] == "verify-structure"
        assert report["result"]["ok"] is True
        assert report["result"]["details"]["n"] == 4

    def test_wrong_length(self, client):
        """A failed check is still a 200 report with ok = false."""
        resp = client.post("/ceremony/verify-structure", json={"srs": "srs1", "log2_len": 3})
        assert resp.status_code == 200
        assert resp.get_json()["result"]["kind"] == "MalformedFile"

    def test_path_traversal(self, client):
        resp = client.post("/ceremony/verify-structure", json={"srs": "../x"})
        assert resp.status_code == 400

    def test_missing_srs_field(self, client):
        assert client.post("/ceremony/verify-structure", json={}).status_code == 400

    def test_missing_file(self, client):
        resp = client.post("/ceremony/verify-structure", json={"srs": "srs9"})
        assert resp.status_code == 404

    def test_bad_log2_len(self, client):
        resp = client.post("/ceremony/verify-structure", json={"srs": "srs0", "log2_len": "2"})
        assert resp.status_code == 400


class TestVerifyChain:
    """POST /ceremony/verify-chain 테스트."""

    def test_pinned_genesis(self, client):
        """Without a digest the pinned genesis reference is used."""
        report = client.post("/ceremony/verify-chain", json={}).get_json()
        assert report["result"]["ok"] is True
        assert report["params"] == {"final": "srs2", "count": 2}
        assert report["result"]["details"]["count"] == 2

    def test_intermediate_final(self, client):
        """srs1 is not the chain tip."""
        report = client.post("/ceremony/verify-chain", json={"final": "srs1"}).get_json()
        assert report["result"]["ok"] is False
        assert report["result"]["kind"] == "ChainBroken"

    def test_genesis_digest(self, client, toy_srs):
        body = {"genesis_digest": toy_srs.digest().hex()}
        assert client.post("/ceremony/verify-chain", json=body).get_json()["result"]["ok"]
        body = {"genesis_digest": "00" * 64}
        report = client.post("/ceremony/verify-chain", json=body).get_json()
        assert report["result"]["kind"] == "ChainBroken"
        assert report["result"]["index"] == 1

    def test_bad_digest_hex(self, client):
        resp = client.post("/ceremony/verify-chain", json={"genesis_digest": "zz"})
        assert resp.status_code == 400

    def test_unreadable_genesis(self, client, ceremony_dir):
        """A corrupt genesis file is a ceremony error (422)."""
        (ceremony_dir / "genesis").write_bytes(b"\x00" * 3)
        resp = client.post("/ceremony/verify-chain", json={})
        assert resp.status_code == 422
        assert resp.get_json()["kind"] == "MalformedFile"


class TestVerifyFinal:
    """POST /ceremony/verify-final 테스트."""

    def _body(self, **overrides):
        body = {
            "round": ROUND,
            "salt": SALT.hex(),
            "commitment": commit(ROUND, SALT).hex(),
            "beacon_value": BEACON_VALUE.hex(),
        }
        body.update(overrides)
        return body

    def test_ok(self, client):
        report = client.post("/ceremony/verify-final", json=self._body()).get_json()
        assert report["result"]["ok"] is True
        assert report["params"]["index"] == 2

    def test_wrong_round(self, client):
        body = self._body(round=ROUND + 1)
        report = client.post("/ceremony/verify-final", json=body).get_json()
        assert report["result"]["kind"] == "CommitmentViolated"

    def test_wrong_beacon_value(self, client, toy):
        """A beacon value that derives a different δ is rejected."""
        expected = derive_secret(BEACON_VALUE, SALT, toy)
        other = next(
            v for v in (hashlib.sha256(bytes([i])).digest() for i in range(256))
            if derive_secret(v, SALT, toy) != expected
        )
        body = self._body(beacon_value=other.hex())
        report = client.post("/ceremony/verify-final", json=body).get_json()
        assert report["result"]["kind"] == "ProofInvalid"

    def test_missing_commitment(self, client):
        body = self._body()
        del body["commitment"]
        assert client.post("/ceremony/verify-final", json=body).status_code == 400

    def test_beacon_fetched(self, client, monkeypatch):
        """Without beacon_value the service asks drand."""
        requested = []

        def fake_randomness(self, round_number):
            requested.append(round_number)
            return BEACON_VALUE

        monkeypatch.setattr("ceremony_routes.DrandBeacon.randomness", fake_randomness)
        body = self._body()
        del body["beacon_value"]
        report = client.post("/ceremony/verify-final", json=body).get_json()
        assert report["result"]["ok"] is True
        assert requested == [ROUND]


class TestCommit:
    """POST /ceremony/commit 테스트."""

    def test_given_salt(self, client):
        data = client.post("/ceremony/commit", json={"round": ROUND, "salt": SALT.hex()}).get_json()
        assert data["commitment"] == commit(ROUND, SALT).hex()

    def test_new_salt(self, client):
        data = client.post("/ceremony/commit", json={"round": ROUND}).get_json()
        assert len(bytes.fromhex(data["salt"])) == 16

    def test_short_salt(self, client):
        resp = client.post("/ceremony/commit", json={"round": ROUND, "salt": "00"})
        assert resp.status_code == 422

    def test_negative_round(self, client):
        assert client.post("/ceremony/commit", json={"round": -1}).status_code == 400


# ─────────────────────────────────────────────────────────────────────
# 조회
# ─────────────────────────────────────────────────────────────────────

class TestProofs:
    """GET /ceremony/proofs 테스트."""

    def test_list(self, client):
        data = client.get("/ceremony/proofs").get_json()
        assert data["count"] == 2
        assert [p["index"] for p in data["proofs"]] == [1, 2]

    def test_detail(self, client, toy, ceremony_dir):
        data = client.get("/ceremony/proofs/1").get_json()
        proof = ProofChain.load(ceremony_dir / "proofs", toy)[0]
        assert data == serialize_proof(proof)

    def test_detail_missing(self, client):
        assert client.get("/ceremony/proofs/3").status_code == 404
        assert client.get("/ceremony/proofs/0").status_code == 404


class TestHistory:
    """감사 기록 테스트."""

    def test_reports_recorded(self, client):
        client.post("/ceremony/verify-structure", json={"srs": "srs0"})
        client.post("/ceremony/verify-chain", json={})
        data = client.get("/ceremony/history").get_json()
        assert [r["check"] for r in data["reports"]] == ["verify-structure", "verify-chain"]
        assert data["latest"]["verify-chain"]["result"]["ok"] is True
        assert data["latest"]["verify-final"] is None

    def test_latest_replaced(self, client):
        client.post("/ceremony/verify-structure", json={"srs": "srs0"})
        client.post("/ceremony/verify-structure", json={"srs": "srs1", "log2_len": 5})
        data = client.get("/ceremony/history").get_json()
        assert len(data["reports"]) == 2
        assert data["latest"]["verify-structure"]["params"]["srs"] == "srs1"

    def test_clear(self, client, db):
        client.post("/ceremony/verify-structure", json={"srs": "srs0"})
        assert client.post("/ceremony/history/clear").get_json()["cleared"]
        data = client.get("/ceremony/history").get_json()
        assert data["reports"] == []
        assert len(db) == 0


# ─────────────────────────────────────────────────────────────────────
# 직렬화
# ─────────────────────────────────────────────────────────────────────

class TestSerializers:
    """ceremony_serializers 테스트."""

    def test_proof(self, toy, ceremony_dir):
        proof = ProofChain.load(ceremony_dir / "proofs", toy)[1]
        restored = deserialize_proof(serialize_proof(proof), toy)
        assert restored.to_bytes() == proof.to_bytes()
        assert restored.verify()

    def test_bls_point(self, bls):
        s = serialize_g1(bls.G1, bls)
        assert len(s) == 96
        assert bls.eq(deserialize_g1(s, bls), bls.G1)

    def test_result(self):
        failed = VerificationResult.failed(ProofInvalid("bad", 4))
        data = serialize_result(failed)
        assert data == {"ok": False, "kind": "ProofInvalid", "index": 4,
                        "message": "bad", "details": {}}
        assert serialize_result(VerificationResult.passed(n=8))["details"] == {"n": 8}
