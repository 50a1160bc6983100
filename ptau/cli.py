"""
세레모니 명령줄 도구
====================

  ptau update                 다음 기여 수행 (대화식 또는 비콘)
  ptau verify-structure       SRS 하나의 구조 검증
  ptau verify-chain           시작점부터 최종 SRS 까지 증명 체인 검증
  ptau verify-consistency     세레모니 SRS 와 확장 SRS (계수 + Lagrange) 일관성 검증
  ptau extract-genesis-point  상위 세레모니 파일에서 [τ]₁ 복원
  ptau pin-genesis            첫 SRS 를 시작점으로 고정
  ptau commit                 비콘 라운드에 대한 커밋먼트 생성
  ptau verify-final           마지막 (비콘) 기여 검증

종료 코드: 0 통과, 1 암호학적 검증 실패, 2 입출력/네트워크 오류.

사용 예시:
    $ ptau --curve bls12_381 verify-structure srs3 --log2-len 19
    $ ptau commit 4000000
    $ ptau update --beacon-round 4000000 --salt 6e1f...
"""

import argparse
import logging
import os
import sys

import requests

from ptau.beacon import (
    DrandBeacon,
    commit,
    derive_secret,
    generate_salt,
    verify_final_update,
)
from ptau.chain import ProofChain, verify_chain
from ptau.config import Config
from ptau.consistency import verify_consistency
from ptau.entropy import EntropySource
from ptau.errors import CeremonyError
from ptau.genesis import GenesisReference, extract_genesis_point, read_point, write_point
from ptau.group import get_group
from ptau.structure import verify_structure
from ptau.update import contribute

logger = logging.getLogger("ptau")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_IO = 2


def _hex(value):
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"16진 문자열이 아닙니다: {value!r}") from None


def _report(result, what):
    if result:
        print(f"{what}: OK")
        return EXIT_OK
    print(f"{what}: FAILED ({result.error})")
    return EXIT_FAILED


def _genesis(args, cfg, group):
    """--genesis-digest 또는 시작점 파일에서 체인의 출발점을 정한다."""
    if args.genesis_digest is not None:
        return args.genesis_digest
    return GenesisReference.read(cfg.genesis_path, group)


# ─────────────────────────────────────────────────────────────────────
# 명령
# ─────────────────────────────────────────────────────────────────────

def cmd_update(args, cfg, group):
    chain = ProofChain.load(cfg.proofs_path, group)
    old_path = args.srs or cfg.srs_path(len(chain))

    genesis_digest = None
    if not len(chain) and os.path.exists(cfg.genesis_path):
        genesis_digest = GenesisReference.read(cfg.genesis_path, group).digest

    if args.beacon_round is not None:
        value = args.beacon_value
        if value is None:
            value = DrandBeacon(cfg.drand_url, cfg.drand_public_key).randomness(args.beacon_round)
        delta = derive_secret(value, args.salt, group)
        logger.info("비콘 라운드 %d 로부터 기여를 유도했습니다", args.beacon_round)
    else:
        delta = EntropySource(group).interactive()

    new_path, proof_path, proof = contribute(
        old_path, cfg.proofs_path, delta, group,
        output_dir=cfg.ceremony_dir,
        genesis_digest=genesis_digest,
        chunk_size=cfg.chunk_size,
        workers=cfg.workers,
    )
    print(f"새 SRS: {new_path}")
    print(f"갱신 증명: {proof_path} (index {proof.index})")
    return EXIT_OK


def cmd_verify_structure(args, cfg, group):
    expected = None if args.log2_len is None else 1 << args.log2_len
    result = verify_structure(args.srs, group, expected_length=expected,
                              chunk_size=cfg.chunk_size, workers=cfg.workers)
    return _report(result, f"SRS 구조 ({args.srs})")


def cmd_verify_chain(args, cfg, group):
    chain = ProofChain.load(cfg.proofs_path, group)
    final_path = args.final or cfg.srs_path(len(chain))
    result = verify_chain(_genesis(args, cfg, group), chain, final_path, group)
    return _report(result, f"증명 체인 ({len(chain)}개, 최종 {final_path})")


def cmd_verify_consistency(args, cfg, group):
    result = verify_consistency(args.srs, args.extended, group,
                                chunk_size=cfg.chunk_size, workers=cfg.workers)
    return _report(result, f"확장 SRS 일관성 ({args.srs}, {args.extended})")


def cmd_extract_genesis_point(args, cfg, group):
    point = extract_genesis_point(args.source, args.k, group,
                                  chunk_size=cfg.chunk_size, workers=cfg.workers)
    write_point(args.output, point, group)
    print(f"[τ]₁: {group.encode_g1(point).hex()}")
    print(f"저장: {args.output}")
    return EXIT_OK


def cmd_pin_genesis(args, cfg, group):
    point = read_point(args.point, group) if args.point else None
    output = args.output or cfg.genesis_path
    reference = GenesisReference.from_srs(args.srs, group, point=point)
    reference.write(output)
    print(f"시작점 다이제스트: {reference.digest.hex()}")
    print(f"저장: {output}")
    return EXIT_OK


def cmd_commit(args, cfg, group):
    salt = args.salt if args.salt is not None else generate_salt()
    commitment = commit(args.round, salt)
    print(f"round:      {args.round}")
    print(f"salt:       {salt.hex()}")
    print(f"commitment: {commitment.hex()}")
    return EXIT_OK


def cmd_verify_final(args, cfg, group):
    chain = ProofChain.load(cfg.proofs_path, group)
    if not len(chain):
        print("증명 체인이 비어 있습니다")
        return EXIT_FAILED
    value = args.beacon_value
    if value is None:
        value = DrandBeacon(cfg.drand_url, cfg.drand_public_key).randomness(args.round)
    result = verify_final_update(args.round, args.salt, args.commitment, value, chain.last)
    return _report(result, f"마지막 기여 (proof{chain.last.index}, 라운드 {args.round})")


# ─────────────────────────────────────────────────────────────────────
# 파서
# ─────────────────────────────────────────────────────────────────────

def build_parser():
    parser = argparse.ArgumentParser(prog="ptau", description="Powers-of-tau 세레모니 도구")
    parser.add_argument("--curve", help="곡선 그룹 (PTAU_CURVE)")
    parser.add_argument("--ceremony-dir", help="SRS 디렉터리 (PTAU_CEREMONY_DIR)")
    parser.add_argument("--proofs-dir", help="증명 디렉터리 (PTAU_PROOFS_DIR)")
    parser.add_argument("--genesis-path", help="시작점 파일 (PTAU_GENESIS_PATH)")
    parser.add_argument("--chunk-size", type=int, help="청크당 G1 점 수 (PTAU_CHUNK_SIZE)")
    parser.add_argument("--workers", type=int, help="작업자 프로세스 수 (PTAU_WORKERS)")
    parser.add_argument("--log-level", help="로그 레벨 (PTAU_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("update", help="다음 기여 수행")
    p.add_argument("--srs", help="이전 SRS (기본값: 체인 끝의 srs{N})")
    p.add_argument("--beacon-round", type=int, help="비콘 라운드 번호 (마지막 기여)")
    p.add_argument("--salt", type=_hex, help="커밋먼트의 salt (16진)")
    p.add_argument("--beacon-value", type=_hex, help="이미 검증한 비콘 값 (16진, 네트워크 생략)")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("verify-structure", help="SRS 구조 검증")
    p.add_argument("srs")
    p.add_argument("--log2-len", type=int, help="기대하는 G1 점 개수의 로그")
    p.set_defaults(func=cmd_verify_structure)

    p = sub.add_parser("verify-chain", help="증명 체인 검증")
    p.add_argument("--final", help="최종 SRS (기본값: 체인 끝의 srs{N})")
    p.add_argument("--genesis-digest", type=_hex, help="시작 다이제스트 (16진)")
    p.set_defaults(func=cmd_verify_chain)

    p = sub.add_parser("verify-consistency", help="세레모니 SRS 와 확장 SRS 일관성 검증")
    p.add_argument("srs")
    p.add_argument("extended", help="계수 형태와 Lagrange 형태를 담은 확장 SRS")
    p.set_defaults(func=cmd_verify_consistency)

    p = sub.add_parser("extract-genesis-point", help="상위 세레모니 파일에서 [τ]₁ 복원")
    p.add_argument("source")
    p.add_argument("k", type=int)
    p.add_argument("--output", default="genesis_g1_point")
    p.set_defaults(func=cmd_extract_genesis_point)

    p = sub.add_parser("pin-genesis", help="첫 SRS 를 시작점으로 고정")
    p.add_argument("srs")
    p.add_argument("--point", help="extract-genesis-point 가 만든 [τ]₁ 파일")
    p.add_argument("--output")
    p.set_defaults(func=cmd_pin_genesis)

    p = sub.add_parser("commit", help="비콘 라운드 커밋먼트 생성")
    p.add_argument("round", type=int)
    p.add_argument("--salt", type=_hex, help="salt (기본값: 16 랜덤 바이트)")
    p.set_defaults(func=cmd_commit)

    p = sub.add_parser("verify-final", help="마지막 (비콘) 기여 검증")
    p.add_argument("--round", type=int, required=True)
    p.add_argument("--salt", type=_hex, required=True)
    p.add_argument("--commitment", type=_hex, required=True)
    p.add_argument("--beacon-value", type=_hex, help="비콘 값 (16진, 생략하면 drand 에서 가져온다)")
    p.set_defaults(func=cmd_verify_final)
    return parser


def load_config(args, environ=None):
    cfg = Config(environ)
    for name in ("curve", "ceremony_dir", "proofs_dir", "genesis_path",
                 "chunk_size", "workers", "log_level"):
        value = getattr(args, name)
        if value is not None:
            setattr(cfg, name, value.upper() if name == "log_level" else value)
    return cfg


def main(argv=None, environ=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "update" and args.beacon_round is not None and args.salt is None:
        parser.error("--beacon-round 에는 --salt 가 필요합니다")
    cfg = load_config(args, environ)
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    group = get_group(cfg.curve)

    try:
        return args.func(args, cfg, group)
    except CeremonyError as e:
        logger.error("%s", e)
        return EXIT_FAILED
    except (OSError, requests.RequestException) as e:
        logger.error("입출력 오류: %s", e)
        return EXIT_IO


if __name__ == "__main__":
    sys.exit(main())
