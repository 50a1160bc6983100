import sys
import os
import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ptau.group import get_group
from ptau.srs import SRS


# ── 테스트 상수 (장난감 그룹 예제) ──
TOY_TAU = 3
TOY_N = 4
TOY_DELTA = 5
EXPECTED_TOY_G1 = [1, 3, 9, 27]
EXPECTED_TOY_UPDATED_G1 = [1, 15, 31, 77]


@pytest.fixture(scope="session")
def toy():
    """위수 97 장난감 그룹."""
    return get_group("toy")


@pytest.fixture(scope="session")
def bls():
    """BLS12-381 그룹."""
    return get_group("bls12_381")


@pytest.fixture
def toy_srs(toy):
    """τ = 3, n = 4 장난감 SRS."""
    return SRS.generate(TOY_N, toy, tau=TOY_TAU)


@pytest.fixture
def toy_srs_file(tmp_path, toy_srs):
    """장난감 SRS 를 srs0 파일로 쓴 경로."""
    path = tmp_path / "srs0"
    toy_srs.write(path)
    return path


@pytest.fixture(scope="session")
def bls_srs(bls):
    """작은 BLS12-381 SRS (n = 4)."""
    return SRS.generate(4, bls, seed=42)
