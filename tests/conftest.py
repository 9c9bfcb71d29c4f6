"""Pytest fixtures for the ivc-bench test suite."""

import sys
from pathlib import Path

import pytest

# tests/ is inside the project root, so parent is the root
project_dir = Path(__file__).parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from ivc.folding import ReferenceFoldingScheme
from ivc.params import PublicParameters
from primitives.field import CURVE_CYCLES, CurveCycle, primary_field
from primitives.r1cs import R1CS
from tests.circuits import square_accumulate_r1cs


@pytest.fixture
def cycle() -> CurveCycle:
    return CURVE_CYCLES['bn254']


@pytest.fixture
def field(cycle: CurveCycle):
    return primary_field(cycle)


@pytest.fixture
def r1cs() -> R1CS:
    return square_accumulate_r1cs()


@pytest.fixture
def scheme(cycle: CurveCycle) -> ReferenceFoldingScheme:
    return ReferenceFoldingScheme(cycle)


@pytest.fixture
def params(scheme: ReferenceFoldingScheme, r1cs: R1CS) -> PublicParameters:
    return scheme.setup(r1cs)
