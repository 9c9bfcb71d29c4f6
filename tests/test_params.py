"""Tests for public parameters and the parameter cache."""

import dataclasses
import json
import logging

import pytest

from ivc.errors import CacheWriteWarning, ParseError
from ivc.folding import ReferenceFoldingScheme
from ivc.params import (
    ParameterCache,
    PublicParameters,
    get_or_create,
    params_from_json,
    params_to_json,
)
from primitives.field import CURVE_CYCLES
from primitives.r1cs import R1CS
from tests.circuits import P, square_accumulate_r1cs


class CountingScheme(ReferenceFoldingScheme):
    """Reference backend that counts setup calls."""

    def __init__(self, cycle) -> None:
        super().__init__(cycle)
        self.setup_calls = 0

    def setup(self, r1cs):
        self.setup_calls += 1
        return super().setup(r1cs)


@pytest.fixture
def counting_scheme(cycle) -> CountingScheme:
    return CountingScheme(cycle)


class TestSerialization:

    def test_json_round_trip(self, params: PublicParameters) -> None:
        loaded = params_from_json(json.loads(json.dumps(params_to_json(params))))
        assert loaded == params
        assert loaded.digest == params.digest

    def test_tampered_digest(self, params: PublicParameters) -> None:
        j = params_to_json(params)
        j['numConstraints'][0] += 1
        with pytest.raises(ParseError):
            params_from_json(j)

    def test_wrong_format(self) -> None:
        with pytest.raises(ParseError):
            params_from_json({'format': 'something-else'})

    def test_missing_field(self, params: PublicParameters) -> None:
        j = params_to_json(params)
        del j['arity']
        with pytest.raises(ParseError):
            params_from_json(j)


class TestSetup:

    def test_counts(self, params: PublicParameters) -> None:
        assert params.arity == 1
        assert params.num_constraints == (2, 1)
        assert params.num_variables == (5, 3)

    def test_wider_state_rejected(self, scheme) -> None:
        wide = R1CS(prime=P, n_wires=5, n_pub_out=2, n_pub_in=2, n_prv_in=0, n_labels=5,
                    constraints=((((3, 1),), ((0, 1),), ((1, 1),)),))
        with pytest.raises(ParseError, match="single element"):
            scheme.setup(wide)

    def test_other_modulus_rejected(self) -> None:
        pasta = ReferenceFoldingScheme(CURVE_CYCLES['pasta'])
        with pytest.raises(ParseError, match="modulus"):
            pasta.setup(square_accumulate_r1cs())


class TestParameterCache:

    def test_miss_generates_and_writes(self, tmp_path, r1cs, counting_scheme, caplog) -> None:
        path = tmp_path / "pp.json"

        with caplog.at_level(logging.INFO, logger='ivc.params'):
            params = ParameterCache(path, counting_scheme).get_or_create(r1cs)

        assert counting_scheme.setup_calls == 1
        assert path.exists()
        assert 'cache miss' in caplog.text
        assert params.shape_digest == r1cs.shape_digest

    def test_second_call_is_hit(self, tmp_path, r1cs, counting_scheme, caplog) -> None:
        path = tmp_path / "pp.json"
        first = get_or_create(r1cs, path, counting_scheme)

        with caplog.at_level(logging.INFO, logger='ivc.params'):
            second = get_or_create(r1cs, path, counting_scheme)

        assert counting_scheme.setup_calls == 1
        assert 'cache hit' in caplog.text
        assert second == first
        assert second.digest == first.digest

    def test_loaded_matches_fresh(self, tmp_path, r1cs, scheme, params) -> None:
        path = tmp_path / "pp.json"
        cache = ParameterCache(path, scheme)
        assert cache.store(params)

        assert cache.load() == params

    def test_corrupt_cache_regenerates(self, tmp_path, r1cs, counting_scheme) -> None:
        path = tmp_path / "pp.json"
        path.write_text("not json at all")

        params = ParameterCache(path, counting_scheme).get_or_create(r1cs)

        assert counting_scheme.setup_calls == 1
        assert params_from_json(json.loads(path.read_text())) == params

    def test_other_curve_cache_ignored(self, tmp_path, r1cs, params, counting_scheme, caplog) -> None:
        path = tmp_path / "pp.json"
        pasta = ReferenceFoldingScheme(CURVE_CYCLES['pasta'])
        foreign = PublicParameters(
            scheme=params.scheme, curve=pasta.cycle.name, arity=params.arity,
            shape_digest=params.shape_digest, num_constraints=params.num_constraints,
            num_variables=params.num_variables,
        )
        ParameterCache(path, pasta).store(foreign)

        with caplog.at_level(logging.WARNING, logger='ivc.params'):
            ParameterCache(path, counting_scheme).get_or_create(r1cs)

        assert counting_scheme.setup_calls == 1
        assert 'made for reference/pasta' in caplog.text

    def test_other_scheme_cache_ignored(self, tmp_path, r1cs, params, counting_scheme) -> None:
        path = tmp_path / "pp.json"
        ParameterCache(path, counting_scheme).store(dataclasses.replace(params, scheme='nova'))

        assert ParameterCache(path, counting_scheme).load() is None

    def test_foreign_shape_accepted(self, tmp_path, r1cs, params, counting_scheme) -> None:
        path = tmp_path / "pp.json"
        stale = PublicParameters(
            scheme=params.scheme, curve=params.curve, arity=params.arity,
            shape_digest='00' * 32, num_constraints=(999, 1), num_variables=(999, 3),
        )
        ParameterCache(path, counting_scheme).store(stale)

        loaded = ParameterCache(path, counting_scheme).get_or_create(r1cs)

        assert counting_scheme.setup_calls == 0
        assert loaded == stale

    def test_write_failure_is_warning(self, tmp_path, r1cs, counting_scheme) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        path = blocker / "pp.json"

        with pytest.warns(CacheWriteWarning):
            params = ParameterCache(path, counting_scheme).get_or_create(r1cs)

        assert params.shape_digest == r1cs.shape_digest
        assert not path.exists()

    def test_no_cache_path(self, r1cs, counting_scheme) -> None:
        cache = ParameterCache(None, counting_scheme)
        cache.get_or_create(r1cs)
        cache.get_or_create(r1cs)

        assert counting_scheme.setup_calls == 2
