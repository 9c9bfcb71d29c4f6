"""Tests for the per-step input pipeline."""

import json
import logging

import pytest

from ivc.errors import InputFormatError, ParseError
from ivc.inputs import (
    DEFAULT_INITIALIZER_STRATEGIES,
    ArrayHeadStrategy,
    ScalarKeyStrategy,
    extract_initializer,
    load_step_inputs,
)
from tests.circuits import P, write_step_inputs

INITIALIZER_KEYS = {s.key for s in DEFAULT_INITIALIZER_STRATEGIES}


class TestLoadStepInputs:

    @pytest.mark.parametrize("n", [1, 3, 5])
    def test_returns_exactly_n_entries(self, tmp_path, field, n: int) -> None:
        template = write_step_inputs(tmp_path, list(range(2, 2 + n)))

        z0, steps = load_step_inputs(template, n, field)

        assert len(steps) == n
        for step in steps:
            assert INITIALIZER_KEYS.isdisjoint(step)

    def test_scalar_initializer(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [3, 4], z0=99, initializer='inputHash')

        z0, steps = load_step_inputs(template, 2, field)

        assert [int(v) for v in z0] == [99]
        assert 'inputHash' not in steps[0]

    def test_array_head_initializer(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [3, 4], z0=123, initializer='step_in')

        z0, steps = load_step_inputs(template, 2, field)

        assert [int(v) for v in z0] == [123]
        assert 'step_in' not in steps[0]

    def test_missing_initializer(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [3, 4], initializer=None)

        with pytest.raises(InputFormatError):
            load_step_inputs(template, 2, field)

    def test_fold_order_is_file_order(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [10, 20, 30])

        _, steps = load_step_inputs(template, 3, field)

        assert [s['x'] for s in steps] == [10, 20, 30]

    def test_values_are_canonical(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [5])

        _, steps = load_step_inputs(template, 1, field)

        assert steps[0]['x'] == 5
        assert steps[0]['path'] == [[0, 1], [2, 3]]

    def test_negative_value(self, tmp_path, field) -> None:
        (tmp_path / "input_0.json").write_text(json.dumps({'inputHash': '1', 'x': '-2'}))

        _, steps = load_step_inputs(str(tmp_path / "input_{}.json"), 1, field)

        assert steps[0]['x'] == P - 2

    def test_bad_signal_value(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [3, 4])
        (tmp_path / "input_1.json").write_text(json.dumps({'x': str(P)}))

        with pytest.raises(InputFormatError, match="'x'"):
            load_step_inputs(template, 2, field)

    def test_stray_initializer_dropped(self, tmp_path, field, caplog) -> None:
        template = write_step_inputs(tmp_path, [3, 4])
        (tmp_path / "input_1.json").write_text(json.dumps({'x': '4', 'inputHash': '8'}))

        with caplog.at_level(logging.WARNING, logger='ivc.inputs'):
            _, steps = load_step_inputs(template, 2, field)

        assert 'inputHash' not in steps[1]
        assert 'outside step 0' in caplog.text

    def test_missing_file(self, tmp_path, field) -> None:
        template = write_step_inputs(tmp_path, [3, 4])

        with pytest.raises(FileNotFoundError):
            load_step_inputs(template, 3, field)

    def test_invalid_json(self, tmp_path, field) -> None:
        (tmp_path / "input_0.json").write_text("{")
        with pytest.raises(ParseError):
            load_step_inputs(str(tmp_path / "input_{}.json"), 1, field)

    def test_not_an_object(self, tmp_path, field) -> None:
        (tmp_path / "input_0.json").write_text("[1, 2]")
        with pytest.raises(ParseError):
            load_step_inputs(str(tmp_path / "input_{}.json"), 1, field)

    @pytest.mark.parametrize("name", ["input_{name}.json", "input_{1}.json", "input.json",
                                      "input_{.json", "input_{}_{0}.json"])
    def test_bad_template(self, tmp_path, field, name: str) -> None:
        write_step_inputs(tmp_path, [3])
        with pytest.raises(ValueError, match="template"):
            load_step_inputs(str(tmp_path / name), 1, field)

    def test_indexed_template(self, tmp_path, field) -> None:
        write_step_inputs(tmp_path, [3, 4])
        _, steps = load_step_inputs(str(tmp_path / "input_{0}.json"), 2, field)
        assert [s['x'] for s in steps] == [3, 4]

    def test_zero_iterations(self, tmp_path, field) -> None:
        with pytest.raises(ValueError):
            load_step_inputs(str(tmp_path / "input_{}.json"), 0, field)


class TestExtractInitializer:

    def test_scalar_wins_over_array(self) -> None:
        raw = {'inputHash': '5', 'step_in': ['6']}
        assert extract_initializer(raw, P) == 5

    def test_falls_through_to_array(self) -> None:
        assert extract_initializer({'step_in': ['6', '0']}, P) == 6

    def test_array_under_scalar_key_does_not_match(self) -> None:
        with pytest.raises(InputFormatError):
            extract_initializer({'inputHash': ['5']}, P)

    def test_empty_array(self) -> None:
        with pytest.raises(InputFormatError):
            extract_initializer({'step_in': []}, P)

    def test_unparsable_value(self) -> None:
        with pytest.raises(InputFormatError, match="not a field element"):
            extract_initializer({'inputHash': 'abc'}, P)

    def test_selected_strategy_logged(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger='ivc.inputs'):
            extract_initializer({'step_in': ['6']}, P)
        assert "array head 'step_in[0]'" in caplog.text

    def test_custom_strategies(self) -> None:
        strategies = (ArrayHeadStrategy('z0'), ScalarKeyStrategy('seed'))
        assert extract_initializer({'seed': '9'}, P, strategies) == 9
