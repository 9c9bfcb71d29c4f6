"""Per-step input pipeline.

Reads input_0.json .. input_{n-1}.json, seeds the public state z0 from the
step-0 public initializer and returns the private inputs in fold order.

Step 0 names its public initializer in one of two ways, tried in order:

    {"inputHash": "123", ...}          bare scalar
    {"step_in": ["123", ...], ...}     array whose first element is z0

The initializer is not a circuit signal, so it is removed before the mapping
is handed to the witness generator (which supplies step_in itself).
"""

import json
import logging
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import galois

from ivc.errors import InputFormatError, ParseError
from primitives.field import parse_scalar, parse_values

logger = logging.getLogger(__name__)

StepInput = dict[str, Any]


# --- Initializer Extraction ---

@dataclass(frozen=True)
class ScalarKeyStrategy:
    """Public initializer is a bare scalar under `key`."""
    key: str

    @property
    def name(self) -> str:
        return f"scalar '{self.key}'"

    def locate(self, raw: dict[str, Any]) -> Any | None:
        value = raw.get(self.key)
        if value is None or isinstance(value, (list, dict)):
            return None
        return value


@dataclass(frozen=True)
class ArrayHeadStrategy:
    """Public initializer is the first element of an array under `key`."""
    key: str

    @property
    def name(self) -> str:
        return f"array head '{self.key}[0]'"

    def locate(self, raw: dict[str, Any]) -> Any | None:
        value = raw.get(self.key)
        if not isinstance(value, list) or not value or isinstance(value[0], (list, dict)):
            return None
        return value[0]


DEFAULT_INITIALIZER_STRATEGIES = (
    ScalarKeyStrategy('inputHash'),
    ArrayHeadStrategy('step_in'),
)


def extract_initializer(raw: dict[str, Any], prime: int,
                        strategies: Sequence = DEFAULT_INITIALIZER_STRATEGIES,
                        source: str = 'step 0') -> int:
    """Return z0 from the first strategy that matches.

    Raises:
        InputFormatError: If no strategy matches or the value is not a field element
    """
    for strategy in strategies:
        value = strategy.locate(raw)
        if value is None:
            continue
        logger.info("public initializer for %s found via %s", source, strategy.name)
        try:
            return parse_scalar(value, prime)
        except ValueError as e:
            raise InputFormatError(f"{source}: public initializer {strategy.name} "
                                   f"is not a field element: {e}") from e

    keys = ', '.join(repr(s.key) for s in strategies)
    raise InputFormatError(f"{source}: no public initializer (looked for {keys})")


# --- Pipeline ---

def read_input_file(path: str | Path) -> dict[str, Any]:
    """Read one step's JSON object.

    Raises:
        FileNotFoundError: If the file does not exist
        ParseError: If it is not a JSON object
    """
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ParseError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def check_path_template(path_template: str) -> None:
    """Require a str.format template whose only fields are the step index, {} or {0}."""
    try:
        fields = [name for _, name, _, _ in string.Formatter().parse(path_template)
                  if name is not None]
    except ValueError as e:
        raise ValueError(f"invalid input template {path_template!r}: {e}") from e
    if not fields or any(name not in ('', '0') for name in fields):
        raise ValueError(f"input template {path_template!r} must contain {{}} for the "
                         f"step index and no other placeholders")
    try:
        path_template.format(0)
    except (IndexError, KeyError, ValueError) as e:
        raise ValueError(f"invalid input template {path_template!r}: {e!r}") from e


def load_step_inputs(path_template: str, iteration_count: int,
                     field: type[galois.FieldArray],
                     strategies: Sequence = DEFAULT_INITIALIZER_STRATEGIES,
                     ) -> tuple[galois.FieldArray, list[StepInput]]:
    """Load iteration_count step inputs and the initial public state.

    Args:
        path_template: str.format template taking the zero-based step index
        iteration_count: Number of steps to fold
        field: Primary circuit field every value must belong to
        strategies: Public-initializer extraction strategies, in priority order

    Returns:
        (z0, steps) with len(steps) == iteration_count, steps in fold order.
    """
    if iteration_count < 1:
        raise ValueError(f"iteration_count must be positive, got {iteration_count}")
    check_path_template(path_template)

    prime = field.order
    initializer_keys = {s.key for s in strategies}
    z0 = None
    steps: list[StepInput] = []

    for i in range(iteration_count):
        path = path_template.format(i)
        raw = read_input_file(path)

        if i == 0:
            z0 = field([extract_initializer(raw, prime, strategies, source=path)])
        else:
            stray = sorted(initializer_keys & raw.keys())
            if stray:
                logger.warning("%s: dropping public initializer field(s) %s "
                               "outside step 0", path, stray)

        step: StepInput = {}
        for name, value in raw.items():
            if name in initializer_keys:
                continue
            try:
                step[name] = parse_values(value, prime)
            except ValueError as e:
                raise InputFormatError(f"{path}: signal '{name}': {e}") from e
        steps.append(step)

    logger.info("loaded %d step inputs from %s", len(steps), path_template)
    return z0, steps
