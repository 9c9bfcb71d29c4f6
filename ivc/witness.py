"""Witness generation capability.

A WitnessGenerator turns one step's private input plus the running public
state into the full variable assignment of the step circuit. The running
state is passed to the circuit as the `step_in` signal.

Implementations:
    CallableWitnessGenerator  in-process Python function
    CircomWitnessGenerator    circom-compiled generator run as a subprocess
                              (native C++ binary, or wasm via node)
"""

import importlib
import json
import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Sequence

import galois

from ivc.errors import ParseError, WitnessGenerationError
from ivc.inputs import StepInput
from primitives.field import to_decimal
from primitives.wtns import load_wtns

logger = logging.getLogger(__name__)

STEP_IN_SIGNAL = 'step_in'
PYTHON_REF_PREFIX = 'python:'


class WitnessGenerator(ABC):
    """Per-step witness computation over a fixed prime field.

    Args:
        field: galois prime field of the step circuit
    """

    def __init__(self, field: type[galois.FieldArray]) -> None:
        self.field = field

    @abstractmethod
    def generate(self, step_input: StepInput, z_i: galois.FieldArray) -> galois.FieldArray:
        """Compute the full assignment for one step.

        Raises:
            WitnessGenerationError: If no assignment could be produced
        """

    def circuit_inputs(self, step_input: StepInput, z_i: galois.FieldArray) -> dict[str, Any]:
        """Circuit input document: the step's signals plus step_in, as decimal strings."""
        inputs = {name: to_decimal(value) for name, value in step_input.items()}
        inputs[STEP_IN_SIGNAL] = to_decimal(z_i)
        return inputs

    def _to_assignment(self, values: Sequence[int]) -> galois.FieldArray:
        try:
            return self.field([int(v) for v in values])
        except (TypeError, ValueError) as e:
            raise WitnessGenerationError(f"witness values are not field elements: {e}") from e


class CallableWitnessGenerator(WitnessGenerator):
    """Calls fn(inputs) in-process; fn returns the full witness as integers."""

    def __init__(self, fn: Callable[[dict[str, Any]], Sequence[int]],
                 field: type[galois.FieldArray]) -> None:
        super().__init__(field)
        self.fn = fn

    def generate(self, step_input: StepInput, z_i: galois.FieldArray) -> galois.FieldArray:
        inputs = self.circuit_inputs(step_input, z_i)
        try:
            values = self.fn(inputs)
        except Exception as e:
            raise WitnessGenerationError(f"{getattr(self.fn, '__name__', self.fn)} failed: {e!r}") from e
        return self._to_assignment(values)


class CircomWitnessGenerator(WitnessGenerator):
    """Runs a circom witness generator in a scratch directory.

    A path ending in .wasm is run as
        node <dir>/generate_witness.js <wasm> input.json witness.wtns
    anything else as a native binary
        <path> input.json witness.wtns
    """

    def __init__(self, path: str | Path, field: type[galois.FieldArray],
                 node: str = 'node') -> None:
        super().__init__(field)
        self.path = Path(path)
        self.node = node

    def command(self, input_path: Path, output_path: Path) -> list[str]:
        if self.path.suffix == '.wasm':
            script = self.path.parent / 'generate_witness.js'
            return [self.node, str(script), str(self.path), str(input_path), str(output_path)]
        return [str(self.path), str(input_path), str(output_path)]

    def generate(self, step_input: StepInput, z_i: galois.FieldArray) -> galois.FieldArray:
        with tempfile.TemporaryDirectory(prefix='ivc-witness-') as tmp:
            input_path = Path(tmp) / 'input.json'
            output_path = Path(tmp) / 'witness.wtns'
            with open(input_path, 'w') as f:
                json.dump(self.circuit_inputs(step_input, z_i), f)

            cmd = self.command(input_path, output_path)
            logger.debug("running witness generator: %s", ' '.join(cmd))
            try:
                result = subprocess.run(cmd, capture_output=True, text=True,
                                        errors='replace', check=False)
            except OSError as e:
                raise WitnessGenerationError(f"cannot run {cmd[0]}: {e}") from e
            if result.returncode != 0:
                raise WitnessGenerationError(
                    f"{self.path.name} exited with status {result.returncode}: "
                    f"{result.stderr.strip() or result.stdout.strip()}")
            if not output_path.exists():
                raise WitnessGenerationError(f"{self.path.name} did not write a witness file")

            try:
                witness = load_wtns(output_path)
            except ParseError as e:
                raise WitnessGenerationError(f"unreadable witness from {self.path.name}: {e}") from e

        if witness.prime != self.field.order:
            raise WitnessGenerationError(f"witness is over modulus {witness.prime}, "
                                         f"expected {self.field.order}")
        return self._to_assignment(witness.values)


def load_witness_generator(ref: str, field: type[galois.FieldArray]) -> WitnessGenerator:
    """Resolve a generator reference.

    'python:package.module:function' selects an in-process callable; any other
    value is the filesystem path of a circom witness generator.
    """
    if ref.startswith(PYTHON_REF_PREFIX):
        module_name, _, attr = ref[len(PYTHON_REF_PREFIX):].partition(':')
        if not module_name or not attr:
            raise ValueError(f"expected 'python:module:function', got {ref!r}")
        try:
            fn = getattr(importlib.import_module(module_name), attr)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"cannot resolve witness generator {ref!r}: {e}") from e
        return CallableWitnessGenerator(fn, field)

    path = Path(ref)
    if not path.exists():
        raise FileNotFoundError(f"witness generator not found: {path}")
    return CircomWitnessGenerator(path, field)
