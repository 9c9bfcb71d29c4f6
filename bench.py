#!/usr/bin/env python3
"""IVC proving benchmark.

Folds a fixed number of step-circuit executions into one recursive artifact,
verifies it, and prints circuit statistics and prover/verifier timings.

Run with:
    python bench.py --circuit circuit.r1cs --witness-generator circuit_cpp/circuit \\
        --input-template 'inputs/input_{}.json' --iterations 3 --params-cache pp.json
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from ivc.driver import IVCDriver
from ivc.errors import BenchError, ParseError
from ivc.folding import FOLDING_SCHEMES, get_folding_scheme, save_artifact, secondary_zero
from ivc.inputs import load_step_inputs
from ivc.params import ParameterCache
from ivc.report import (Stopwatch, TimingSample, print_circuit_stats, print_prove_result,
                        print_summary, print_verify_result)
from ivc.verifier import VerificationOutcome, verify
from ivc.witness import load_witness_generator
from primitives.field import CURVE_CYCLES, cycle_for_prime, get_curve_cycle, primary_field
from primitives.r1cs import load_r1cs

logger = logging.getLogger('ivc-bench')

DEFAULT_CIRCUIT = 'src/data/circom/ProcessMessages_v2_10-2-1-2_test.r1cs'
DEFAULT_WITNESS_GENERATOR = 'src/data/circom/ProcessMessages_v2_10-2-1-2_test'
DEFAULT_INPUT_TEMPLATE = 'src/data/input/input_{}.json'
DEFAULT_ITERATIONS = 3

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


@dataclass
class BenchConfig:
    """Benchmark run configuration."""
    circuit: Path = Path(DEFAULT_CIRCUIT)
    witness_generator: str = DEFAULT_WITNESS_GENERATOR
    input_template: str = DEFAULT_INPUT_TEMPLATE
    iterations: int = DEFAULT_ITERATIONS
    params_cache: Path | None = None
    curve: str | None = None  # inferred from the circuit's modulus when None
    scheme: str = 'reference'
    artifact_out: Path | None = None


@dataclass
class BenchResult:
    outcome: VerificationOutcome
    timings: TimingSample


def run_bench(config: BenchConfig) -> BenchResult:
    """Run the pipeline: load circuit, parameters, inputs, then fold and verify."""
    r1cs = load_r1cs(config.circuit)
    if config.curve is None:
        try:
            cycle = cycle_for_prime(r1cs.prime)
        except KeyError as e:
            raise ParseError(f"{config.circuit}: unsupported field modulus {r1cs.prime}") from e
    else:
        cycle = get_curve_cycle(config.curve)
    field = primary_field(cycle)
    scheme = get_folding_scheme(config.scheme, cycle)

    print("creating public params...")
    params = ParameterCache(config.params_cache, scheme).get_or_create(r1cs)
    print_circuit_stats(params)

    z0, steps = load_step_inputs(config.input_template, config.iterations, field)
    witness_generator = load_witness_generator(config.witness_generator, field)

    timings = TimingSample()
    print("Creating a RecursiveSNARK...")
    with Stopwatch() as sw:
        artifact = IVCDriver(scheme).run(r1cs, witness_generator, steps, z0, params)
    timings.prove = sw.elapsed
    print_prove_result(timings.prove)

    if config.artifact_out is not None:
        save_artifact(artifact, config.artifact_out)
        logger.info("wrote recursive artifact to %s", config.artifact_out)

    print("Verifying a RecursiveSNARK...")
    with Stopwatch() as sw:
        outcome = verify(scheme, artifact, params, config.iterations, z0, secondary_zero(cycle))
    timings.verify = sw.elapsed
    print_verify_result(outcome, timings.verify)

    print_summary(timings)
    return BenchResult(outcome=outcome, timings=timings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Benchmark folding a step circuit into a recursive IVC artifact'
    )
    parser.add_argument(
        '--circuit',
        type=Path,
        default=Path(DEFAULT_CIRCUIT),
        help='Step circuit: circom .r1cs or snarkjs .r1cs.json'
    )
    parser.add_argument(
        '--witness-generator',
        type=str,
        default=DEFAULT_WITNESS_GENERATOR,
        help="circom witness generator (native binary or .wasm), or 'python:module:function'"
    )
    parser.add_argument(
        '--input-template',
        type=str,
        default=DEFAULT_INPUT_TEMPLATE,
        help='Per-step input path with {} for the zero-based step index'
    )
    parser.add_argument(
        '--iterations',
        type=int,
        default=DEFAULT_ITERATIONS,
        help='Number of steps to fold'
    )
    parser.add_argument(
        '--params-cache',
        type=Path,
        default=None,
        help='Public parameters cache file (read if present, written after generation)'
    )
    parser.add_argument(
        '--curve',
        choices=sorted(CURVE_CYCLES),
        default=None,
        help='Curve cycle (default: inferred from the circuit prime)'
    )
    parser.add_argument(
        '--scheme',
        choices=sorted(FOLDING_SCHEMES),
        default='reference',
        help='Folding backend'
    )
    parser.add_argument(
        '--artifact-out',
        type=Path,
        default=None,
        help='Write the recursive artifact as JSON'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging'
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(message)s',
    )
    config = BenchConfig(
        circuit=args.circuit,
        witness_generator=args.witness_generator,
        input_template=args.input_template,
        iterations=args.iterations,
        params_cache=args.params_cache,
        curve=args.curve,
        scheme=args.scheme,
        artifact_out=args.artifact_out,
    )

    try:
        result = run_bench(config)
    except (OSError, ValueError, BenchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if not result.outcome.ok:
        print(f"Error: verification failed: {result.outcome.reason}", file=sys.stderr)
        return EXIT_REJECTED
    print("everything works fine")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
