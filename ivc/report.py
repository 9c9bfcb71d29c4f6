"""Timing and circuit-statistics reporting."""

import time
from dataclasses import dataclass

from ivc.params import PublicParameters


class Stopwatch:
    """Wall-clock timer for a with-block."""

    def __init__(self) -> None:
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> 'Stopwatch':
        self.start = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        self.elapsed = time.perf_counter() - self.start


@dataclass
class TimingSample:
    """Elapsed seconds for the prove and verify phases."""
    prove: float | None = None
    verify: float | None = None


def format_duration(seconds: float | None) -> str:
    if seconds is None:
        return 'n/a'
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1.0:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


def print_circuit_stats(params: PublicParameters) -> None:
    print(f"Number of constraints per step (primary circuit): {params.num_constraints[0]}")
    print(f"Number of constraints per step (secondary circuit): {params.num_constraints[1]}")
    print(f"Number of variables per step (primary circuit): {params.num_variables[0]}")
    print(f"Number of variables per step (secondary circuit): {params.num_variables[1]}")


def print_prove_result(seconds: float) -> None:
    print(f"RecursiveSNARK creation took {format_duration(seconds)}")


def print_verify_result(outcome, seconds: float) -> None:
    print(f"RecursiveSNARK::verify: {outcome}, took {format_duration(seconds)}")


def print_summary(timings: TimingSample) -> None:
    print(f"prover time={format_duration(timings.prove)}, "
          f"verifier time={format_duration(timings.verify)}")
