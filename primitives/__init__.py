"""Primitives - Field, constraint-system and witness-file building blocks."""

from primitives.field import (
    CURVE_CYCLES,
    CurveCycle,
    cycle_for_prime,
    get_curve_cycle,
    parse_scalar,
    parse_values,
    primary_field,
    scalar_field,
    secondary_field,
    to_decimal,
)
from primitives.r1cs import (
    R1CS,
    SparseMatrix,
    load_r1cs,
    r1cs_to_bytes,
)
from primitives.wtns import (
    WitnessFile,
    load_wtns,
    wtns_to_bytes,
)

__all__ = [
    # Field
    "CURVE_CYCLES",
    "CurveCycle",
    "cycle_for_prime",
    "get_curve_cycle",
    "scalar_field",
    "primary_field",
    "secondary_field",
    "parse_scalar",
    "parse_values",
    "to_decimal",
    # Constraint system
    "R1CS",
    "SparseMatrix",
    "load_r1cs",
    "r1cs_to_bytes",
    # Witness files
    "WitnessFile",
    "load_wtns",
    "wtns_to_bytes",
]
