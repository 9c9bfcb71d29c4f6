"""Scalar fields of the supported curve cycles.

Uses galois library for all field arithmetic. A curve cycle pairs a primary
curve (whose scalar field is the step circuit's field) with a secondary curve
(whose scalar field is the primary curve's base field).

Field construction for ~255-bit primes is cheap only when the primality check
and primitive-root search are skipped, so the known multiplicative generators
are passed in explicitly.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import galois
import numpy as np

# --- Field Moduli ---

BN254_SCALAR_PRIME = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001
BN254_BASE_PRIME = 0x30644E72E131A029B85045B68181585D97816A916871CA8D3C208C16D87CFD47

PALLAS_SCALAR_PRIME = 0x40000000000000000000000000000000224698FC0994A8DD8C46EB2100000001
VESTA_SCALAR_PRIME = 0x40000000000000000000000000000000224698FC094CF91B992D30ED00000001

# Multiplicative generators (same values the Rust field crates use)
_GENERATORS = {
    BN254_SCALAR_PRIME: 5,
    BN254_BASE_PRIME: 3,
    PALLAS_SCALAR_PRIME: 5,
    VESTA_SCALAR_PRIME: 5,
}


@dataclass(frozen=True)
class CurveCycle:
    """Primary/secondary curve pair used by the two-curve folding construction."""
    name: str
    primary: str
    secondary: str
    primary_prime: int  # scalar field of the primary curve
    secondary_prime: int  # scalar field of the secondary curve


CURVE_CYCLES: dict[str, CurveCycle] = {
    'bn254': CurveCycle('bn254', 'bn254', 'grumpkin', BN254_SCALAR_PRIME, BN254_BASE_PRIME),
    'pasta': CurveCycle('pasta', 'pallas', 'vesta', PALLAS_SCALAR_PRIME, VESTA_SCALAR_PRIME),
}


def get_curve_cycle(name: str) -> CurveCycle:
    """Look up a curve cycle by name."""
    if name not in CURVE_CYCLES:
        raise KeyError(f"Unknown curve cycle '{name}'. "
                       f"Available: {list(CURVE_CYCLES.keys())}")
    return CURVE_CYCLES[name]


def cycle_for_prime(prime: int) -> CurveCycle:
    """Find the curve cycle whose primary scalar field has the given modulus."""
    for cycle in CURVE_CYCLES.values():
        if cycle.primary_prime == prime:
            return cycle
    raise KeyError(f"No curve cycle has primary field modulus {prime}")


# --- Field Construction ---

@lru_cache(maxsize=None)
def scalar_field(prime: int) -> type[galois.FieldArray]:
    """Return the galois prime field GF(prime)."""
    generator = _GENERATORS.get(prime)
    if generator is None:
        return galois.GF(prime)
    return galois.GF(prime, primitive_element=generator, verify=False)


def primary_field(cycle: CurveCycle) -> type[galois.FieldArray]:
    return scalar_field(cycle.primary_prime)


def secondary_field(cycle: CurveCycle) -> type[galois.FieldArray]:
    return scalar_field(cycle.secondary_prime)


# --- Parsing ---

def parse_scalar(value: Any, prime: int) -> int:
    """Parse a circom-style numeral into a canonical field integer.

    Accepts decimal strings (optionally with a leading '-') and JSON integers.
    Negative values map to prime - |value|. Raises ValueError for anything
    else, including values whose magnitude is not below the modulus.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a field element, got boolean {value!r}")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str):
        s = value.strip()
        digits = s[1:] if s.startswith('-') else s
        if not digits.isdigit() or not digits.isascii():
            raise ValueError(f"Not a decimal numeral: {value!r}")
        n = int(s)
    else:
        raise ValueError(f"Expected a field element, got {type(value).__name__}")

    if abs(n) >= prime:
        raise ValueError(f"Value {value!r} is not below the field modulus")
    return n % prime


def parse_values(value: Any, prime: int) -> Any:
    """Parse a scalar or an arbitrarily nested list of scalars."""
    if isinstance(value, list):
        return [parse_values(v, prime) for v in value]
    return parse_scalar(value, prime)


def to_decimal(value: Any) -> Any:
    """Render field integers (or nested lists of them) as decimal strings."""
    if isinstance(value, (list, tuple)) or (isinstance(value, np.ndarray) and value.ndim > 0):
        return [to_decimal(v) for v in value]
    return str(int(value))
