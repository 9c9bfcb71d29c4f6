"""Rank-1 constraint system loading.

Supports the two formats circom tooling produces for a compiled circuit:

    circuit.r1cs       circom binary format (magic "r1cs", version 1)
    circuit.r1cs.json  snarkjs `r1cs export json` output

Binary layout (all integers little-endian):

    magic[4] version:u32 n_sections:u32
    repeated: section_type:u32 section_size:u64 payload[section_size]

    section 1 (header):  n8:u32 prime[n8] n_wires:u32 n_pub_out:u32
                         n_pub_in:u32 n_prv_in:u32 n_labels:u64 n_constraints:u32
    section 2 (constraints): per constraint, three linear combinations
                         n_terms:u32 then (wire:u32 coeff[n8]) * n_terms
    section 3 (wire -> label map): label:u64 * n_wires

Other section types (custom gates) are skipped.
"""

import hashlib
import json
import struct
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

import numpy as np

from ivc.errors import ParseError

# --- Type Aliases ---
LinearCombination = tuple[tuple[int, int], ...]  # ((wire, coeff), ...)
Constraint = tuple[LinearCombination, LinearCombination, LinearCombination]

R1CS_MAGIC = b'r1cs'
R1CS_VERSION = 1

SECTION_HEADER = 1
SECTION_CONSTRAINTS = 2
SECTION_WIRE2LABEL = 3


# --- Data Structures ---

@dataclass(frozen=True)
class SparseMatrix:
    """COO form of one R1CS matrix: coeffs[k] sits at (rows[k], cols[k])."""
    rows: np.ndarray
    cols: np.ndarray
    coeffs: tuple[int, ...]


@dataclass(frozen=True)
class R1CS:
    """Immutable step-circuit description.

    Wire 0 is the constant one. Public outputs occupy wires 1..1+n_pub_out,
    public inputs follow, then private inputs and intermediate signals.

    Attributes:
        prime: Field modulus the circuit was compiled for
        n_wires: Total number of wires (witness length)
        n_pub_out: Number of public outputs (step_out)
        n_pub_in: Number of public inputs (step_in)
        n_prv_in: Number of private inputs
        n_labels: Number of signal labels before optimization
        constraints: (A, B, C) linear combinations per constraint
        wire_to_label: Label id for each wire (empty if absent)
    """
    prime: int
    n_wires: int
    n_pub_out: int
    n_pub_in: int
    n_prv_in: int
    n_labels: int
    constraints: tuple[Constraint, ...]
    wire_to_label: tuple[int, ...] = ()

    @property
    def n_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_inputs(self) -> int:
        """Public wires including the constant one."""
        return 1 + self.n_pub_out + self.n_pub_in

    @property
    def num_aux(self) -> int:
        return self.n_wires - self.num_inputs

    @property
    def arity(self) -> int:
        """Length of the public state threaded between steps."""
        return self.n_pub_out

    @cached_property
    def shape_digest(self) -> str:
        """SHA-256 over the modulus, wire counts and every constraint term."""
        h = hashlib.sha256()
        h.update(self.prime.to_bytes(32, 'little'))
        h.update(struct.pack('<5I', self.n_wires, self.n_pub_out, self.n_pub_in,
                             self.n_prv_in, self.n_constraints))
        for constraint in self.constraints:
            for lc in constraint:
                h.update(struct.pack('<I', len(lc)))
                for wire, coeff in lc:
                    h.update(struct.pack('<I', wire))
                    h.update(coeff.to_bytes(32, 'little'))
        return h.hexdigest()

    @cached_property
    def sparse_matrices(self) -> tuple[SparseMatrix, SparseMatrix, SparseMatrix]:
        """Return the A, B, C matrices in COO form."""
        result = []
        for which in range(3):
            rows, cols, coeffs = [], [], []
            for row, constraint in enumerate(self.constraints):
                for wire, coeff in constraint[which]:
                    rows.append(row)
                    cols.append(wire)
                    coeffs.append(coeff)
            result.append(SparseMatrix(
                rows=np.array(rows, dtype=np.int64),
                cols=np.array(cols, dtype=np.int64),
                coeffs=tuple(coeffs),
            ))
        return tuple(result)


# --- Loading ---

def load_r1cs(path: str | Path) -> R1CS:
    """Load a constraint system, choosing the format by file suffix.

    Raises:
        FileNotFoundError: If the file does not exist
        ParseError: If the content is not a well-formed constraint system
    """
    path = Path(path)
    if path.suffix == '.json':
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ParseError(f"{path}: invalid JSON: {e}") from e
        return r1cs_from_json(data)

    with open(path, 'rb') as f:
        data = f.read()
    return r1cs_from_bytes(data)


def r1cs_from_json(data: dict) -> R1CS:
    """Build an R1CS from a snarkjs `r1cs export json` document."""
    try:
        prime = int(data['prime'])
        constraints = tuple(
            tuple(
                tuple(sorted((int(wire), int(coeff) % prime) for wire, coeff in lc.items()))
                for lc in constraint
            )
            for constraint in data['constraints']
        )
        r1cs = R1CS(
            prime=prime,
            n_wires=int(data['nVars']),
            n_pub_out=int(data['nOutputs']),
            n_pub_in=int(data['nPubInputs']),
            n_prv_in=int(data['nPrvInputs']),
            n_labels=int(data.get('nLabels', data['nVars'])),
            constraints=constraints,
            wire_to_label=tuple(int(x) for x in data.get('map', [])),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ParseError(f"malformed r1cs JSON: {e!r}") from e

    if any(len(c) != 3 for c in r1cs.constraints):
        raise ParseError("malformed r1cs JSON: constraint without exactly three terms")
    if 'nConstraints' in data and int(data['nConstraints']) != r1cs.n_constraints:
        raise ParseError(f"nConstraints={data['nConstraints']} but "
                         f"{r1cs.n_constraints} constraints listed")
    _check_wires(r1cs)
    return r1cs


def r1cs_from_bytes(data: bytes) -> R1CS:
    """Parse the circom binary .r1cs format."""
    if len(data) < 12 or data[:4] != R1CS_MAGIC:
        raise ParseError("not an r1cs file (bad magic)")
    version, n_sections = struct.unpack_from('<II', data, 4)
    if version != R1CS_VERSION:
        raise ParseError(f"unsupported r1cs version {version}")

    sections = _read_sections(data, 12, n_sections)
    if SECTION_HEADER not in sections:
        raise ParseError("r1cs file has no header section")
    if SECTION_CONSTRAINTS not in sections:
        raise ParseError("r1cs file has no constraints section")

    try:
        start, _ = sections[SECTION_HEADER]
        n8 = struct.unpack_from('<I', data, start)[0]
        idx = start + 4
        prime = int.from_bytes(data[idx:idx + n8], 'little')
        idx += n8
        n_wires, n_pub_out, n_pub_in, n_prv_in = struct.unpack_from('<4I', data, idx)
        idx += 16
        n_labels = struct.unpack_from('<Q', data, idx)[0]
        idx += 8
        n_constraints = struct.unpack_from('<I', data, idx)[0]

        start, size = sections[SECTION_CONSTRAINTS]
        end = start + size
        idx = start
        constraints = []
        for _ in range(n_constraints):
            lcs = []
            for _ in range(3):
                n_terms = struct.unpack_from('<I', data, idx)[0]
                idx += 4
                terms = []
                for _ in range(n_terms):
                    wire = struct.unpack_from('<I', data, idx)[0]
                    idx += 4
                    terms.append((wire, int.from_bytes(data[idx:idx + n8], 'little')))
                    idx += n8
                lcs.append(tuple(terms))
            constraints.append(tuple(lcs))
        if idx > end:
            raise ParseError("constraints section overruns its declared size")

        wire_to_label: tuple[int, ...] = ()
        if SECTION_WIRE2LABEL in sections:
            start, _ = sections[SECTION_WIRE2LABEL]
            wire_to_label = struct.unpack_from(f'<{n_wires}Q', data, start)
    except struct.error as e:
        raise ParseError(f"truncated r1cs file: {e}") from e

    r1cs = R1CS(
        prime=prime,
        n_wires=n_wires,
        n_pub_out=n_pub_out,
        n_pub_in=n_pub_in,
        n_prv_in=n_prv_in,
        n_labels=n_labels,
        constraints=tuple(constraints),
        wire_to_label=tuple(wire_to_label),
    )
    _check_wires(r1cs)
    return r1cs


def _read_sections(data: bytes, offset: int, n_sections: int) -> dict[int, tuple[int, int]]:
    """Map section type -> (payload offset, payload size)."""
    sections = {}
    idx = offset
    for _ in range(n_sections):
        if idx + 12 > len(data):
            raise ParseError("truncated section table")
        section_type, size = struct.unpack_from('<IQ', data, idx)
        idx += 12
        if idx + size > len(data):
            raise ParseError(f"section {section_type} runs past end of file")
        sections[section_type] = (idx, size)
        idx += size
    return sections


def _check_wires(r1cs: R1CS) -> None:
    if r1cs.num_inputs + r1cs.n_prv_in > r1cs.n_wires:
        raise ParseError(f"{r1cs.n_wires} wires cannot hold {r1cs.num_inputs} public "
                         f"and {r1cs.n_prv_in} private inputs")
    for constraint in r1cs.constraints:
        for lc in constraint:
            for wire, coeff in lc:
                if wire >= r1cs.n_wires:
                    raise ParseError(f"constraint references wire {wire} "
                                     f"of {r1cs.n_wires}")
                if coeff >= r1cs.prime:
                    raise ParseError("constraint coefficient is not reduced")


# --- Serialization ---

def r1cs_to_bytes(r1cs: R1CS) -> bytes:
    """Serialize to the circom binary .r1cs format."""
    n8 = (r1cs.prime.bit_length() + 63) // 64 * 8

    header = struct.pack('<I', n8) + r1cs.prime.to_bytes(n8, 'little')
    header += struct.pack('<4I', r1cs.n_wires, r1cs.n_pub_out, r1cs.n_pub_in, r1cs.n_prv_in)
    header += struct.pack('<Q', r1cs.n_labels)
    header += struct.pack('<I', r1cs.n_constraints)

    body = bytearray()
    for constraint in r1cs.constraints:
        for lc in constraint:
            body += struct.pack('<I', len(lc))
            for wire, coeff in lc:
                body += struct.pack('<I', wire)
                body += coeff.to_bytes(n8, 'little')

    labels = r1cs.wire_to_label or tuple(range(r1cs.n_wires))
    wire_map = struct.pack(f'<{len(labels)}Q', *labels)

    out = bytearray(R1CS_MAGIC)
    out += struct.pack('<II', R1CS_VERSION, 3)
    for section_type, payload in ((SECTION_HEADER, header),
                                  (SECTION_CONSTRAINTS, bytes(body)),
                                  (SECTION_WIRE2LABEL, wire_map)):
        out += struct.pack('<IQ', section_type, len(payload))
        out += payload
    return bytes(out)
