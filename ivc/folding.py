"""Folding backends and the recursive artifact they produce.

A FoldingScheme is the external proving capability the IVC driver folds
steps with. The reference backend threads the public state, checks every
assignment against the step circuit and chains a SHA-256 transcript over the
per-step public IO and witness digests. It is deterministic and
tamper-evident, but neither succinct nor sound: the artifact grows with the
step count and nothing is committed to in zero knowledge.
"""

import hashlib
import json
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import galois
import numpy as np

from ivc.errors import ParseError, ProofRejected, StepRejectedError, VerificationError
from ivc.params import PublicParameters
from primitives.field import CurveCycle, primary_field, secondary_field
from primitives.r1cs import R1CS, SparseMatrix

# --- Type Aliases ---
Assignment = galois.FieldArray  # full witness vector, element 0 is one
PublicState = galois.FieldArray  # running public state z_i
Digest = str  # hex SHA-256

ARTIFACT_FORMAT = 'ivc-bench/artifact'

# Primary public state is the single initializer element
STEP_ARITY = 1

# Secondary step circuit of the reference backend: z_out = z_in * 1
SECONDARY_ARITY = 1
SECONDARY_NUM_CONSTRAINTS = 1
SECONDARY_NUM_VARIABLES = 3


@dataclass(frozen=True)
class RecursiveArtifact:
    """Proof object covering num_steps folded steps.

    Attributes:
        scheme: Backend that produced it
        params_digest: PublicParameters.digest it was folded under
        num_steps: Number of folded steps
        z0: Initial public state
        states: Public state after each step; states[-1] is z_n
        witness_digests: SHA-256 of each step's full assignment
        accumulator: Chained transcript hash over all of the above
    """
    scheme: str
    params_digest: Digest
    num_steps: int
    z0: tuple[int, ...]
    states: tuple[tuple[int, ...], ...] = field(default_factory=tuple)
    witness_digests: tuple[Digest, ...] = field(default_factory=tuple)
    accumulator: Digest = ''

    @property
    def zn(self) -> tuple[int, ...]:
        return self.states[-1] if self.states else self.z0


class FoldingScheme(ABC):
    """Two-curve folding backend.

    Args:
        cycle: Curve cycle whose primary scalar field the step circuit uses
    """

    name: str = ''

    def __init__(self, cycle: CurveCycle) -> None:
        self.cycle = cycle
        self.field = primary_field(cycle)

    @abstractmethod
    def setup(self, r1cs: R1CS) -> PublicParameters:
        """Derive public parameters from the step circuit's shape."""

    @abstractmethod
    def prove_step(self, params: PublicParameters, r1cs: R1CS,
                   artifact: RecursiveArtifact | None, assignment: Assignment,
                   z0: PublicState) -> RecursiveArtifact:
        """Fold one step's assignment into the artifact.

        Raises:
            StepRejectedError: If the assignment cannot be folded
        """

    @abstractmethod
    def verify(self, params: PublicParameters, artifact: RecursiveArtifact,
               num_steps: int, z0: PublicState,
               z0_secondary: galois.FieldArray) -> PublicState:
        """Check the artifact and return the final public state z_n.

        Raises:
            ProofRejected: Normal negative outcome
            VerificationError: Malformed artifact or parameter mismatch
        """


# --- Reference Backend ---

class ReferenceFoldingScheme(FoldingScheme):
    """Transcript-chaining backend for exercising and timing the pipeline."""

    name = 'reference'

    def setup(self, r1cs: R1CS) -> PublicParameters:
        if r1cs.prime != self.cycle.primary_prime:
            raise ParseError(f"circuit is over modulus {r1cs.prime}, "
                             f"curve cycle {self.cycle.name} needs {self.cycle.primary_prime}")
        if r1cs.n_pub_out != STEP_ARITY or r1cs.n_pub_in != STEP_ARITY:
            raise ParseError(f"step circuit must have exactly {STEP_ARITY} step_out and "
                             f"{STEP_ARITY} step_in signal (the public state z0 is a single "
                             f"element), got {r1cs.n_pub_out} outputs and {r1cs.n_pub_in} inputs")

        return PublicParameters(
            scheme=self.name,
            curve=self.cycle.name,
            arity=r1cs.arity,
            shape_digest=r1cs.shape_digest,
            num_constraints=(r1cs.n_constraints, SECONDARY_NUM_CONSTRAINTS),
            num_variables=(r1cs.n_wires, SECONDARY_NUM_VARIABLES),
        )

    def prove_step(self, params: PublicParameters, r1cs: R1CS,
                   artifact: RecursiveArtifact | None, assignment: Assignment,
                   z0: PublicState) -> RecursiveArtifact:
        if params.scheme != self.name:
            raise StepRejectedError(f"parameters belong to backend '{params.scheme}'")
        if r1cs.shape_digest != params.shape_digest:
            raise StepRejectedError("public parameters were generated for a different circuit shape")
        if len(assignment) != r1cs.n_wires:
            raise StepRejectedError(f"assignment has {len(assignment)} values, "
                                    f"circuit has {r1cs.n_wires} wires")
        if assignment[0] != 1:
            raise StepRejectedError("assignment does not start with the constant one")

        z0_ints = _ints(z0)
        if artifact is None:
            z_in = z0_ints
            accumulator = _initial_accumulator(params.digest, z0_ints)
        else:
            if artifact.params_digest != params.digest or artifact.z0 != z0_ints:
                raise StepRejectedError("artifact was started under different parameters or z0")
            z_in = artifact.zn
            accumulator = artifact.accumulator

        arity = params.arity
        step_out = _ints(assignment[1:1 + arity])
        step_in = _ints(assignment[1 + arity:1 + 2 * arity])
        if step_in != z_in:
            raise StepRejectedError(f"assignment consumes step_in {list(step_in)}, "
                                    f"running state is {list(z_in)}")

        failing = unsatisfied_constraints(r1cs, assignment)
        if len(failing) > 0:
            raise StepRejectedError(f"assignment violates {len(failing)} constraint(s), "
                                    f"first at row {failing[0]}")

        witness_digest = _witness_digest(assignment)
        prev_states = artifact.states if artifact is not None else ()
        prev_digests = artifact.witness_digests if artifact is not None else ()
        return RecursiveArtifact(
            scheme=self.name,
            params_digest=params.digest,
            num_steps=len(prev_states) + 1,
            z0=z0_ints,
            states=prev_states + (step_out,),
            witness_digests=prev_digests + (witness_digest,),
            accumulator=_chain(accumulator, z_in, step_out, witness_digest),
        )

    def verify(self, params: PublicParameters, artifact: RecursiveArtifact,
               num_steps: int, z0: PublicState,
               z0_secondary: galois.FieldArray) -> PublicState:
        if artifact.scheme != self.name:
            raise VerificationError(f"artifact was produced by backend '{artifact.scheme}'")
        if artifact.params_digest != params.digest:
            raise VerificationError("artifact was folded under different public parameters")
        if (len(artifact.states) != artifact.num_steps
                or len(artifact.witness_digests) != artifact.num_steps
                or any(len(s) != params.arity for s in artifact.states)
                or len(artifact.z0) != params.arity):
            raise VerificationError("malformed artifact")
        if (not all(_is_digest(d) for d in artifact.witness_digests)
                or not _is_digest(artifact.accumulator)):
            raise VerificationError("malformed artifact: digests must be 32-byte hex strings")
        if not all(0 <= v < self.field.order for s in (artifact.z0, *artifact.states) for v in s):
            raise VerificationError("malformed artifact: state value outside the field")

        if num_steps == 0 or artifact.num_steps != num_steps:
            raise ProofRejected(f"artifact folds {artifact.num_steps} steps, expected {num_steps}")
        if artifact.z0 != _ints(z0):
            raise ProofRejected("artifact does not start from the claimed z0")
        if len(z0_secondary) != SECONDARY_ARITY or any(int(v) != 0 for v in z0_secondary):
            raise ProofRejected("secondary initial state must be zero")

        accumulator = _initial_accumulator(params.digest, artifact.z0)
        z_in = artifact.z0
        for z_out, witness_digest in zip(artifact.states, artifact.witness_digests):
            accumulator = _chain(accumulator, z_in, z_out, witness_digest)
            z_in = z_out
        if accumulator != artifact.accumulator:
            raise ProofRejected("accumulator does not match the folded transcript")

        return self.field(list(artifact.zn))


# --- Helpers ---

def _ints(values) -> tuple[int, ...]:
    return tuple(int(v) for v in values)


def _mat_vec(matrix: SparseMatrix, n_rows: int, z: galois.FieldArray) -> galois.FieldArray:
    """Sparse matrix-vector product over the field of z."""
    GF = type(z)
    acc = np.zeros(n_rows, dtype=object)
    if matrix.coeffs:
        products = GF(list(matrix.coeffs)) * z[matrix.cols]
        np.add.at(acc, matrix.rows, products.view(np.ndarray).astype(object))
    return GF(acc % GF.order)


def unsatisfied_constraints(r1cs: R1CS, z: galois.FieldArray) -> np.ndarray:
    """Row indices where (A z) * (B z) != C z."""
    a_mat, b_mat, c_mat = r1cs.sparse_matrices
    az = _mat_vec(a_mat, r1cs.n_constraints, z)
    bz = _mat_vec(b_mat, r1cs.n_constraints, z)
    cz = _mat_vec(c_mat, r1cs.n_constraints, z)
    return np.flatnonzero(az * bz != cz)


def _encode(values) -> bytes:
    return b''.join(int(v).to_bytes(32, 'little') for v in values)


def _is_digest(value: Any) -> bool:
    return (isinstance(value, str) and len(value) == 64
            and all(c in string.hexdigits for c in value))


def _witness_digest(assignment: Assignment) -> Digest:
    return hashlib.sha256(_encode(assignment)).hexdigest()


def _initial_accumulator(params_digest: Digest, z0: tuple[int, ...]) -> Digest:
    h = hashlib.sha256(ARTIFACT_FORMAT.encode())
    h.update(bytes.fromhex(params_digest))
    h.update(_encode(z0))
    return h.hexdigest()


def _chain(accumulator: Digest, z_in: tuple[int, ...], z_out: tuple[int, ...],
           witness_digest: Digest) -> Digest:
    h = hashlib.sha256(bytes.fromhex(accumulator))
    h.update(_encode(z_in))
    h.update(_encode(z_out))
    h.update(bytes.fromhex(witness_digest))
    return h.hexdigest()


# --- Registry ---

FOLDING_SCHEMES: dict[str, type[FoldingScheme]] = {
    'reference': ReferenceFoldingScheme,
}


def get_folding_scheme(name: str, cycle: CurveCycle) -> FoldingScheme:
    """Instantiate a registered folding backend for a curve cycle.

    Raises:
        KeyError: If no backend is registered under name
    """
    if name not in FOLDING_SCHEMES:
        raise KeyError(f"No folding scheme '{name}'. "
                       f"Available: {list(FOLDING_SCHEMES.keys())}")
    return FOLDING_SCHEMES[name](cycle)


def secondary_zero(cycle: CurveCycle) -> galois.FieldArray:
    """Initial state of the secondary circuit: one zero of the secondary scalar field."""
    return secondary_field(cycle).Zeros(SECONDARY_ARITY)


# --- JSON Serialization ---

def artifact_to_json(artifact: RecursiveArtifact) -> dict[str, Any]:
    return {
        'format': ARTIFACT_FORMAT,
        'scheme': artifact.scheme,
        'paramsDigest': artifact.params_digest,
        'numSteps': artifact.num_steps,
        'z0': [str(v) for v in artifact.z0],
        'states': [[str(v) for v in s] for s in artifact.states],
        'witnessDigests': list(artifact.witness_digests),
        'accumulator': artifact.accumulator,
    }


def artifact_from_json(j: Any) -> RecursiveArtifact:
    if not isinstance(j, dict) or j.get('format') != ARTIFACT_FORMAT:
        raise ParseError("not a recursive artifact document")
    try:
        return RecursiveArtifact(
            scheme=str(j['scheme']),
            params_digest=str(j['paramsDigest']),
            num_steps=int(j['numSteps']),
            z0=tuple(int(v) for v in j['z0']),
            states=tuple(tuple(int(v) for v in s) for s in j['states']),
            witness_digests=tuple(str(d) for d in j['witnessDigests']),
            accumulator=str(j['accumulator']),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(f"malformed artifact: {e!r}") from e


def save_artifact(artifact: RecursiveArtifact, path: str | Path) -> None:
    with open(path, 'w') as f:
        json.dump(artifact_to_json(artifact), f, indent=2)


def load_artifact(path: str | Path) -> RecursiveArtifact:
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ParseError(f"{path}: invalid JSON: {e}") from e
    return artifact_from_json(data)
