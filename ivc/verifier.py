"""Recursive artifact verification.

A rejected artifact is an ordinary outcome and is returned as such; only
faults inside the scheme (malformed artifact, mismatched parameters) are
raised, as VerificationError.
"""

import logging
from dataclasses import dataclass

import galois

from ivc.errors import ProofRejected
from ivc.folding import FoldingScheme, PublicState, RecursiveArtifact
from ivc.params import PublicParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationOutcome:
    ok: bool
    reason: str = ''
    zn: tuple[int, ...] = ()

    def __str__(self) -> str:
        if self.ok:
            return f"Ok(zn={list(self.zn)})"
        return f"Err({self.reason})"


def verify(scheme: FoldingScheme, artifact: RecursiveArtifact, params: PublicParameters,
           iteration_count: int, z0: PublicState,
           z0_secondary: galois.FieldArray) -> VerificationOutcome:
    """Check that artifact folds exactly iteration_count steps starting from z0.

    Args:
        scheme: Backend that produced the artifact
        artifact: Recursive artifact under test
        params: Public parameters it was folded under
        iteration_count: Claimed number of folded steps
        z0: Claimed initial public state
        z0_secondary: Initial state of the secondary circuit (fixed zero)

    Raises:
        VerificationError: Scheme-internal fault
    """
    try:
        zn = scheme.verify(params, artifact, iteration_count, z0, z0_secondary)
    except ProofRejected as e:
        logger.info("recursive artifact rejected: %s", e)
        return VerificationOutcome(ok=False, reason=str(e))
    return VerificationOutcome(ok=True, zn=tuple(int(v) for v in zn))
