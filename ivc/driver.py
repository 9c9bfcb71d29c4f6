"""IVC driver: folds the step inputs into one recursive artifact."""

import logging
from typing import Sequence

from ivc.errors import FoldingError, StepRejectedError, WitnessGenerationError
from ivc.folding import FoldingScheme, PublicState, RecursiveArtifact
from ivc.inputs import StepInput
from ivc.params import PublicParameters
from ivc.witness import WitnessGenerator
from primitives.r1cs import R1CS

logger = logging.getLogger(__name__)


class IVCDriver:
    """Sequential fold loop over a folding backend.

    Args:
        scheme: Folding backend that proves each step
    """

    def __init__(self, scheme: FoldingScheme) -> None:
        self.scheme = scheme

    def run(self, constraint_system: R1CS, witness_generator: WitnessGenerator,
            steps: Sequence[StepInput], z0: PublicState,
            params: PublicParameters) -> RecursiveArtifact:
        """Fold every step in order, threading the public state.

        Step i's witness is generated from steps[i] and z_i, where z_0 is the
        initial state and z_{i+1} is the state produced by folding step i.

        Raises:
            FoldingError: Carrying the index of the first step that failed.
                No artifact is returned in that case.
        """
        if not steps:
            raise ValueError("nothing to fold: no step inputs")

        artifact: RecursiveArtifact | None = None
        z_i = z0
        for i, step_input in enumerate(steps):
            try:
                assignment = witness_generator.generate(step_input, z_i)
                artifact = self.scheme.prove_step(params, constraint_system, artifact,
                                                  assignment, z0)
            except (WitnessGenerationError, StepRejectedError) as e:
                raise FoldingError(i, str(e)) from e

            z_i = self.scheme.field(list(artifact.zn))
            logger.debug("folded step %d/%d, z_%d = %s", i + 1, len(steps), i + 1,
                         [int(v) for v in z_i])

        return artifact
