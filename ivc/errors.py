"""Error kinds raised by the benchmark pipeline.

Missing or unreadable files surface as the built-in OSError raised by open().
Everything else derives from BenchError, except CacheWriteWarning which is
emitted through the warnings module and never aborts a run.
"""


class BenchError(Exception):
    """Base class for fatal benchmark errors."""


class ParseError(BenchError, ValueError):
    """Malformed JSON or constraint-system/witness data."""


class InputFormatError(BenchError, ValueError):
    """Missing or unparsable public initializer, or a non-field input value."""


class WitnessGenerationError(BenchError):
    """The witness generator failed to produce an assignment for a step."""


class StepRejectedError(BenchError):
    """The folding backend refused to fold an assignment."""


class FoldingError(BenchError):
    """A step failed during the IVC run. Carries the failing step index."""

    def __init__(self, step: int, message: str) -> None:
        super().__init__(f"step {step}: {message}")
        self.step = step


class ProofRejected(BenchError):
    """Normal negative verification result reported by a folding backend."""


class VerificationError(BenchError):
    """Scheme-internal verification fault (malformed artifact, parameter mismatch)."""


class CacheWriteWarning(UserWarning):
    """Public parameters could not be persisted to the cache file."""
