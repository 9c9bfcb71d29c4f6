"""Public parameters and their on-disk cache.

Generating public parameters is the expensive one-off part of a benchmark
run, so they are persisted as JSON and reused by later runs. The cache is
keyed only by its file path: an existing, well-formed file is trusted as-is.
"""

import hashlib
import json
import logging
import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ivc.errors import CacheWriteWarning, ParseError

if TYPE_CHECKING:
    from ivc.folding import FoldingScheme
    from primitives.r1cs import R1CS

logger = logging.getLogger(__name__)

PARAMS_FORMAT = 'ivc-bench/params'
PARAMS_VERSION = 1


@dataclass(frozen=True)
class PublicParameters:
    """Folding-scheme parameters derived from a step circuit's shape.

    Attributes:
        scheme: Name of the folding backend that produced them
        curve: Curve cycle name (e.g. 'bn254')
        arity: Length of the public state vector
        shape_digest: R1CS.shape_digest of the circuit they were made for
        num_constraints: (primary, secondary) constraints per step
        num_variables: (primary, secondary) variables per step
    """
    scheme: str
    curve: str
    arity: int
    shape_digest: str
    num_constraints: tuple[int, int]
    num_variables: tuple[int, int]

    @property
    def digest(self) -> str:
        """SHA-256 over the canonical JSON encoding of every field."""
        body = json.dumps(_params_body(self), sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(body.encode()).hexdigest()


# --- JSON Serialization ---

def _params_body(params: PublicParameters) -> dict[str, Any]:
    return {
        'scheme': params.scheme,
        'curve': params.curve,
        'arity': params.arity,
        'shapeDigest': params.shape_digest,
        'numConstraints': list(params.num_constraints),
        'numVariables': list(params.num_variables),
    }


def params_to_json(params: PublicParameters) -> dict[str, Any]:
    j = {'format': PARAMS_FORMAT, 'version': PARAMS_VERSION}
    j.update(_params_body(params))
    j['digest'] = params.digest
    return j


def params_from_json(j: Any) -> PublicParameters:
    """Rebuild PublicParameters, checking structure and the stored digest."""
    if not isinstance(j, dict) or j.get('format') != PARAMS_FORMAT:
        raise ParseError("not a public parameters document")
    if j.get('version') != PARAMS_VERSION:
        raise ParseError(f"unsupported public parameters version {j.get('version')!r}")
    try:
        params = PublicParameters(
            scheme=str(j['scheme']),
            curve=str(j['curve']),
            arity=int(j['arity']),
            shape_digest=str(j['shapeDigest']),
            num_constraints=(int(j['numConstraints'][0]), int(j['numConstraints'][1])),
            num_variables=(int(j['numVariables'][0]), int(j['numVariables'][1])),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ParseError(f"malformed public parameters: {e!r}") from e

    if j.get('digest') != params.digest:
        raise ParseError("public parameters digest does not match their contents")
    return params


# --- Cache ---

class ParameterCache:
    """Loader/writer for one cache file, owned by the caller.

    Args:
        path: Cache file location, or None to disable caching
        scheme: Folding backend used to generate parameters on a miss
    """

    def __init__(self, path: str | Path | None, scheme: 'FoldingScheme') -> None:
        self.path = Path(path) if path is not None else None
        self.scheme = scheme

    def load(self) -> PublicParameters | None:
        """Return cached parameters, or None if absent or unusable."""
        if self.path is None or not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                params = params_from_json(json.load(f))
        except (OSError, json.JSONDecodeError, ParseError) as e:
            logger.warning("ignoring unusable parameter cache %s: %s", self.path, e)
            return None

        if params.scheme != self.scheme.name or params.curve != self.scheme.cycle.name:
            logger.warning("ignoring parameter cache %s: made for %s/%s, need %s/%s",
                           self.path, params.scheme, params.curve,
                           self.scheme.name, self.scheme.cycle.name)
            return None
        return params

    def store(self, params: PublicParameters) -> bool:
        """Best-effort write. Returns False (with a CacheWriteWarning) on failure."""
        if self.path is None:
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(params_to_json(params), f, indent=2)
        except OSError as e:
            logger.warning("could not write parameter cache %s: %s", self.path, e)
            warnings.warn(f"could not write parameter cache {self.path}: {e}",
                          CacheWriteWarning, stacklevel=2)
            return False
        logger.info("wrote public parameters to %s", self.path)
        return True

    def get_or_create(self, constraint_system: 'R1CS') -> PublicParameters:
        params = self.load()
        if params is not None:
            logger.info("public parameters cache hit: %s", self.path)
            return params

        if self.path is None:
            logger.info("parameter cache disabled; generating public parameters")
        else:
            logger.info("public parameters cache miss: %s; generating", self.path)
        start = time.perf_counter()
        params = self.scheme.setup(constraint_system)
        logger.info("generated public parameters in %.3fs", time.perf_counter() - start)

        self.store(params)
        return params


def get_or_create(constraint_system: 'R1CS', cache_path: str | Path | None,
                  scheme: 'FoldingScheme') -> PublicParameters:
    """Return cached public parameters for cache_path, generating them on a miss."""
    return ParameterCache(cache_path, scheme).get_or_create(constraint_system)
