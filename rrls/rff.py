"""Random feature mapping (numpy-only core).

Used by RRLSEstimatorModule and RFMapperModule (modules.py) and by the
pretraining loader (RRLS_batch.py).

API: RFMapper(projections, mapping='cos')
Method: map(x) for a single (d_in,) vector, transform(X) for (n, d_in) batches.
Mapping variants:
  linear (0)  phi_i = s_i                                   d = numRF
  cos    (1)  phi_i = sqrt(2/numRF) * cos(s_i)              d = numRF
  cossin (2)  phi = sqrt(1/numRF) * [cos(s), sin(s)]        d = 2 * numRF
with s_i = p_i . x + b_i.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import ConfigInvalid, DimensionMismatch

MAPPING_CODES = {0: 'linear', 1: 'cos', 2: 'cossin'}
MAPPING_NAMES = tuple(MAPPING_CODES.values())


def resolve_mapping(mapping) -> str:
    """Accept a mapping name or its integer code and return the canonical name."""
    if isinstance(mapping, bool):
        raise ConfigInvalid(f"Unknown mapping variant: {mapping!r}")
    if isinstance(mapping, (int, np.integer)):
        if int(mapping) not in MAPPING_CODES:
            raise ConfigInvalid(f"Unknown mapping code: {mapping}")
        return MAPPING_CODES[int(mapping)]
    name = str(mapping).strip().lower()
    if name.isdigit():
        return resolve_mapping(int(name))
    if name not in MAPPING_NAMES:
        raise ConfigInvalid(f"Unknown mapping variant: {mapping!r} (expected one of {MAPPING_NAMES})")
    return name


@dataclass(frozen=True)
class ProjectionSet:
    """Fixed projection vectors W (numRF, d_in) and phases b (numRF,)."""
    W: np.ndarray
    b: np.ndarray

    def __post_init__(self):
        W = np.array(self.W, dtype=np.float64, ndmin=2)
        if W.ndim != 2 or W.shape[0] == 0 or W.shape[1] == 0:
            raise ConfigInvalid(f"Projection matrix must be a non-empty 2-D array, got shape {W.shape}")
        if self.b is None:
            b = np.zeros(W.shape[0])
        else:
            b = np.array(self.b, dtype=np.float64).reshape(-1)
        if b.shape[0] != W.shape[0]:
            raise ConfigInvalid(f"Got {b.shape[0]} phases for {W.shape[0]} projections")
        W.setflags(write=False)
        b.setflags(write=False)
        object.__setattr__(self, 'W', W)
        object.__setattr__(self, 'b', b)

    @property
    def num_rf(self) -> int:
        return self.W.shape[0]

    @property
    def input_dim(self) -> int:
        return self.W.shape[1]

    def __len__(self):
        return self.num_rf


def draw_projections(input_dim, num_rf, sigma=1.0, kernel='rbf',
                     random_state=None, phase=True) -> ProjectionSet:
    """Draw a random-Fourier-feature projection set.

    rbf     -> rows ~ N(0, 1/sigma^2)
    laplace -> rows ~ Cauchy / sigma
    Phases are uniform in [0, 2*pi) when phase=True, zero otherwise.
    """
    if input_dim <= 0 or num_rf <= 0:
        raise ConfigInvalid(f"input_dim and num_rf must be positive, got {input_dim}, {num_rf}")
    if sigma <= 0:
        raise ConfigInvalid(f"sigma must be positive, got {sigma}")
    rng = np.random.RandomState(random_state)
    kernel = kernel.lower()
    if kernel == 'rbf':
        W = rng.normal(0, 1 / sigma, (num_rf, input_dim))
    elif kernel == 'laplace':
        W = rng.standard_cauchy((num_rf, input_dim)) / sigma
    else:
        raise ConfigInvalid(f"Unknown projection kernel: {kernel}")
    b = rng.uniform(0, 2 * np.pi, num_rf) if phase else np.zeros(num_rf)
    return ProjectionSet(W, b)


class RFMapper:
    def __init__(self, projections: ProjectionSet, mapping='cos'):
        if not isinstance(projections, ProjectionSet):
            raise ConfigInvalid("RFMapper requires a ProjectionSet")
        self.projections = projections
        self.mapping = resolve_mapping(mapping)
        self.input_dim = projections.input_dim
        self.num_rf = projections.num_rf
        if self.mapping == 'cossin':
            self.output_dim = 2 * self.num_rf
            self.scale = np.sqrt(1.0 / self.num_rf)
        elif self.mapping == 'cos':
            self.output_dim = self.num_rf
            self.scale = np.sqrt(2.0 / self.num_rf)
        else:
            self.output_dim = self.num_rf
            self.scale = 1.0

    def _project(self, X):
        s = X @ self.projections.W.T + self.projections.b
        if self.mapping == 'linear':
            return s
        if self.mapping == 'cos':
            return self.scale * np.cos(s)
        return self.scale * np.concatenate([np.cos(s), np.sin(s)], axis=-1)

    def map(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64).reshape(-1)
        if x.shape[0] != self.input_dim:
            raise DimensionMismatch('mapper input', self.input_dim, x.shape[0])
        return self._project(x)

    def transform(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            return self.map(X)
        if X.ndim != 2 or X.shape[1] != self.input_dim:
            raise DimensionMismatch('mapper input', self.input_dim, X.shape[-1])
        return self._project(X)

    def __repr__(self):
        return (f"RFMapper(mapping={self.mapping!r}, input_dim={self.input_dim}, "
                f"num_rf={self.num_rf}, output_dim={self.output_dim})")


__all__ = ["RFMapper", "ProjectionSet", "draw_projections", "resolve_mapping",
           "MAPPING_CODES", "MAPPING_NAMES"]
