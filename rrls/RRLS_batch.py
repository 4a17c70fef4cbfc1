# RRLS_batch module: batch ridge solve used to seed the recursive estimator.
# The pretraining loader reads a numeric table, solves the ridge problem with a
# standard Cholesky factorization and computes the target variances used by
# the performance tracker.
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import numpy as np
from scipy.linalg import cholesky, LinAlgError, solve_triangular

from .RRLS_main import EstimatorState, RecursiveRidge
from .errors import ConfigInvalid, PretrainLoadFailed

logger = logging.getLogger(__name__)


class BatchRidge:
    def __init__(self, lam: float = 1.0):
        if not lam > 0:
            raise ConfigInvalid(f"Regularization lam must be > 0, got {lam}")
        self.lam = float(lam)
        self.R = None
        self.Z = None
        self.n_samples = 0

    def fit(self, X: np.ndarray, Y: np.ndarray) -> 'BatchRidge':
        X = np.asarray(X, dtype=np.float64)
        Y = np.asarray(Y, dtype=np.float64)
        if Y.ndim == 1:
            Y = Y.reshape(-1, 1)
        if X.ndim != 2 or X.shape[0] != Y.shape[0]:
            raise ValueError(f"X and Y must have matching rows, got {X.shape} and {Y.shape}")

        G = X.T @ X + self.lam * np.eye(X.shape[1])
        # G is positive definite for lam > 0
        self.R = cholesky(G, lower=False)
        self.Z = X.T @ Y
        self.n_samples = X.shape[0]
        return self

    @property
    def state(self) -> EstimatorState:
        if self.R is None:
            raise RuntimeError("BatchRidge.fit must be called first")
        return EstimatorState(self.R.copy(), self.Z.copy())

    @property
    def weights(self) -> np.ndarray:
        u = solve_triangular(self.R, self.Z, trans='T', lower=False)
        return solve_triangular(self.R, u, lower=False)

    def predict(self, X) -> np.ndarray:
        return np.asarray(X, dtype=np.float64) @ self.weights

    def to_estimator(self) -> RecursiveRidge:
        return RecursiveRidge.from_state(self.state, self.lam, n_updates=self.n_samples)


@dataclass
class PretrainResult:
    state: EstimatorState
    variance: np.ndarray
    n: int


def column_variance(Y: np.ndarray) -> np.ndarray:
    """Population variance per column: mean-centre, square, average."""
    Y = np.asarray(Y, dtype=np.float64)
    centered = Y - Y.mean(axis=0, keepdims=True)
    return np.mean(centered ** 2, axis=0)


def _sniff_delimiter(path):
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                return ',' if ',' in line else None
    return None


def read_table(path, n, n_cols, delimiter='auto') -> np.ndarray:
    """Read the first n rows of a numeric table with exactly n_cols columns."""
    if n <= 0:
        raise PretrainLoadFailed(f"Number of rows to read must be positive, got {n}")
    try:
        if delimiter == 'auto':
            delimiter = _sniff_delimiter(path)
        data = np.loadtxt(path, delimiter=delimiter, max_rows=n, ndmin=2, comments='#')
    except (OSError, ValueError) as e:
        raise PretrainLoadFailed(f"Cannot read table {path}: {e}") from e
    if data.shape[0] < n:
        raise PretrainLoadFailed(f"{path}: expected {n} rows, found {data.shape[0]}")
    if data.shape[1] != n_cols:
        raise PretrainLoadFailed(f"{path}: expected {n_cols} columns per row, found {data.shape[1]}")
    if not np.all(np.isfinite(data)):
        raise PretrainLoadFailed(f"{path}: non-finite values in the first {n} rows")
    return data


def pretrain(X, Y, lam: float, mapper=None) -> PretrainResult:
    """Batch-initialize estimator state and target variances from in-memory rows."""
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64)
    if Y.ndim == 1:
        Y = Y.reshape(-1, 1)
    feats = mapper.transform(X) if mapper is not None else X
    try:
        batch = BatchRidge(lam).fit(feats, Y)
    except LinAlgError as e:
        raise PretrainLoadFailed(f"Batch Cholesky factorization failed: {e}") from e
    variance = column_variance(Y)
    logger.debug("Mean of the output columns: %s", Y.mean(axis=0))
    logger.debug("Variance of the output columns: %s", variance)
    return PretrainResult(batch.state, variance, X.shape[0])


def load_pretraining(path, n, d_in, t, lam, mapper=None, delimiter='auto') -> PretrainResult:
    """Read the first n rows of `path` (d_in feature columns then t target columns)
    and return the batch ridge state and per-target variances.

    When a mapper is given the feature columns are raw inputs and are mapped
    before the solve; otherwise they are used as already-mapped features.
    """
    if not os.path.isfile(path):
        raise PretrainLoadFailed(f"Pretraining file not found: {path}")
    data = read_table(path, n, d_in + t, delimiter=delimiter)
    logger.info("Batch pretraining the RLS model with %d samples from %s", n, path)
    return pretrain(data[:, :d_in], data[:, d_in:], lam, mapper=mapper)


__all__ = ["BatchRidge", "PretrainResult", "pretrain", "load_pretraining",
           "read_table", "column_variance"]
