"""Recursive ridge least squares with a rank-one Cholesky update (numpy/scipy core)."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.linalg import solve_triangular

from .errors import ConfigInvalid, DimensionMismatch


@dataclass
class EstimatorState:
    """Upper-triangular R with R^T R = X^T X + lam*I, and Z = X^T Y."""
    R: np.ndarray
    Z: np.ndarray

    def copy(self) -> 'EstimatorState':
        return EstimatorState(self.R.copy(), self.Z.copy())

    @property
    def gram(self) -> np.ndarray:
        return self.R.T @ self.R


def cholesky_rank_one_update(R: np.ndarray, x: np.ndarray) -> None:
    """In-place update of upper-triangular R so that R'^T R' = R^T R + x x^T.

    One plane rotation per row, k = 0..d-1, each zeroing x[k] against R[k, k].
    x is consumed (overwritten) by the rotations.
    """
    d = R.shape[0]
    for k in range(d):
        rkk = R[k, k]
        r = np.hypot(rkk, x[k])
        c = r / rkk
        s = x[k] / rkk
        R[k, k] = r
        if k + 1 < d:
            R[k, k + 1:] = (R[k, k + 1:] + s * x[k + 1:]) / c
            x[k + 1:] = c * x[k + 1:] - s * R[k, k + 1:]


class RecursiveRidge:
    """Online ridge regression estimator (test-then-train).

    The state is a Cholesky factor R of the regularized Gram matrix and the
    cross-correlation accumulator Z. Weights are never stored: every call to
    predict derives W from (R, Z) with a forward and a back substitution, so
    a prediction always reflects exactly the samples absorbed so far.

    Parameters
    ----------
    d : int
        Input (feature) dimension.
    t : int
        Output dimension.
    lam : float
        Ridge regularization, must be > 0. The initial factor is sqrt(lam)*I.
    """

    def __init__(self, d: int, t: int, lam: float = 1.0):
        if d <= 0 or t <= 0:
            raise ConfigInvalid(f"Dimensions must be positive, got d={d}, t={t}")
        if not lam > 0:
            raise ConfigInvalid(f"Regularization lam must be > 0, got {lam}")
        self.d = int(d)
        self.t = int(t)
        self.lam = float(lam)

        # ---------------- State ----------------
        self.R = np.sqrt(self.lam) * np.eye(self.d)
        self.Z = np.zeros((self.d, self.t))

        # Counters
        self.n_updates = 0

    @classmethod
    def from_state(cls, state: EstimatorState, lam: float, n_updates: int = 0) -> 'RecursiveRidge':
        R = np.array(state.R, dtype=np.float64)
        Z = np.array(state.Z, dtype=np.float64)
        if Z.ndim == 1:
            Z = Z.reshape(-1, 1)
        if R.ndim != 2 or R.shape[0] != R.shape[1] or R.shape[0] != Z.shape[0]:
            raise ConfigInvalid(f"Inconsistent estimator state: R {R.shape}, Z {Z.shape}")
        if not np.allclose(R, np.triu(R)) or np.any(np.diag(R) <= 0):
            raise ConfigInvalid("R must be upper triangular with a strictly positive diagonal")
        est = cls(R.shape[0], Z.shape[1], lam)
        est.R = np.triu(R)
        est.Z = Z
        est.n_updates = int(n_updates)
        return est

    # -------------------------------- internal utils --------------------------------
    def _check_x(self, x):
        x = np.atleast_1d(np.asarray(x, dtype=np.float64))
        if x.ndim > 2 or x.shape[-1] != self.d:
            raise DimensionMismatch('feature vector', self.d, x.shape[-1])
        return x

    def _check_y(self, y):
        y = np.asarray(y, dtype=np.float64).reshape(-1)
        if y.shape[0] != self.t:
            raise DimensionMismatch('target vector', self.t, y.shape[0])
        return y

    # -------------------------------- public helpers --------------------------------
    @property
    def weights(self) -> np.ndarray:
        """W (d, t): solve R^T u = Z, then R W = u."""
        u = solve_triangular(self.R, self.Z, trans='T', lower=False)
        return solve_triangular(self.R, u, lower=False)

    @property
    def state(self) -> EstimatorState:
        return EstimatorState(self.R.copy(), self.Z.copy())

    # -------------------------------- core --------------------------------
    def predict(self, x) -> np.ndarray:
        """Prediction for a (d,) vector -> (t,), or a (n, d) batch -> (n, t)."""
        x = self._check_x(x)
        return x @ self.weights

    def update(self, x, y) -> None:
        x = self._check_x(x).reshape(-1)
        if x.shape[0] != self.d:
            raise DimensionMismatch('feature vector', self.d, x.shape[0])
        y = self._check_y(y)
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            raise ValueError("Update sample contains non-finite values")
        cholesky_rank_one_update(self.R, x.copy())
        self.Z += np.outer(x, y)
        self.n_updates += 1

    # -------------------------------- monitoring --------------------------------
    def get_diagnostics(self):
        diag = np.diag(self.R)
        return {
            "updates": self.n_updates,
            "lam": self.lam,
            "min_diag_R": float(diag.min()),
            "max_diag_R": float(diag.max()),
            # cond(R) of a triangular factor is bounded below by this ratio
            "diag_ratio_R": float(diag.max() / diag.min()),
            "weights_norm": float(np.linalg.norm(self.weights)),
        }

    def __repr__(self):
        return f"RecursiveRidge(d={self.d}, t={self.t}, lam={self.lam}, updates={self.n_updates})"


__all__ = ["RecursiveRidge", "EstimatorState", "cholesky_rank_one_update"]
