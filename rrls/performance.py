"""Running prediction performance per output dimension.

nMSE_i(k) = sum_{j<=k} (y_i - yhat_i)^2 / var_i / k

var is fixed once (pretraining targets, or unit variance by default) and is
never updated online. Output dimensions with zero variance fall back to the
unnormalized running MSE.
"""
from __future__ import annotations

import logging

import numpy as np

from .errors import DegenerateVariance, DimensionMismatch

logger = logging.getLogger(__name__)

PERF_TYPES = ('nMSE', 'RMSE')


def check_variance(variance):
    variance = np.asarray(variance, dtype=np.float64).reshape(-1)
    zero = np.flatnonzero(variance == 0)
    if zero.size:
        raise DegenerateVariance(zero)
    return variance


class PerformanceTracker:
    def __init__(self, variance, perf: str = 'nMSE'):
        variance = np.asarray(variance, dtype=np.float64).reshape(-1)
        if variance.size == 0:
            raise ValueError("variance vector must not be empty")
        if np.any(variance < 0) or not np.all(np.isfinite(variance)):
            raise ValueError(f"variance must be finite and non-negative, got {variance}")
        if perf not in PERF_TYPES:
            logger.warning("Inconsistent performance measure %r! Set to nMSE.", perf)
            perf = 'nMSE'
        self.perf = perf
        self.t = variance.shape[0]

        self.degenerate = np.zeros(self.t, dtype=bool)
        try:
            check_variance(variance)
        except DegenerateVariance as e:
            logger.warning("%s; reporting raw squared error for those dimensions", e)
            self.degenerate[list(e.dims)] = True
        self.variance = np.where(self.degenerate, 1.0, variance)

        # Running statistics
        self.sse = np.zeros(self.t)
        self.count = 0
        self.current = np.zeros(self.t)

    def score(self, yhat, y) -> np.ndarray:
        yhat = np.asarray(yhat, dtype=np.float64).reshape(-1)
        y = np.asarray(y, dtype=np.float64).reshape(-1)
        if yhat.shape[0] != self.t:
            raise DimensionMismatch('prediction', self.t, yhat.shape[0])
        if y.shape[0] != self.t:
            raise DimensionMismatch('target', self.t, y.shape[0])

        self.sse += (y - yhat) ** 2
        self.count += 1
        mse = self.sse / self.count
        if self.perf == 'RMSE':
            self.current = np.sqrt(mse)
        else:
            self.current = mse / self.variance
        return self.current.copy()

    def __repr__(self):
        return f"PerformanceTracker(perf={self.perf!r}, t={self.t}, count={self.count})"


__all__ = ["PerformanceTracker", "check_variance", "PERF_TYPES"]
