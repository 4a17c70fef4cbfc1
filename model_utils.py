"""Model utility helpers shared by the stream driver and the reports.

map_features(mapper, X):
  Applies the module's feature stage (or passes X through when it has none).
batch_ridge_baseline(X, Y, lam, mapper=None):
  scikit-learn Ridge fit on the same features, the reference the online
  weights must reproduce.
"""
from __future__ import annotations
import numpy as np
from sklearn.linear_model import Ridge


def map_features(mapper, X: np.ndarray) -> np.ndarray:
    X = np.asarray(X, dtype=np.float64)
    if mapper is None:
        return X
    return mapper.transform(X)


def batch_ridge_baseline(X: np.ndarray, Y: np.ndarray, lam: float, mapper=None) -> Ridge:
    """Ridge(alpha=lam) without intercept minimizes ||XW - Y||^2 + lam ||W||^2,
    i.e. solves (X^T X + lam I) W = X^T Y like the recursive estimator."""
    feats = map_features(mapper, X)
    model = Ridge(alpha=lam, fit_intercept=False, solver='cholesky')
    model.fit(feats, np.asarray(Y, dtype=np.float64))
    return model


def weight_deviation(estimator, baseline: Ridge) -> float:
    """Relative Frobenius distance between online weights (d, t) and baseline coef_ (t, d)."""
    W_online = estimator.weights
    W_batch = np.atleast_2d(baseline.coef_).T
    denom = np.linalg.norm(W_batch)
    if denom == 0:
        return float(np.linalg.norm(W_online))
    return float(np.linalg.norm(W_online - W_batch) / denom)


__all__ = ["map_features", "batch_ridge_baseline", "weight_deviation"]
