import numpy as np
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from rrls.RRLS_main import RecursiveRidge, EstimatorState, cholesky_rank_one_update
from rrls.RRLS_batch import BatchRidge
from rrls.rff import RFMapper, ProjectionSet
from rrls.errors import ConfigInvalid, DimensionMismatch


def _ridge_closed_form(X, Y, lam):
    d = X.shape[1]
    return np.linalg.solve(X.T @ X + lam * np.eye(d), X.T @ Y)


def test_two_sample_identity_scenario():
    mapper = RFMapper(ProjectionSet([[1.0]], [0.0]), mapping='linear')
    est = RecursiveRidge(d=1, t=1, lam=1.0)

    phi1 = mapper.map([1.0])
    assert est.predict(phi1)[0] == pytest.approx(0.0)
    est.update(phi1, [2.0])
    assert est.R[0, 0] == pytest.approx(np.sqrt(2.0))
    # (1 + 1) w = 2
    assert est.weights[0, 0] == pytest.approx(1.0)

    phi2 = mapper.map([2.0])
    assert est.predict(phi2)[0] == pytest.approx(2.0)
    est.update(phi2, [4.0])
    # (1 + 4 + 1) w = 2 + 8
    assert est.weights[0, 0] == pytest.approx(10.0 / 6.0)
    assert est.R[0, 0] == pytest.approx(np.sqrt(6.0))


def test_initial_state_is_scaled_identity():
    est = RecursiveRidge(d=4, t=2, lam=0.25)
    np.testing.assert_allclose(est.R, 0.5 * np.eye(4))
    np.testing.assert_allclose(est.Z, np.zeros((4, 2)))
    np.testing.assert_allclose(est.predict(np.ones(4)), np.zeros(2))


def test_incremental_equals_batch():
    rng = np.random.RandomState(0)
    X = rng.randn(60, 8)
    Y = X @ rng.randn(8, 3) + 0.1 * rng.randn(60, 3)
    lam = 0.5
    est = RecursiveRidge(8, 3, lam)
    for i in range(len(X)):
        est.update(X[i], Y[i])
        if i in (0, 7, 30, 59):
            W_ref = _ridge_closed_form(X[:i + 1], Y[:i + 1], lam)
            np.testing.assert_allclose(est.weights, W_ref, rtol=1e-8, atol=1e-10)
    batch = BatchRidge(lam).fit(X, Y)
    np.testing.assert_allclose(est.R, batch.R, rtol=1e-8, atol=1e-10)
    np.testing.assert_allclose(est.Z, batch.Z, rtol=1e-10, atol=1e-10)


def test_order_invariance():
    rng = np.random.RandomState(1)
    X = rng.randn(40, 6)
    Y = rng.randn(40, 2)
    a = RecursiveRidge(6, 2, 1.0)
    b = RecursiveRidge(6, 2, 1.0)
    for i in range(40):
        a.update(X[i], Y[i])
    for i in rng.permutation(40):
        b.update(X[i], Y[i])
    np.testing.assert_allclose(a.R, b.R, rtol=1e-8, atol=1e-10)
    np.testing.assert_allclose(a.weights, b.weights, rtol=1e-8, atol=1e-10)
    x_new = rng.randn(6)
    np.testing.assert_allclose(a.predict(x_new), b.predict(x_new), rtol=1e-8, atol=1e-10)


def test_prediction_does_not_depend_on_current_target():
    rng = np.random.RandomState(2)
    X = rng.randn(20, 5)
    Y = rng.randn(20, 1)
    a = RecursiveRidge(5, 1, 1.0)
    for i in range(19):
        a.update(X[i], Y[i])
    b = RecursiveRidge.from_state(a.state, 1.0)

    yhat_a = a.predict(X[19])
    a.update(X[19], [1e6])
    yhat_b = b.predict(X[19])
    b.update(X[19], [-1e6])

    np.testing.assert_array_equal(yhat_a, yhat_b)
    assert not np.allclose(a.weights, b.weights)


def test_dimension_guard_leaves_state_untouched():
    est = RecursiveRidge(3, 2, 1.0)
    est.update([1.0, 2.0, 3.0], [1.0, -1.0])
    R0, Z0 = est.R.copy(), est.Z.copy()
    with pytest.raises(DimensionMismatch):
        est.update([1.0, 2.0], [1.0, -1.0])
    with pytest.raises(DimensionMismatch):
        est.update([1.0, 2.0, 3.0], [1.0])
    with pytest.raises(DimensionMismatch):
        est.predict([1.0, 2.0, 3.0, 4.0])
    np.testing.assert_array_equal(est.R, R0)
    np.testing.assert_array_equal(est.Z, Z0)
    assert est.n_updates == 1


def test_diagonal_stays_positive():
    rng = np.random.RandomState(3)
    est = RecursiveRidge(10, 1, 1e-6)
    est.update(np.zeros(10), [0.0])
    for scale in (1e-8, 1.0, 1e4):
        for _ in range(30):
            est.update(scale * rng.randn(10), rng.randn(1))
            assert np.all(np.diag(est.R) > 0)
    # collinear stream: rank-one data, regularization keeps R nonsingular
    v = rng.randn(10)
    for k in range(50):
        est.update(k * v, [k])
    assert np.all(np.diag(est.R) > 0)
    np.testing.assert_allclose(np.triu(est.R), est.R)


def test_rank_one_update_matches_gram():
    rng = np.random.RandomState(4)
    A = rng.randn(7, 7)
    R = np.linalg.cholesky(A @ A.T + np.eye(7)).T
    x = rng.randn(7)
    expected = R.T @ R + np.outer(x, x)
    R_new = R.copy()
    cholesky_rank_one_update(R_new, x.copy())
    np.testing.assert_allclose(R_new.T @ R_new, expected, rtol=1e-10, atol=1e-10)


def test_batch_predict_shape():
    rng = np.random.RandomState(5)
    est = RecursiveRidge(4, 2, 1.0)
    for _ in range(10):
        est.update(rng.randn(4), rng.randn(2))
    Xb = rng.randn(7, 4)
    out = est.predict(Xb)
    assert out.shape == (7, 2)
    np.testing.assert_allclose(out[3], est.predict(Xb[3]))


def test_invalid_construction():
    with pytest.raises(ConfigInvalid):
        RecursiveRidge(0, 1, 1.0)
    with pytest.raises(ConfigInvalid):
        RecursiveRidge(2, 1, 0.0)
    with pytest.raises(ConfigInvalid):
        RecursiveRidge.from_state(EstimatorState(np.array([[1.0, 0.0], [0.0, -1.0]]), np.zeros((2, 1))), 1.0)


def test_diagnostics_keys():
    est = RecursiveRidge(3, 1, 2.0)
    est.update([1.0, 0.0, 0.0], [1.0])
    diag = est.get_diagnostics()
    assert diag["updates"] == 1
    assert diag["min_diag_R"] == pytest.approx(np.sqrt(2.0))
    assert diag["max_diag_R"] == pytest.approx(np.sqrt(3.0))


def test_update_rejects_non_finite_before_mutation():
    est = RecursiveRidge(2, 1, 1.0)
    est.update([1.0, 0.5], [2.0])
    R0, Z0 = est.R.copy(), est.Z.copy()
    for x, y in [([np.nan, 1.0], [1.0]), ([np.inf, 1.0], [1.0]), ([1.0, 1.0], [-np.inf])]:
        with pytest.raises(ValueError):
            est.update(x, y)
    np.testing.assert_array_equal(est.R, R0)
    np.testing.assert_array_equal(est.Z, Z0)
    assert est.n_updates == 1
    assert np.all(np.diag(est.R) > 0)
