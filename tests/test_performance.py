import numpy as np
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from rrls.performance import PerformanceTracker, check_variance
from rrls.errors import DegenerateVariance, DimensionMismatch


def test_running_normalized_mse():
    tracker = PerformanceTracker([2.0, 0.5])
    out1 = tracker.score([1.0, 1.0], [2.0, 0.0])
    np.testing.assert_allclose(out1, [1.0 / 2.0, 1.0 / 0.5])
    out2 = tracker.score([0.0, 0.0], [3.0, 1.0])
    # sums: [1 + 9, 1 + 1], two samples
    np.testing.assert_allclose(out2, [10.0 / 2.0 / 2, 2.0 / 0.5 / 2])
    assert tracker.count == 2


def test_output_depends_only_on_history():
    rng = np.random.RandomState(0)
    pairs = [(rng.randn(3), rng.randn(3)) for _ in range(25)]
    a = PerformanceTracker(np.ones(3))
    b = PerformanceTracker(np.ones(3))
    for yhat, y in pairs:
        out_a = a.score(yhat, y)
    for yhat, y in pairs:
        out_b = b.score(yhat, y)
    np.testing.assert_array_equal(out_a, out_b)
    expected = np.mean([(y - yhat) ** 2 for yhat, y in pairs], axis=0)
    np.testing.assert_allclose(out_a, expected)


def test_zero_variance_falls_back_to_raw_error(caplog):
    with caplog.at_level('WARNING'):
        tracker = PerformanceTracker([0.0, 4.0])
    assert "zero target variance" in caplog.text
    assert tracker.degenerate.tolist() == [True, False]
    out = tracker.score([0.0, 0.0], [3.0, 2.0])
    np.testing.assert_allclose(out, [9.0, 1.0])


def test_check_variance_raises():
    with pytest.raises(DegenerateVariance) as err:
        check_variance([1.0, 0.0, 2.0, 0.0])
    assert err.value.dims == (1, 3)
    np.testing.assert_array_equal(check_variance([1.0, 2.0]), [1.0, 2.0])


def test_dimension_mismatch_does_not_touch_accumulator():
    tracker = PerformanceTracker(np.ones(2))
    tracker.score([0.0, 0.0], [1.0, 1.0])
    with pytest.raises(DimensionMismatch):
        tracker.score([0.0], [1.0, 1.0])
    with pytest.raises(DimensionMismatch):
        tracker.score([0.0, 0.0], [1.0, 1.0, 1.0])
    assert tracker.count == 1
    np.testing.assert_allclose(tracker.sse, [1.0, 1.0])


def test_rmse_and_unknown_measure():
    tracker = PerformanceTracker(np.ones(1), perf='RMSE')
    tracker.score([0.0], [3.0])
    out = tracker.score([0.0], [4.0])
    np.testing.assert_allclose(out, [np.sqrt(12.5)])
    assert PerformanceTracker(np.ones(1), perf='MAE').perf == 'nMSE'
