import logging
import math

import numpy as np
import pandas as pd
import pytest

from seasonal_deviation.core.errors import InvalidInput
from seasonal_deviation.analysis.residuals import (
    compute_stats,
    residual_frame,
    stats_frame,
    unusual_threshold,
)
from seasonal_deviation.fitting.harmonic import fit_seasonal


def _one_year_with_outliers(threshold=2.0):
    """365 perfectly predicted days, except 6 warm and 4 cold outliers."""
    actual = np.full(365, 12.0)
    predicted = actual.copy()
    warm_days = [10, 50, 90, 130, 170, 210]
    cold_days = [250, 290, 330, 360]
    actual[warm_days] = predicted[warm_days] + threshold + 1.0
    actual[cold_days] = predicted[cold_days] - threshold - 1.0
    return [(1987, a, p) for a, p in zip(actual, predicted)]


def test_single_year_unusual_proportion():
    stats = compute_stats(_one_year_with_outliers(2.0), threshold=2.0)
    assert len(stats) == 1
    s = stats[0]
    assert s.year == 1987
    assert s.n_days == 365
    assert math.isclose(s.prop_unusually_warm, 6 / 365)
    assert math.isclose(s.prop_unusually_cold, 4 / 365)
    assert math.isclose(s.prop_unusual, 10 / 365)
    # 6 days at -3 (warm => predicted - actual < 0), 4 days at +3
    assert math.isclose(s.mean_error, (-6 * 3.0 + 4 * 3.0) / 365)
    assert math.isclose(s.mean_abs_error, 10 * 3.0 / 365)


def test_threshold_comparison_is_strict():
    rows = [(2000, 12.0, 10.0), (2000, 8.0, 10.0), (2000, 12.5, 10.0)]
    (s,) = compute_stats(rows, threshold=2.0)
    assert math.isclose(s.prop_unusually_warm, 1 / 3)
    assert s.prop_unusually_cold == 0.0


def test_one_entry_per_year_sorted_no_gaps_introduced():
    rows = [(2003, 1.0, 1.5), (1990, 2.0, 2.0), (2003, 0.0, -1.0), (1995, 5.0, 4.0)]
    stats = compute_stats(rows, threshold=0.0)
    assert [s.year for s in stats] == [1990, 1995, 2003]
    s2003 = stats[-1]
    assert s2003.n_days == 2
    assert math.isclose(s2003.mean_error, ((1.5 - 1.0) + (-1.0 - 0.0)) / 2)
    assert math.isclose(s2003.mean_abs_error, 0.75)


def test_empty_input_returns_empty_list():
    assert compute_stats([], threshold=1.0) == []
    assert compute_stats(pd.DataFrame(columns=["year", "actual", "predicted"]), 1.0) == []


@pytest.mark.parametrize("bad", [-0.1, float("nan"), float("inf")])
def test_invalid_threshold(bad):
    with pytest.raises(InvalidInput):
        compute_stats([(2000, 1.0, 1.0)], threshold=bad)


def test_frame_input_requires_columns():
    with pytest.raises(InvalidInput, match="predicted"):
        compute_stats(pd.DataFrame({"year": [1], "actual": [1.0]}), threshold=1.0)


def test_sparse_year_is_logged(caplog):
    rows = [(2000, 1.0, 1.0)] * 10
    with caplog.at_level(logging.WARNING):
        compute_stats(rows, threshold=1.0)
    assert "fewer than" in caplog.text


def test_unusual_threshold_is_global_quantile():
    actual = np.arange(1, 11, dtype=float)
    predicted = np.zeros(10)
    assert math.isclose(unusual_threshold(actual, predicted), np.quantile(actual, 0.9))
    assert math.isclose(unusual_threshold(actual, predicted, quantile=0.5), 5.5)
    with pytest.raises(InvalidInput):
        unusual_threshold([], [])
    with pytest.raises(InvalidInput):
        unusual_threshold([1.0], [1.0, 2.0])
    with pytest.raises(InvalidInput):
        unusual_threshold([1.0], [1.0], quantile=2.0)


def test_residual_frame_and_stats_frame(make_dataset):
    ds = make_dataset([2000, 2001], noise=0.2, seed=5)
    m = fit_seasonal(ds)
    rf = residual_frame(ds, m)
    assert list(rf.columns) == ["year", "day_of_year", "actual", "predicted"]
    assert len(rf) == len(ds)

    thr = unusual_threshold(rf["actual"], rf["predicted"])
    stats = compute_stats(rf, thr)
    assert [s.year for s in stats] == [2000, 2001]
    # roughly 10% of all days exceed the 90th percentile
    total = sum(s.prop_unusual * s.n_days for s in stats)
    assert abs(total / len(ds) - 0.10) < 0.01

    sf = stats_frame(stats)
    assert list(sf["year"]) == [2000, 2001]
    assert np.allclose(sf["prop_unusual"], sf["prop_unusually_warm"] + sf["prop_unusually_cold"])
