"""Per-year residual statistics and unusual-day classification.

Residuals are signed as ``predicted - actual`` throughout, so a negative
``mean_error`` means the model *underestimates* that year (it was warmer
than the norm).

A day is unusually warm when ``actual > predicted + threshold`` and
unusually cold when ``actual < predicted - threshold`` (strict). The
threshold is a single global number, normally the 90th percentile of the
absolute residuals over the entire dataset (``unusual_threshold``); it is
computed once by the caller and reused for every year and every model
variant, never re-derived per group.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Tuple, Union

import numpy as np
import pandas as pd

from seasonal_deviation.core.dataset import TemperatureDataset
from seasonal_deviation.core.errors import InvalidInput
from seasonal_deviation.core.model import ResidualStats
from seasonal_deviation.fitting.harmonic import FittedModel, predict_frame

logger = logging.getLogger(__name__)

# Years with fewer observed days than this are flagged in the log.
SPARSE_YEAR_DAYS = 300

RowsWithPredictions = Union["pd.DataFrame", Iterable[Tuple[int, float, float]]]


def residual_frame(dataset: TemperatureDataset, model: FittedModel) -> "pd.DataFrame":
    """Return a frame with columns year, day_of_year, actual, predicted."""
    df = dataset.to_frame()
    pred = predict_frame(model, df) if len(df) else np.empty(0)
    return pd.DataFrame(
        {
            "year": df["year"].to_numpy(dtype=np.int64),
            "day_of_year": df["day_of_year"].to_numpy(dtype=np.int64),
            "actual": df["temperature"].to_numpy(dtype=float),
            "predicted": np.asarray(pred, dtype=float),
        }
    )


def unusual_threshold(actual, predicted, quantile: float = 0.9) -> float:
    """Quantile of ``|actual - predicted|`` over all supplied days."""
    if not 0.0 <= quantile <= 1.0:
        raise InvalidInput(f"quantile must be in [0, 1], got {quantile!r}")
    a = np.asarray(actual, dtype=float)
    p = np.asarray(predicted, dtype=float)
    if a.shape != p.shape:
        raise InvalidInput(f"Shape mismatch: actual {a.shape} vs predicted {p.shape}")
    if a.size == 0:
        raise InvalidInput("Cannot derive a threshold from zero residuals")
    return float(np.quantile(np.abs(a - p), quantile))


def _as_frame(rows: RowsWithPredictions) -> "pd.DataFrame":
    if isinstance(rows, pd.DataFrame):
        missing = [c for c in ("year", "actual", "predicted") if c not in rows.columns]
        if missing:
            raise InvalidInput(
                f"Missing required columns {missing}. Found columns: {list(rows.columns)}"
            )
        return rows[["year", "actual", "predicted"]]
    return pd.DataFrame(list(rows), columns=["year", "actual", "predicted"])


def compute_stats(rows: RowsWithPredictions, threshold: float) -> List[ResidualStats]:
    """
    One ``ResidualStats`` per distinct year present in ``rows``, sorted by year.

    Parameters
    ----------
    rows : DataFrame or iterable of (year, actual, predicted)
    threshold : float
        Global unusual-day threshold in degrees, finite and >= 0.
    """
    thr = float(threshold)
    if not math.isfinite(thr) or thr < 0.0:
        raise InvalidInput(f"threshold must be finite and >= 0, got {threshold!r}")

    df = _as_frame(rows)
    if df.empty:
        return []

    actual = df["actual"].to_numpy(dtype=float)
    predicted = df["predicted"].to_numpy(dtype=float)
    if not (np.all(np.isfinite(actual)) and np.all(np.isfinite(predicted))):
        raise InvalidInput("actual and predicted values must be finite")

    err = predicted - actual
    work = pd.DataFrame(
        {
            "year": df["year"].to_numpy(dtype=np.int64),
            "err": err,
            "abs_err": np.abs(err),
            "warm": actual > predicted + thr,
            "cold": actual < predicted - thr,
        }
    )
    agg = work.groupby("year", sort=True).agg(
        n_days=("err", "size"),
        mean_error=("err", "mean"),
        mean_abs_error=("abs_err", "mean"),
        prop_unusually_warm=("warm", "mean"),
        prop_unusually_cold=("cold", "mean"),
    )

    sparse = agg.index[agg["n_days"] < SPARSE_YEAR_DAYS].tolist()
    if sparse:
        logger.warning(
            "%d year(s) with fewer than %d observed days: %s",
            len(sparse),
            SPARSE_YEAR_DAYS,
            sparse,
        )

    return [
        ResidualStats(
            year=int(year),
            mean_error=float(r.mean_error),
            mean_abs_error=float(r.mean_abs_error),
            prop_unusually_warm=float(r.prop_unusually_warm),
            prop_unusually_cold=float(r.prop_unusually_cold),
            n_days=int(r.n_days),
        )
        for year, r in agg.iterrows()
    ]


def stats_frame(stats: Iterable[ResidualStats]) -> "pd.DataFrame":
    """Tabular view of a stats list, one row per year."""
    return pd.DataFrame(
        [
            {
                "year": s.year,
                "n_days": s.n_days,
                "mean_error": s.mean_error,
                "mean_abs_error": s.mean_abs_error,
                "prop_unusually_warm": s.prop_unusually_warm,
                "prop_unusually_cold": s.prop_unusually_cold,
                "prop_unusual": s.prop_unusual,
            }
            for s in stats
        ],
        columns=[
            "year",
            "n_days",
            "mean_error",
            "mean_abs_error",
            "prop_unusually_warm",
            "prop_unusually_cold",
            "prop_unusual",
        ],
    )


__all__ = [
    "residual_frame",
    "unusual_threshold",
    "compute_stats",
    "stats_frame",
]
