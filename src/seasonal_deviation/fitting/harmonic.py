"""Harmonic (single annual cycle) regression of daily temperatures.

A temperature curve of the form ``T(x) = β0 + c·cos(x + φ)`` is nonlinear in
its phase ``φ``. Expanding the cosine gives

    T(x) = β0 + a·cos(x) + b·sin(x)

with ``a = c·cos(φ)`` and ``b = -c·sin(φ)``, which is **linear in its
parameters**. Fitting therefore reduces to ordinary least squares on the
design matrix built from the phase angle ``x = 2π·doy/366``; amplitude and
phase are recovered afterwards (see ``seasonal_deviation.fitting.wave``).

----------------------------------------------------------------------------
Design matrix
----------------------------------------------------------------------------
Seasonal variant:

  [ 1, cos(x), sin(x) ]

Seasonal + trend variant:

  [ 1, cos(x), sin(x), year ]

The year enters untransformed, so ``intercept`` is the (extrapolated) level
at year 0 for the trend variant. Solved with ``numpy.linalg.lstsq`` (SVD),
float64, no regularization. A rank-deficient seasonal design (one calendar
day only) is rejected. When every row shares one year the trend is
unidentifiable: the trend variant then logs a warning and pins
``trend_coeff`` to 0, which still minimizes the residual sum of squares.

----------------------------------------------------------------------------
Public API
----------------------------------------------------------------------------
- ``fit_seasonal(rows) -> FittedModel``
- ``fit_seasonal_with_trend(rows) -> FittedModel``
- ``predict(model, row, year=None) -> float``
- ``predict_frame(model, df) -> np.ndarray``
- ``model_summary(model) -> str``

``rows`` may be a ``TemperatureDataset``, a sequence of ``FeatureRow`` or a
pandas DataFrame with ``phase_angle``, ``temperature`` (and ``year``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from seasonal_deviation.core.dataset import TemperatureDataset
from seasonal_deviation.core.errors import (
    InsufficientData,
    InvalidInput,
    MissingParameter,
)
from seasonal_deviation.core.model import FeatureRow

from .wave import to_wave_parameters

logger = logging.getLogger(__name__)

SEASONAL = "seasonal"
SEASONAL_TREND = "seasonal_trend"
SEASONAL_BASELINE = "seasonal_baseline"


@dataclass(frozen=True)
class FittedModel:
    intercept: float
    cos_coeff: float
    sin_coeff: float
    r_squared: float
    trend_coeff: Optional[float] = None

    # fit diagnostics / provenance
    variant: str = SEASONAL
    n_obs: int = 0
    rmse: float = float("nan")
    mae: float = float("nan")
    year_min: Optional[int] = None
    year_max: Optional[int] = None

    @property
    def is_trend_aware(self) -> bool:
        return self.trend_coeff is not None

    @property
    def coef(self) -> np.ndarray:
        c = [self.intercept, self.cos_coeff, self.sin_coeff]
        if self.is_trend_aware:
            c.append(self.trend_coeff)
        return np.asarray(c, dtype=float)

    def __call__(self, phase_angle, year=None) -> np.ndarray:
        x = np.atleast_1d(np.asarray(phase_angle, dtype=float))
        if self.is_trend_aware:
            if year is None:
                raise MissingParameter(
                    f"Model variant '{self.variant}' is trend-aware; "
                    "a year is required for prediction"
                )
            yr = np.broadcast_to(np.asarray(year, dtype=float), x.shape)
        else:
            yr = None
        return _design_matrix(x, yr) @ self.coef


# -------------------------
# Design matrix and solver
# -------------------------


def _design_matrix(x: np.ndarray, year: Optional[np.ndarray] = None) -> np.ndarray:
    cols = [np.ones_like(x), np.cos(x), np.sin(x)]
    if year is not None:
        cols.append(np.asarray(year, dtype=float))
    return np.column_stack(cols)


def _coerce_rows(
    rows, *, need_year: bool = False
) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """Return (phase_angle, temperature, year) arrays for any accepted input.

    ``year`` is only required (and checked for finiteness) when ``need_year``
    is set; otherwise it is returned when present, else ``None``.
    """
    if isinstance(rows, TemperatureDataset):
        df = rows.to_frame()
    elif isinstance(rows, pd.DataFrame):
        df = rows
    else:
        rows = list(rows)
        bad = [r for r in rows if not isinstance(r, FeatureRow)]
        if bad:
            raise InvalidInput(
                f"Expected FeatureRow items, got {type(bad[0]).__name__}: {bad[0]!r}"
            )
        df = pd.DataFrame(
            {
                "phase_angle": [r.phase_angle for r in rows],
                "temperature": [r.temperature for r in rows],
                "year": [r.year for r in rows],
            }
        )

    required = ["phase_angle", "temperature"] + (["year"] if need_year else [])
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InvalidInput(
            f"Missing required columns {missing}. Found columns: {list(df.columns)}"
        )
    x = df["phase_angle"].to_numpy(dtype=float)
    y = df["temperature"].to_numpy(dtype=float)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvalidInput("phase_angle and temperature must be finite")
    yr = df["year"].to_numpy(dtype=float) if "year" in df.columns else None
    if need_year and not np.all(np.isfinite(yr)):
        raise InvalidInput("year must be finite for the trend variant")
    return x, y, yr


def _fit_ols(X: np.ndarray, y: np.ndarray, variant: str):
    n, p = X.shape
    if n < p:
        raise InsufficientData(
            f"Variant '{variant}' has {p} free parameters but only {n} observations"
        )
    coef, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < p:
        raise InsufficientData(
            f"Variant '{variant}': design matrix is rank deficient "
            f"(rank {rank} < {p} parameters, {n} observations)"
        )
    res = y - X @ coef
    ss_res = float(np.dot(res, res))
    dy = y - float(np.mean(y))
    ss_tot = float(np.dot(dy, dy))
    r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0
    r2 = min(1.0, max(0.0, r2))
    rmse = float(np.sqrt(np.mean(res * res)))
    mae = float(np.mean(np.abs(res)))
    return coef, r2, rmse, mae


def _year_bounds(yr: Optional[np.ndarray]) -> Tuple[Optional[int], Optional[int]]:
    if yr is None or yr.size == 0 or not np.all(np.isfinite(yr)):
        return None, None
    return int(np.min(yr)), int(np.max(yr))


# -------------------------
# Public API
# -------------------------


def fit_seasonal(rows, *, variant: str = SEASONAL) -> FittedModel:
    """Least-squares fit of ``temperature ~ β0 + β1·cos(x) + β2·sin(x)``."""
    x, y, yr = _coerce_rows(rows)
    coef, r2, rmse, mae = _fit_ols(_design_matrix(x), y, variant)
    y0, y1 = _year_bounds(yr)
    model = FittedModel(
        intercept=float(coef[0]),
        cos_coeff=float(coef[1]),
        sin_coeff=float(coef[2]),
        r_squared=r2,
        variant=variant,
        n_obs=int(y.size),
        rmse=rmse,
        mae=mae,
        year_min=y0,
        year_max=y1,
    )
    logger.info(
        "Fitted %s model on %d obs (%s-%s): R2=%.4f RMSE=%.3f",
        variant,
        model.n_obs,
        y0,
        y1,
        r2,
        rmse,
    )
    return model


def fit_seasonal_with_trend(rows, *, variant: str = SEASONAL_TREND) -> FittedModel:
    """Least-squares fit of ``temperature ~ β0 + β1·cos(x) + β2·sin(x) + β3·year``."""
    x, y, yr = _coerce_rows(rows, need_year=True)
    if y.size >= 4 and np.unique(yr).size == 1:
        logger.warning(
            "Variant '%s': all %d observations fall in %d; trend is "
            "unidentifiable, fixing it at 0",
            variant,
            y.size,
            int(yr[0]),
        )
        coef, r2, rmse, mae = _fit_ols(_design_matrix(x), y, variant)
        coef = np.append(coef, 0.0)
    else:
        coef, r2, rmse, mae = _fit_ols(_design_matrix(x, yr), y, variant)
    y0, y1 = _year_bounds(yr)
    model = FittedModel(
        intercept=float(coef[0]),
        cos_coeff=float(coef[1]),
        sin_coeff=float(coef[2]),
        trend_coeff=float(coef[3]),
        r_squared=r2,
        variant=variant,
        n_obs=int(y.size),
        rmse=rmse,
        mae=mae,
        year_min=y0,
        year_max=y1,
    )
    logger.info(
        "Fitted %s model on %d obs (%s-%s): R2=%.4f trend=%+.4f C/decade",
        variant,
        model.n_obs,
        y0,
        y1,
        r2,
        10.0 * model.trend_coeff,
    )
    return model


def predict(model: FittedModel, row: FeatureRow, year: Optional[int] = None) -> float:
    """Evaluate ``model`` at ``row.phase_angle`` (and ``year`` if trend-aware)."""
    if model.is_trend_aware:
        if year is None:
            raise MissingParameter(
                f"Model variant '{model.variant}' is trend-aware; "
                f"predict() needs a year for {row.date.isoformat()}"
            )
        if model.year_min is not None and not (
            model.year_min <= year <= model.year_max
        ):
            logger.warning(
                "Year %s is outside the fitted range %s-%s; extrapolating trend",
                year,
                model.year_min,
                model.year_max,
            )
    return float(model(row.phase_angle, year)[0])


def predict_frame(model: FittedModel, df: "pd.DataFrame") -> np.ndarray:
    """Vectorized predictions for a frame with ``phase_angle`` (and ``year``)."""
    x = df["phase_angle"].to_numpy(dtype=float)
    yr = df["year"].to_numpy(dtype=float) if model.is_trend_aware else None
    return model(x, yr)


def model_summary(model: FittedModel, *, wave_method: str = "atan2") -> str:
    """
    Build a human-readable summary of a fitted model.

    The summary includes the coefficients, fit diagnostics, the recovered
    amplitude/phase and the explicit analytic equation in both forms.
    """
    wave = to_wave_parameters(model.cos_coeff, model.sin_coeff, method=wave_method)

    lines = []
    lines.append(f"Harmonic temperature model ({model.variant})")
    lines.append(f"  observations:        {model.n_obs}")
    lines.append(f"  years:               {model.year_min}-{model.year_max}")
    lines.append(f"  intercept (C):       {model.intercept:+.6f}")
    lines.append(f"  cos_coeff (C):       {model.cos_coeff:+.6f}")
    lines.append(f"  sin_coeff (C):       {model.sin_coeff:+.6f}")
    if model.is_trend_aware:
        lines.append(
            f"  trend (C/year):      {model.trend_coeff:+.6f}"
            f"  ({10.0 * model.trend_coeff:+.3f} C/decade)"
        )
    lines.append("Diagnostics:")
    lines.append(f"  R2:                  {model.r_squared:.5f}")
    lines.append(f"  RMSE (C):            {model.rmse:.4f}")
    lines.append(f"  MAE  (C):            {model.mae:.4f}")
    lines.append(f"Annual cycle ({wave_method}):")
    lines.append(f"  amplitude (C):       {wave.amplitude:+.6f}")
    lines.append(
        f"  phase shift:         {wave.phase_shift:+.6f} rad"
        f" ({wave.phase_shift_days:+.2f} days)"
    )

    trend = f" {model.trend_coeff:+.6e}·year" if model.is_trend_aware else ""
    lines.append("Fit equation (x = 2π·doy/366):")
    lines.append(
        f"  T(x) = {model.intercept:+.6f} {model.cos_coeff:+.6f}·cos(x)"
        f" {model.sin_coeff:+.6f}·sin(x){trend}"
    )
    lines.append(
        f"  T(x) = {model.intercept:+.6f} {wave.amplitude:+.6f}·cos(x"
        f" {wave.phase_shift:+.6f}){trend}"
    )
    return "\n".join(lines) + "\n"


__all__ = [
    "SEASONAL",
    "SEASONAL_TREND",
    "SEASONAL_BASELINE",
    "FittedModel",
    "fit_seasonal",
    "fit_seasonal_with_trend",
    "predict",
    "predict_frame",
    "model_summary",
]
