"""Cyclical encoding of the calendar day.

The day of year is mapped onto the unit circle with a fixed 366-day period,
so that leap and non-leap years share one cycle and phase angles are
comparable year over year. 31 December of a common year therefore lands at
``2*pi*365/366`` rather than exactly on ``2*pi``; this is an accepted
approximation, not an equinox-aligned calendar.
"""

from __future__ import annotations

import numbers

import numpy as np

from seasonal_deviation.core.errors import InvalidInput
from seasonal_deviation.core.model import FeatureRow, Observation

CYCLE_DAYS = 366


def phase_angle(day_of_year: int) -> float:
    """Return ``2*pi*day_of_year/366`` for a day in 1..366.

    Raises
    ------
    InvalidInput
        If ``day_of_year`` is not an integer in 1..366.
    """
    if isinstance(day_of_year, bool) or not isinstance(day_of_year, numbers.Integral):
        raise InvalidInput(f"day_of_year must be an integer, got {day_of_year!r}")
    if not 1 <= day_of_year <= CYCLE_DAYS:
        raise InvalidInput(f"day_of_year must be in 1..366, got {day_of_year!r}")
    return 2.0 * np.pi * int(day_of_year) / CYCLE_DAYS


def phase_angles(days_of_year) -> np.ndarray:
    """Vectorized ``phase_angle`` over an array-like of days."""
    d = np.asarray(days_of_year)
    if d.size and not np.issubdtype(d.dtype, np.integer):
        as_float = d.astype(float)
        if not np.all(np.isfinite(as_float)) or np.any(as_float != np.round(as_float)):
            raise InvalidInput(f"day_of_year values must be integers, got {d!r}")
        d = as_float.astype(np.int64)
    bad = (d < 1) | (d > CYCLE_DAYS)
    if np.any(bad):
        raise InvalidInput(
            f"day_of_year must be in 1..366, got {np.unique(d[bad]).tolist()}"
        )
    return 2.0 * np.pi * d.astype(float) / CYCLE_DAYS


def feature_row(obs: Observation) -> FeatureRow:
    return FeatureRow(
        date=obs.date,
        temperature=obs.temperature,
        year=obs.year,
        day_of_year=obs.day_of_year,
        phase_angle=phase_angle(obs.day_of_year),
    )
