from __future__ import annotations

import datetime as dt

import numpy as np
import pytest

from seasonal_deviation.core.dataset import TemperatureDataset
from seasonal_deviation.core.model import ResidualStats

# ---------- Synthetic data ----------


def synth_records(
    years,
    *,
    base=10.0,
    cos_coeff=5.0,
    sin_coeff=-3.0,
    offset=0.0,
    trend=0.0,
    trend_origin=1950,
    noise=0.0,
    seed=0,
):
    """Daily (date, temperature) pairs following one annual harmonic.

    temp = base + cos_coeff*cos(x) + sin_coeff*sin(x) + offset
           + trend*(year - trend_origin) + N(0, noise)
    with x = 2*pi*doy/366.
    """
    rng = np.random.default_rng(seed)
    out = []
    for year in years:
        d = dt.date(year, 1, 1)
        while d.year == year:
            x = 2.0 * np.pi * d.timetuple().tm_yday / 366.0
            t = (
                base
                + cos_coeff * np.cos(x)
                + sin_coeff * np.sin(x)
                + offset
                + trend * (year - trend_origin)
            )
            if noise > 0:
                t += rng.normal(0.0, noise)
            out.append((d, float(t)))
            d += dt.timedelta(days=1)
    return out


# ---------- Shared fixtures ----------


@pytest.fixture
def make_dataset():
    """Factory: make_dataset(years, **synth_kwargs) -> TemperatureDataset."""

    def _make(years, **kwargs) -> TemperatureDataset:
        return TemperatureDataset.from_records(synth_records(years, **kwargs))

    return _make


@pytest.fixture
def warming_dataset() -> TemperatureDataset:
    """1950s at the norm plus 2015-2024 shifted 3 C warmer."""
    early = synth_records(range(1950, 1960), noise=0.01, seed=1)
    late = synth_records(range(2015, 2025), offset=3.0, noise=0.01, seed=2)
    return TemperatureDataset.from_records(early + late)


@pytest.fixture
def sample_stats():
    """Small ResidualStats list with deliberate ties on every key."""
    return [
        ResidualStats(2001, mean_error=0.5, mean_abs_error=1.0,
                      prop_unusually_warm=0.10, prop_unusually_cold=0.05, n_days=365),
        ResidualStats(1999, mean_error=-0.2, mean_abs_error=2.0,
                      prop_unusually_warm=0.05, prop_unusually_cold=0.05, n_days=365),
        ResidualStats(2000, mean_error=0.5, mean_abs_error=1.0,
                      prop_unusually_warm=0.05, prop_unusually_cold=0.10, n_days=366),
        ResidualStats(1998, mean_error=-1.0, mean_abs_error=0.5,
                      prop_unusually_warm=0.02, prop_unusually_cold=0.00, n_days=365),
    ]
