from __future__ import annotations

"""
model.py
========
Minimal record types shared across the seasonal-deviation pipeline.

Every record is a frozen dataclass: once created by the dataset builder or
by a fitting/analysis step it is never mutated. Fitted regression models
live next to their solver in ``seasonal_deviation.fitting.harmonic``.
"""

import datetime as _dt
import math
from dataclasses import dataclass, field

from .errors import InvalidInput


# One daily temperature record.
@dataclass(frozen=True)
class Observation:
    # Calendar date, unique key within a dataset.
    date: _dt.date
    # Daily temperature in degrees Celsius.
    temperature: float
    # Derived from date.
    year: int = field(init=False)
    # Derived from date, 1..366 (leap years reach 366).
    day_of_year: int = field(init=False)

    def __post_init__(self) -> None:
        d = self.date
        if isinstance(d, _dt.datetime):
            d = d.date()
            object.__setattr__(self, "date", d)
        if not isinstance(d, _dt.date):
            raise InvalidInput(f"Observation date must be a date, got {d!r}")
        t = float(self.temperature)
        if not math.isfinite(t):
            raise InvalidInput(
                f"Observation temperature must be finite, got {self.temperature!r} "
                f"on {d.isoformat()}"
            )
        object.__setattr__(self, "temperature", t)
        object.__setattr__(self, "year", d.year)
        object.__setattr__(self, "day_of_year", d.timetuple().tm_yday)


# An observation augmented with its position in the annual cycle.
@dataclass(frozen=True)
class FeatureRow:
    date: _dt.date
    temperature: float
    year: int
    day_of_year: int
    # 2*pi*day_of_year/366, in (0, 2*pi].
    phase_angle: float


# Amplitude/phase form of a single harmonic: c*cos(x + phi).
@dataclass(frozen=True)
class WaveParameters:
    amplitude: float
    phase_shift: float

    @property
    def phase_shift_days(self) -> float:
        """Phase shift expressed in days of the 366-day cycle."""
        return self.phase_shift * 366.0 / (2.0 * math.pi)


# Deviation statistics for one calendar year under one model.
@dataclass(frozen=True)
class ResidualStats:
    year: int
    # mean(predicted - actual); negative means the model underestimates.
    mean_error: float
    mean_abs_error: float
    prop_unusually_warm: float
    prop_unusually_cold: float
    n_days: int = 0

    @property
    def prop_unusual(self) -> float:
        return self.prop_unusually_warm + self.prop_unusually_cold


# One entry of a year ranking.
@dataclass(frozen=True)
class RankedYear:
    rank: int
    stats: ResidualStats

    @property
    def year(self) -> int:
        return self.stats.year


__all__ = [
    "Observation",
    "FeatureRow",
    "WaveParameters",
    "ResidualStats",
    "RankedYear",
]
