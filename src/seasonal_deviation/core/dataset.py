"""Immutable daily-temperature dataset and its clean-file reader.

The dataset is the hand-off point between whatever produced the cleaned
records (deduplication, merging of overlapping exports) and the modeling
code. It guarantees:

- exactly one observation per calendar date (duplicates are rejected, never
  merged here);
- observations ordered by ascending date;
- finite temperatures only.

Missing days are simply absent; nothing is imputed.

Public API
----------
- ``TemperatureDataset(observations)``
- ``TemperatureDataset.from_records(pairs)`` for ``(date, temperature)`` pairs
- ``TemperatureDataset.from_frame(df, date_column=..., temperature_column=...)``
- ``read_observations_csv(path, ...) -> TemperatureDataset``
"""

from __future__ import annotations

import datetime as _dt
import hashlib
import logging
from collections import Counter
from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from seasonal_deviation.fitting.features import feature_row, phase_angles

from .errors import InvalidInput
from .model import FeatureRow, Observation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemperatureDataset:
    observations: Tuple[Observation, ...]

    def __post_init__(self) -> None:
        obs = tuple(sorted(self.observations, key=lambda o: o.date))
        counts = Counter(o.date for o in obs)
        dups = sorted(d for d, c in counts.items() if c > 1)
        if dups:
            shown = ", ".join(d.isoformat() for d in dups[:10])
            more = f" (+{len(dups) - 10} more)" if len(dups) > 10 else ""
            raise InvalidInput(f"Duplicate observation dates: {shown}{more}")
        object.__setattr__(self, "observations", obs)

    # --- constructors ---

    @classmethod
    def from_records(
        cls, records: Iterable[Tuple[_dt.date, float]]
    ) -> "TemperatureDataset":
        return cls(tuple(Observation(d, t) for d, t in records))

    @classmethod
    def from_frame(
        cls,
        df: "pd.DataFrame",
        *,
        date_column: str = "date",
        temperature_column: str = "temperature",
    ) -> "TemperatureDataset":
        missing = [c for c in (date_column, temperature_column) if c not in df.columns]
        if missing:
            raise InvalidInput(
                f"Missing required columns {missing}. Found columns: {list(df.columns)}"
            )
        try:
            dates = pd.to_datetime(df[date_column], errors="raise")
        except (ValueError, TypeError) as e:
            raise InvalidInput(f"Unparsable value in column '{date_column}': {e}") from e
        temps = pd.to_numeric(df[temperature_column], errors="coerce")
        bad = ~np.isfinite(temps.to_numpy(dtype=float))
        if bad.any():
            rows = df.loc[bad, [date_column, temperature_column]].head(5)
            raise InvalidInput(
                f"Non-finite temperatures in column '{temperature_column}': "
                f"{rows.to_dict(orient='records')}"
            )
        return cls(
            tuple(
                Observation(ts.date(), float(t))
                for ts, t in zip(dates, temps.to_numpy(dtype=float))
            )
        )

    # --- container protocol ---

    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    # --- derived views ---

    @property
    def years(self) -> List[int]:
        return sorted({o.year for o in self.observations})

    @property
    def first_year(self) -> Optional[int]:
        return self.observations[0].year if self.observations else None

    @property
    def last_year(self) -> Optional[int]:
        return self.observations[-1].year if self.observations else None

    def feature_rows(self) -> List[FeatureRow]:
        return [feature_row(o) for o in self.observations]

    def window(self, start_year: int, end_year: int) -> "TemperatureDataset":
        """Return the sub-dataset with ``start_year <= year <= end_year``."""
        if start_year > end_year:
            raise InvalidInput(
                f"Empty year window: start_year={start_year!r} > end_year={end_year!r}"
            )
        return TemperatureDataset(
            tuple(o for o in self.observations if start_year <= o.year <= end_year)
        )

    @cached_property
    def _frame(self) -> "pd.DataFrame":
        df = pd.DataFrame(
            {
                "date": [o.date for o in self.observations],
                "temperature": np.array(
                    [o.temperature for o in self.observations], dtype=float
                ),
                "year": np.array([o.year for o in self.observations], dtype=np.int64),
                "day_of_year": np.array(
                    [o.day_of_year for o in self.observations], dtype=np.int64
                ),
            }
        )
        df["phase_angle"] = phase_angles(df["day_of_year"].to_numpy())
        return df

    def to_frame(self) -> "pd.DataFrame":
        """Columns: date, temperature, year, day_of_year, phase_angle."""
        return self._frame.copy()

    def fingerprint(self) -> str:
        """SHA-256 over (date, temperature) pairs, for provenance metadata."""
        h = hashlib.sha256()
        for o in self.observations:
            h.update(f"{o.date.isoformat()}\t{o.temperature!r}\n".encode("utf-8"))
        return h.hexdigest()


def read_observations_csv(
    path: str,
    *,
    date_column: str = "date",
    temperature_column: str = "temperature",
) -> TemperatureDataset:
    """
    Read an already-cleaned delimited file of daily temperatures.

    Notes
    -----
    - Tab-separated is tried first; if the required columns are not found the
      delimiter is auto-detected (comma, semicolon, whitespace).
    - Lines starting with '#' are treated as comments and ignored.
    - Duplicate dates raise ``InvalidInput``; this reader does not merge.
    """
    required = [date_column, temperature_column]

    df = pd.read_csv(path, sep="\t", comment="#")
    df.columns = [str(c).strip() for c in df.columns]
    if any(c not in df.columns for c in required):
        df = pd.read_csv(path, sep=None, engine="python", comment="#")
        df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise InvalidInput(
            f"Missing required columns {missing} in '{path}'. "
            f"Found columns: {list(df.columns)}"
        )

    ds = TemperatureDataset.from_frame(
        df, date_column=date_column, temperature_column=temperature_column
    )
    logger.info(
        "Read %d observations (%s-%s) from %s",
        len(ds),
        ds.first_year,
        ds.last_year,
        path,
    )
    return ds


__all__ = ["TemperatureDataset", "read_observations_csv"]
