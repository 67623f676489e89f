"""End-to-end analysis: three model variants, one threshold, per-year stats.

Steps
-----
1) Fit the seasonal model on all years.
2) Fit the seasonal + trend model on all years.
3) Fit the seasonal model on the baseline window only (an early sub-period,
   by default the first ten calendar years present in the data).
4) Derive the unusual-day threshold once, as the configured quantile of the
   absolute residuals of the all-years seasonal model over the whole dataset.
5) For each variant, predict every observed day and compute per-year
   ``ResidualStats`` with that single threshold.

``AnalysisResult`` can be saved with ``save_model_bundle`` (joblib) and
reloaded with ``load_model_bundle``; reloaded results answer ranking queries
without refitting.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

import joblib

from seasonal_deviation.core.config_loader import AnalysisConfig
from seasonal_deviation.core.dataset import TemperatureDataset
from seasonal_deviation.core.errors import InsufficientData, InvalidInput
from seasonal_deviation.core.model import RankedYear, ResidualStats, WaveParameters
from seasonal_deviation.fitting.harmonic import (
    SEASONAL,
    SEASONAL_BASELINE,
    SEASONAL_TREND,
    FittedModel,
    fit_seasonal,
    fit_seasonal_with_trend,
)
from seasonal_deviation.fitting.wave import to_wave_parameters

from .ranking import bottom_n, rank_years, top_n
from .residuals import compute_stats, residual_frame, unusual_threshold

logger = logging.getLogger(__name__)

VARIANTS = (SEASONAL, SEASONAL_TREND, SEASONAL_BASELINE)
BUNDLE_FORMAT = 1
LIBRARY_VERSION = "seasonal_deviation 0.1.0"


@dataclass
class AnalysisMetadata:
    n_observations: int
    first_year: Optional[int]
    last_year: Optional[int]
    baseline_start_year: int
    baseline_end_year: int
    threshold_quantile: float
    wave_method: str = "atan2"
    timestamp_utc: str = ""
    data_hash: str = ""
    source_path: str = ""
    library_version: str = LIBRARY_VERSION


@dataclass
class AnalysisResult:
    models: Dict[str, FittedModel]
    waves: Dict[str, WaveParameters]
    threshold: float
    stats: Dict[str, List[ResidualStats]]
    meta: AnalysisMetadata
    notes: str = field(default="")

    def _stats_for(self, variant: str) -> List[ResidualStats]:
        try:
            return self.stats[variant]
        except KeyError:
            raise InvalidInput(
                f"Unknown model variant {variant!r}. Use one of {VARIANTS}."
            ) from None

    def rank(
        self, variant: str = SEASONAL, by: str = "mean_abs_error", order: str = "descending"
    ) -> List[RankedYear]:
        return rank_years(self._stats_for(variant), by=by, order=order)

    def most_unusual(
        self, n: int, variant: str = SEASONAL, by: str = "mean_abs_error"
    ) -> List[RankedYear]:
        return top_n(self._stats_for(variant), n, by=by)

    def most_ideal(
        self, n: int, variant: str = SEASONAL, by: str = "mean_abs_error"
    ) -> List[RankedYear]:
        return bottom_n(self._stats_for(variant), n, by=by)


def baseline_window(
    dataset: TemperatureDataset, config: AnalysisConfig
) -> Tuple[int, int]:
    start = config.baseline_start_year
    end = config.baseline_end_year
    if start is None:
        if dataset.first_year is None:
            raise InsufficientData("Dataset is empty; no baseline window available")
        start = dataset.first_year
    if end is None:
        end = start + 9
    if start > end:
        raise InvalidInput(
            f"Baseline window is empty: start={start!r} > end={end!r}"
        )
    return start, end


def run_analysis(
    dataset: TemperatureDataset,
    config: Optional[AnalysisConfig] = None,
    *,
    source_path: str = "",
) -> AnalysisResult:
    config = config or AnalysisConfig()
    b0, b1 = baseline_window(dataset, config)
    logger.info(
        "Analysing %d observations (%s-%s), baseline %d-%d",
        len(dataset),
        dataset.first_year,
        dataset.last_year,
        b0,
        b1,
    )

    models = {
        SEASONAL: fit_seasonal(dataset),
        SEASONAL_TREND: fit_seasonal_with_trend(dataset),
        SEASONAL_BASELINE: fit_seasonal(
            dataset.window(b0, b1), variant=SEASONAL_BASELINE
        ),
    }
    frames = {name: residual_frame(dataset, m) for name, m in models.items()}

    ref = frames[SEASONAL]
    threshold = unusual_threshold(
        ref["actual"], ref["predicted"], quantile=config.threshold_quantile
    )
    logger.info(
        "Unusual-day threshold: %.3f C (q=%.2f of |residual|, %s model)",
        threshold,
        config.threshold_quantile,
        SEASONAL,
    )

    stats = {name: compute_stats(fr, threshold) for name, fr in frames.items()}
    waves = {
        name: to_wave_parameters(m.cos_coeff, m.sin_coeff, method=config.wave_method)
        for name, m in models.items()
    }

    meta = AnalysisMetadata(
        n_observations=len(dataset),
        first_year=dataset.first_year,
        last_year=dataset.last_year,
        baseline_start_year=b0,
        baseline_end_year=b1,
        threshold_quantile=config.threshold_quantile,
        wave_method=config.wave_method,
        timestamp_utc=datetime.datetime.now(datetime.timezone.utc).isoformat(
            timespec="seconds"
        ).replace("+00:00", "Z"),
        data_hash=dataset.fingerprint(),
        source_path=str(source_path),
    )
    return AnalysisResult(
        models=models, waves=waves, threshold=threshold, stats=stats, meta=meta
    )


# -------------------------
# Persistence
# -------------------------


def save_model_bundle(result: AnalysisResult, path: str) -> None:
    """Save an analysis result to a .joblib file as plain dicts."""
    to_save = {
        "format": BUNDLE_FORMAT,
        "models": {k: asdict(m) for k, m in result.models.items()},
        "waves": {k: asdict(w) for k, w in result.waves.items()},
        "threshold": float(result.threshold),
        "stats": {k: [asdict(s) for s in v] for k, v in result.stats.items()},
        "meta": asdict(result.meta),
        "notes": result.notes,
    }
    joblib.dump(to_save, path)


def load_model_bundle(path: str) -> AnalysisResult:
    d = joblib.load(path)
    fmt = int(d.get("format", 0))
    if fmt != BUNDLE_FORMAT:
        raise InvalidInput(f"Unsupported bundle format {fmt!r} in '{path}'")
    return AnalysisResult(
        models={k: FittedModel(**m) for k, m in d["models"].items()},
        waves={k: WaveParameters(**w) for k, w in d["waves"].items()},
        threshold=float(d["threshold"]),
        stats={k: [ResidualStats(**s) for s in v] for k, v in d["stats"].items()},
        meta=AnalysisMetadata(**d["meta"]),
        notes=d.get("notes", ""),
    )


__all__ = [
    "VARIANTS",
    "AnalysisMetadata",
    "AnalysisResult",
    "baseline_window",
    "run_analysis",
    "save_model_bundle",
    "load_model_bundle",
]
