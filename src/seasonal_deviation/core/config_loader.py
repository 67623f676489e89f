from __future__ import annotations

"""
config_loader.py
================
TOML configuration for an analysis run.

Built-in defaults are merged with an optional TOML file and then with
``--set section.key=value`` overrides, in that order. The ``[analysis]``
table is validated into an ``AnalysisConfig``, the only configuration the
pipeline itself consumes.
"""

import copy
import math
import tomllib
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Optional, Tuple

import tomli_w

from .errors import InvalidInput

DEFAULTS: Dict[str, Any] = {
    "input": {
        "path": "data/observations.csv",
        "date_column": "date",
        "temperature_column": "temperature",
    },
    "analysis": {
        "threshold_quantile": 0.9,
        "wave_method": "atan2",
    },
    "report": {
        "top_n": 5,
        "rank_by": "mean_abs_error",
    },
    "output": {
        "models_dir": "models",
    },
}


@dataclass(frozen=True)
class AnalysisConfig:
    # Quantile of |actual - predicted| used as the unusual-day threshold.
    threshold_quantile: float = 0.9
    # Inclusive year window for the baseline (early-period) model.
    # None means: first year of data, and first year + 9.
    baseline_start_year: Optional[int] = None
    baseline_end_year: Optional[int] = None
    # Amplitude/phase recovery rule: "atan2" or "atan".
    wave_method: str = "atan2"

    def __post_init__(self) -> None:
        q = self.threshold_quantile
        if isinstance(q, bool) or not isinstance(q, (int, float)) or not (
            math.isfinite(q) and 0.0 < q < 1.0
        ):
            raise InvalidInput(f"threshold_quantile must be in (0, 1), got {q!r}")
        for name in ("baseline_start_year", "baseline_end_year"):
            v = getattr(self, name)
            if v is not None and (isinstance(v, bool) or not isinstance(v, int)):
                raise InvalidInput(f"{name} must be an integer year, got {v!r}")
        if (
            self.baseline_start_year is not None
            and self.baseline_end_year is not None
            and self.baseline_start_year > self.baseline_end_year
        ):
            raise InvalidInput(
                f"baseline_start_year={self.baseline_start_year!r} is after "
                f"baseline_end_year={self.baseline_end_year!r}"
            )
        if self.wave_method not in ("atan2", "atan"):
            raise InvalidInput(
                f"wave_method must be 'atan2' or 'atan', got {self.wave_method!r}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidInput(f"Unknown [analysis] keys: {unknown}")
        return cls(**{k: v for k, v in d.items() if k in known})


# Accepted keys per table. [analysis] mirrors AnalysisConfig (its baseline
# years default to None and so are absent from DEFAULTS).
SCHEMA: Dict[str, Tuple[str, ...]] = {
    section: tuple(keys) for section, keys in DEFAULTS.items()
}
SCHEMA["analysis"] = tuple(f.name for f in fields(AnalysisConfig))


def _check_key(section: str, key: str, origin: str) -> None:
    if section not in SCHEMA:
        raise InvalidInput(
            f"{origin}: unknown table [{section}]. Known tables: {sorted(SCHEMA)}"
        )
    if key not in SCHEMA[section]:
        raise InvalidInput(
            f"{origin}: unknown key {section}.{key}. "
            f"Known [{section}] keys: {list(SCHEMA[section])}"
        )


def load_toml(path: str) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def merge_dicts(
    base: Dict[str, Any], overlay: Dict[str, Any], *, origin: str = "config"
) -> Dict[str, Any]:
    """Overlay ``overlay``'s tables onto ``base`` one key at a time.

    Both levels are checked against ``SCHEMA``; a top-level scalar or an
    unknown table/key raises ``InvalidInput`` naming ``origin``.
    """
    out = {section: dict(table) for section, table in base.items()}
    for section, table in overlay.items():
        if not isinstance(table, dict):
            raise InvalidInput(
                f"{origin}: expected a [{section}] table, got {table!r}"
            )
        for key, value in table.items():
            _check_key(section, key, origin)
            out.setdefault(section, {})[key] = value
    return out


def apply_sets(cfg: Dict[str, Any], sets: Iterable[str]) -> Dict[str, Any]:
    """Apply ``section.key=value`` overrides in order, in place."""
    for item in sets:
        key, sep, raw = item.partition("=")
        parts = key.strip().split(".")
        if not sep or len(parts) != 2 or not all(parts):
            raise InvalidInput(f"--set expects section.key=value, got: {item!r}")
        section, name = parts
        _check_key(section, name, "--set")
        current = DEFAULTS.get(section, {}).get(name)
        cfg.setdefault(section, {})[name] = parse_scalar(raw.strip(), like=current)
    return cfg


def parse_scalar(s: str, like: Any = None):
    """Parse an override value.

    Keys whose default is a string (paths, column names, method names) keep
    the raw text, so ``input.path=2020`` stays a path. Otherwise the value is
    read as bool, int or float, falling back to the string.
    """
    if isinstance(like, str):
        return s
    sl = s.lower()
    if sl in ("true", "false"):
        return sl == "true"
    for cast in (int, float):
        try:
            return cast(s)
        except ValueError:
            pass
    return s


def load_run_config(
    path: Optional[str] = None,
    set_overrides: Iterable[str] = (),
) -> Tuple[Dict[str, Any], AnalysisConfig]:
    """Compose defaults -> TOML file -> --set overrides.

    Returns (effective_cfg, analysis_config).
    """
    cfg = copy.deepcopy(DEFAULTS)
    if path:
        cfg = merge_dicts(cfg, load_toml(path), origin=path)
    cfg = apply_sets(cfg, set_overrides)
    return cfg, AnalysisConfig.from_dict(cfg.get("analysis", {}))


def dump_effective_config(cfg: Dict[str, Any]) -> str:
    return tomli_w.dumps(cfg)
