"""
rank_years_example.py
=====================

Purpose
-------
Minimal example showing how to use `seasonal_deviation` to load a previously
saved analysis bundle and list the most unusual and most ideal years.

Requirements
------------
- The bundle must have been generated beforehand (see scripts/deviation_cli.py):
  * models/observations.joblib
- Temperatures are in degrees Celsius.

What this example does
----------------------
1) Loads the analysis bundle (three fitted models + per-year statistics).
2) Prints the recovered annual cycle of the baseline model.
3) Prints the five years that deviate most and least from that baseline.

Usage
-----
    python examples/rank_years_example.py
"""

from seasonal_deviation.analysis.pipeline import load_model_bundle
from seasonal_deviation.analysis.ranking import format_ranking

# 1) Load the saved analysis (produced by `deviation_cli.py fit`).
BUNDLE_PATH = "models/observations.joblib"
result = load_model_bundle(BUNDLE_PATH)

# 2) Annual cycle of the early-period model: T(x) = b0 + c*cos(x + phi).
base = result.models["seasonal_baseline"]
wave = result.waves["seasonal_baseline"]
print(
    f"Baseline {result.meta.baseline_start_year}-{result.meta.baseline_end_year}: "
    f"mean {base.intercept:.2f} C, amplitude {wave.amplitude:.2f} C, "
    f"phase {wave.phase_shift_days:+.1f} days"
)

# 3) Years furthest from / closest to the baseline norm.
print(format_ranking(result.most_unusual(5, variant="seasonal_baseline"),
                     "mean_abs_error", title="Most unusual years"))
print(format_ranking(result.most_ideal(5, variant="seasonal_baseline"),
                     "mean_abs_error", title="Most ideal years"))

# Tip: a negative mean_error means the year was warmer than the model expects.
