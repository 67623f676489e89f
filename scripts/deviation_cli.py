#!/usr/bin/env python3
"""Fit seasonal temperature models and rank years by their deviation.

-------------------------------------------------------------------------------
Available subcommands
-------------------------------------------------------------------------------
fit       Fit the three model variants from a clean daily-temperature file,
          compute per-year residual statistics and save a .joblib bundle.
rank      Rank years from a saved bundle by a chosen statistic.
summary   Print the model summaries stored in a saved bundle.

-------------------------------------------------------------------------------
Command-line usage examples
-------------------------------------------------------------------------------
1) Fit with defaults (baseline = first ten years of data):
   python scripts/deviation_cli.py fit data/observations.csv
   # Outputs: models/observations.joblib, models/observations_summary.txt

2) Fit with a config file and an override:
   python scripts/deviation_cli.py fit data/obs.csv --config analysis.toml \
       --set analysis.baseline_start_year=1951

3) Five most unusual years under the trend-aware model:
   python scripts/deviation_cli.py rank models/obs.joblib \
       --variant seasonal_trend --by prop_unusual --top 5

4) Five most ideal years (smallest mean absolute error):
   python scripts/deviation_cli.py rank models/obs.joblib --bottom 5

5) Print model summaries:
   python scripts/deviation_cli.py summary models/obs.joblib

-------------------------------------------------------------------------------
Input / output conventions
-------------------------------------------------------------------------------
- Input files must already be deduplicated: one row per date with at least a
  date column and a temperature column (°C). Lines starting with '#' are
  comments.
- Bundles and summaries are written under ``models/`` (``[output].models_dir``).
- Each run appends to ``<log-dir>/run_<UTC stamp>.log``.
- Analysis errors exit with status 2 and print ``error: <Kind>: <message>``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime, timezone

from seasonal_deviation.analysis.pipeline import (
    VARIANTS,
    load_model_bundle,
    run_analysis,
    save_model_bundle,
)
from seasonal_deviation.analysis.ranking import (
    ORDERS,
    RANK_KEYS,
    format_ranking,
    rank_years,
)
from seasonal_deviation.core.config_loader import (
    dump_effective_config,
    load_run_config,
)
from seasonal_deviation.core.dataset import read_observations_csv
from seasonal_deviation.core.errors import InvalidInput, SeasonalDeviationError
from seasonal_deviation.fitting.harmonic import model_summary

logger = logging.getLogger("deviation_cli")


def _init_logging(log_dir: str, verbose: bool) -> str:
    os.makedirs(log_dir, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")
    path = os.path.join(log_dir, f"run_{stamp}.log")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    to_file = logging.FileHandler(path, encoding="utf-8")
    to_file.setLevel(logging.DEBUG)
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[console, to_file],
        force=True,
    )
    return path


def _stem(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def _report_settings(cfg) -> tuple:
    report = cfg["report"]
    n, by = report["top_n"], report["rank_by"]
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise InvalidInput(f"report.top_n must be an integer >= 0, got {n!r}")
    rank_years([], by=by)
    return n, by


def _full_summary(result) -> str:
    parts = []
    for name in VARIANTS:
        parts.append(
            model_summary(result.models[name], wave_method=result.meta.wave_method)
        )
    parts.append(
        f"Unusual-day threshold: {result.threshold:.4f} C "
        f"(q={result.meta.threshold_quantile:g} of |residual|)\n"
    )
    return "\n".join(parts)


# -----------
# Subcommands
# -----------
def cmd_fit(args: argparse.Namespace) -> int:
    cfg, analysis = load_run_config(args.config, args.set)
    if args.dump_effective_config:
        print(dump_effective_config(cfg))
        return 0

    inp = cfg["input"]
    n, by = _report_settings(cfg)
    path = args.input or inp["path"]
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")
    logger.info("Effective configuration:\n%s", dump_effective_config(cfg))

    dataset = read_observations_csv(
        path,
        date_column=inp["date_column"],
        temperature_column=inp["temperature_column"],
    )
    result = run_analysis(dataset, analysis, source_path=path)
    result.notes = args.notes or ""

    models_dir = args.models_dir or cfg["output"]["models_dir"]
    os.makedirs(models_dir, exist_ok=True)
    stem = args.stem or _stem(path)
    bundle_path = os.path.join(models_dir, f"{stem}.joblib")
    summary_path = os.path.join(models_dir, f"{stem}_summary.txt")

    save_model_bundle(result, bundle_path)

    text = [_full_summary(result)]
    for name in VARIANTS:
        text.append(
            format_ranking(
                result.most_unusual(n, variant=name, by=by),
                by,
                title=f"Most unusual years ({name}, by {by})",
            )
        )
        text.append(
            format_ranking(
                result.most_ideal(n, variant=name, by=by),
                by,
                title=f"Most ideal years ({name}, by {by})",
            )
        )
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write("\n".join(text))

    print(f"Saved bundle: {bundle_path}")
    print(f"Saved summary: {summary_path}")
    return 0


def cmd_rank(args: argparse.Namespace) -> int:
    result = load_model_bundle(args.bundle)
    if args.top is not None:
        ranked = result.most_unusual(args.top, variant=args.variant, by=args.by)
        title = f"Top {args.top} years ({args.variant}, by {args.by})"
    elif args.bottom is not None:
        ranked = result.most_ideal(args.bottom, variant=args.variant, by=args.by)
        title = f"Bottom {args.bottom} years ({args.variant}, by {args.by})"
    else:
        ranked = result.rank(variant=args.variant, by=args.by, order=args.order)
        title = f"All years ({args.variant}, by {args.by}, {args.order})"
    print(format_ranking(ranked, args.by, title=title), end="")
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    result = load_model_bundle(args.bundle)
    print(_full_summary(result), end="")
    return 0


# -------------
# Main / Parser
# -------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Seasonal temperature deviation analysis",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "--log-dir",
        default="logs",
        help="Directory where the run log will be created.",
    )
    p.add_argument("--verbose", action="store_true", help="Log progress to stderr")
    sub = p.add_subparsers(dest="command", required=True)

    # fit
    pf = sub.add_parser(
        "fit",
        help="Fit model variants and compute per-year statistics",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    pf.add_argument("input", nargs="?", default=None, help="Clean observations file")
    pf.add_argument("--config", default=None, help="Analysis config (TOML)")
    pf.add_argument(
        "--set",
        action="append",
        default=[],
        help="Override config key=value (repeatable).",
    )
    pf.add_argument(
        "--dump-effective-config",
        action="store_true",
        help="Print final merged config and exit.",
    )
    pf.add_argument("--models-dir", default=None, help="Output directory")
    pf.add_argument("--stem", default=None, help="Output file stem")
    pf.add_argument("--notes", default=None, help="Note saved into the bundle")
    pf.set_defaults(func=cmd_fit)

    # rank
    pr = sub.add_parser(
        "rank",
        help="Rank years from a saved bundle",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    pr.add_argument("bundle", help="Path to a .joblib bundle")
    pr.add_argument("--variant", choices=VARIANTS, default=VARIANTS[0])
    pr.add_argument("--by", choices=RANK_KEYS, default="mean_abs_error")
    pr.add_argument("--order", choices=ORDERS, default="descending")
    g = pr.add_mutually_exclusive_group()
    g.add_argument("--top", type=int, default=None, help="Largest N only")
    g.add_argument("--bottom", type=int, default=None, help="Smallest N only")
    pr.set_defaults(func=cmd_rank)

    # summary
    ps = sub.add_parser("summary", help="Print model summaries from a bundle")
    ps.add_argument("bundle", help="Path to a .joblib bundle")
    ps.set_defaults(func=cmd_summary)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log_path = _init_logging(args.log_dir, args.verbose)
    logger.info("Run started: %s (log: %s)", args.command, log_path)
    try:
        return args.func(args)
    except SeasonalDeviationError as e:
        logger.error("%s: %s", e.kind, e)
        print(f"error: {e.kind}: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
