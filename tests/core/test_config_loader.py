import tomllib
from pathlib import Path

import pytest

from seasonal_deviation.core.config_loader import (
    AnalysisConfig,
    apply_sets,
    dump_effective_config,
    load_run_config,
    merge_dicts,
    parse_scalar,
)
from seasonal_deviation.core.errors import InvalidInput


def test_defaults_without_file():
    cfg, analysis = load_run_config()
    assert analysis == AnalysisConfig()
    assert analysis.threshold_quantile == 0.9
    assert analysis.baseline_start_year is None
    assert cfg["input"]["date_column"] == "date"
    assert cfg["report"]["top_n"] == 5


def test_file_then_overrides(tmp_path: Path):
    p = tmp_path / "analysis.toml"
    p.write_text(
        "[analysis]\n"
        "baseline_start_year = 1950\n"
        "baseline_end_year = 1959\n"
        "[report]\n"
        "top_n = 3\n"
    )
    cfg, analysis = load_run_config(
        str(p), ["analysis.threshold_quantile=0.95", "report.rank_by=prop_unusual"]
    )
    assert analysis.baseline_start_year == 1950
    assert analysis.baseline_end_year == 1959
    assert analysis.threshold_quantile == 0.95
    assert cfg["report"] == {"top_n": 3, "rank_by": "prop_unusual"}
    # untouched defaults survive the merge
    assert cfg["input"]["temperature_column"] == "temperature"


@pytest.mark.parametrize(
    "sets",
    [
        ["analysis.threshold_quantile=1.5"],
        ["analysis.threshold_quantile=0"],
        ["analysis.wave_method=polar"],
        ["analysis.baseline_start_year=1960", "analysis.baseline_end_year=1950"],
        ["analysis.baseline_start_year=abc"],
        ["analysis.unknown_key=1"],
        ["no_equals_sign"],
    ],
)
def test_invalid_settings_raise(sets):
    with pytest.raises(InvalidInput):
        load_run_config(None, sets)


def test_parse_scalar():
    assert parse_scalar("true") is True
    assert parse_scalar("False") is False
    assert parse_scalar("12") == 12
    assert parse_scalar("0.5") == 0.5
    assert parse_scalar("1e-3") == 0.001
    assert parse_scalar("mean_error") == "mean_error"
    # string-typed keys keep the raw text
    assert parse_scalar("2020", like="data/obs.csv") == "2020"
    assert parse_scalar("true", like="x") == "true"


def test_string_keys_are_not_coerced():
    cfg, _ = load_run_config(None, ["input.path=1999", "input.date_column=True"])
    assert cfg["input"]["path"] == "1999"
    assert cfg["input"]["date_column"] == "True"


@pytest.mark.parametrize(
    "item, match",
    [
        ("analysis.treshold_quantile=0.8", "analysis.treshold_quantile"),
        ("report.top=3", "report.top"),
        ("plotting.dpi=100", r"\[plotting\]"),
        ("output.extra.dpi=100", "section.key=value"),
        ("threshold_quantile=0.8", "section.key=value"),
    ],
)
def test_set_keys_are_checked_against_schema(item, match):
    with pytest.raises(InvalidInput, match=match):
        apply_sets({}, [item])


def test_file_with_unknown_key_is_rejected(tmp_path: Path):
    p = tmp_path / "typo.toml"
    p.write_text("[analysis]\nwave_methd = \"atan\"\n")
    with pytest.raises(InvalidInput, match="typo.toml: unknown key analysis.wave_methd"):
        load_run_config(str(p))


def test_file_with_top_level_scalar_is_rejected(tmp_path: Path):
    p = tmp_path / "flat.toml"
    p.write_text("top_n = 3\n")
    with pytest.raises(InvalidInput, match=r"expected a \[top_n\] table"):
        load_run_config(str(p))


def test_merge_overlays_key_by_key():
    merged = merge_dicts(
        {"report": {"top_n": 5, "rank_by": "mean_abs_error"}},
        {"report": {"top_n": 3}, "output": {"models_dir": "out"}},
    )
    assert merged == {
        "report": {"top_n": 3, "rank_by": "mean_abs_error"},
        "output": {"models_dir": "out"},
    }


def test_dump_effective_config_roundtrips_through_toml():
    cfg, _ = load_run_config(
        None,
        [
            "analysis.baseline_start_year=1951",
            r"input.path=C:\data\obs.csv",
            'output.models_dir=runs/"quoted"',
        ],
    )
    text = dump_effective_config(cfg)
    assert tomllib.loads(text) == cfg
    assert tomllib.loads(text)["input"]["path"] == r"C:\data\obs.csv"


def test_dump_effective_config_keeps_nested_tables():
    cfg = {"output": {"models_dir": "models", "extra": {"dpi": 100}}}
    assert tomllib.loads(dump_effective_config(cfg)) == cfg
