import datetime as dt
import math

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from seasonal_deviation.core.errors import InvalidInput
from seasonal_deviation.core.model import Observation
from seasonal_deviation.fitting.features import (
    feature_row,
    phase_angle,
    phase_angles,
)


def test_phase_angle_endpoints():
    assert math.isclose(phase_angle(1), 2 * math.pi / 366)
    assert math.isclose(phase_angle(183), math.pi)
    assert math.isclose(phase_angle(366), 2 * math.pi)


@pytest.mark.parametrize("bad", [0, 367, -5, 1000])
def test_phase_angle_out_of_range(bad):
    with pytest.raises(InvalidInput, match=str(bad)):
        phase_angle(bad)


@pytest.mark.parametrize("bad", [1.5, "10", None, True])
def test_phase_angle_non_integer(bad):
    with pytest.raises(InvalidInput):
        phase_angle(bad)


def test_phase_angle_accepts_numpy_integers():
    assert phase_angle(np.int64(100)) == phase_angle(100)


@settings(max_examples=200)
@given(d=st.integers(min_value=1, max_value=365))
def test_phase_angle_monotonic_and_in_range(d):
    a, b = phase_angle(d), phase_angle(d + 1)
    assert a <= b
    assert 0.0 < a <= 2 * math.pi
    assert 0.0 < b <= 2 * math.pi


def test_phase_angles_vectorized_matches_scalar():
    days = np.arange(1, 367)
    np.testing.assert_allclose(phase_angles(days), [phase_angle(int(d)) for d in days])


def test_phase_angles_accepts_integral_floats_and_rejects_others():
    np.testing.assert_allclose(phase_angles([1.0, 2.0]), phase_angles([1, 2]))
    with pytest.raises(InvalidInput):
        phase_angles([1.5])
    with pytest.raises(InvalidInput, match="367"):
        phase_angles([1, 367])


def test_feature_row_from_leap_day_observation():
    obs = Observation(dt.date(2020, 12, 31), 3.5)
    row = feature_row(obs)
    assert row.day_of_year == 366
    assert row.year == 2020
    assert row.temperature == 3.5
    assert math.isclose(row.phase_angle, 2 * math.pi)
