import math
from types import SimpleNamespace

import numpy as np
import pytest
from hypothesis import HealthCheck, assume, given, settings, strategies as st

from seasonal_deviation.core.errors import DegenerateCoefficient, InvalidInput
from seasonal_deviation.fitting.harmonic import fit_seasonal
from seasonal_deviation.fitting.wave import (
    check_equivalence,
    linear_form,
    to_wave_parameters,
    wave_form,
)

_ANGLES = np.random.default_rng(42).uniform(0.0, 2.0 * np.pi, size=1000)


def _coef():
    return st.floats(
        min_value=-100.0, max_value=100.0, allow_nan=False, allow_infinity=False
    )


@settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
@given(intercept=_coef(), a=_coef(), b=_coef(), method=st.sampled_from(["atan2", "atan"]))
def test_wave_reconstruction_matches_linear_form(intercept, a, b, method):
    assume(a != 0.0)
    model = SimpleNamespace(intercept=intercept, cos_coeff=a, sin_coeff=b)
    assert check_equivalence(model, _ANGLES, method=method) < 1e-9


@settings(max_examples=100)
@given(a=_coef(), b=_coef())
def test_atan2_amplitude_is_non_negative_and_norm(a, b):
    w = to_wave_parameters(a, b)
    assert w.amplitude >= 0.0
    assert math.isclose(w.amplitude, math.hypot(a, b))
    assert -math.pi <= w.phase_shift <= math.pi


def test_atan_classical_form_values():
    w = to_wave_parameters(-3.0, 4.0, method="atan")
    assert math.isclose(w.amplitude, -5.0)
    assert math.isclose(w.phase_shift, math.atan(4.0 / 3.0))


def test_atan2_when_cos_coeff_is_zero():
    w = to_wave_parameters(0.0, 2.0)
    assert math.isclose(w.amplitude, 2.0)
    assert math.isclose(w.phase_shift, -math.pi / 2)
    w = to_wave_parameters(0.0, -2.0)
    assert math.isclose(w.phase_shift, math.pi / 2)
    x = np.linspace(0.1, 2 * np.pi, 50)
    np.testing.assert_allclose(wave_form(1.0, w, x), linear_form(1.0, 0.0, -2.0, x),
                               atol=1e-12)


def test_atan2_all_zero_coefficients():
    w = to_wave_parameters(0.0, 0.0)
    assert w.amplitude == 0.0
    assert w.phase_shift == 0.0


def test_atan_when_cos_coeff_is_zero_raises():
    with pytest.raises(DegenerateCoefficient, match="sin_coeff=2.0"):
        to_wave_parameters(0.0, 2.0, method="atan")


def test_unknown_method_and_non_finite():
    with pytest.raises(InvalidInput):
        to_wave_parameters(1.0, 1.0, method="polar")
    with pytest.raises(InvalidInput):
        to_wave_parameters(float("nan"), 1.0)


def test_check_equivalence_on_fitted_model(make_dataset):
    m = fit_seasonal(make_dataset([2000, 2001], noise=0.3))
    assert check_equivalence(m) < 1e-9
    assert check_equivalence(m, method="atan") < 1e-9


def test_phase_shift_days():
    w = to_wave_parameters(0.0, -1.0)  # phi = +pi/2
    assert math.isclose(w.phase_shift_days, 366 / 4)
