"""Amplitude/phase recovery for a single annual harmonic.

The fitted linear form ``a·cos(x) + b·sin(x)`` equals ``c·cos(x + φ)``
whenever ``c·cos(φ) = a`` and ``c·sin(φ) = -b``. Two rules are provided:

``method="atan2"`` (default)
    ``c = hypot(a, b)`` and ``φ = atan2(-b, a)``. Defined for every (a, b):
    ``a == 0`` gives ``φ = ±π/2`` and ``a == b == 0`` gives ``c = φ = 0``.
    The amplitude is always non-negative.

``method="atan"``
    The textbook form ``c = sign(a)·sqrt(a² + b²)``, ``φ = atan(-b/a)``.
    ``φ`` stays in (-π/2, π/2) and the sign of ``a`` is carried by ``c``.
    At ``a == 0`` the ratio is undefined and ``DegenerateCoefficient`` is
    raised.
"""

from __future__ import annotations

import math

import numpy as np

from seasonal_deviation.core.errors import DegenerateCoefficient, InvalidInput
from seasonal_deviation.core.model import WaveParameters

WAVE_METHODS = ("atan2", "atan")


def to_wave_parameters(
    cos_coeff: float, sin_coeff: float, method: str = "atan2"
) -> WaveParameters:
    a = float(cos_coeff)
    b = float(sin_coeff)
    if not (math.isfinite(a) and math.isfinite(b)):
        raise InvalidInput(f"Coefficients must be finite, got a={a!r}, b={b!r}")

    if method == "atan2":
        return WaveParameters(amplitude=math.hypot(a, b), phase_shift=math.atan2(-b, a))

    if method == "atan":
        if a == 0.0:
            raise DegenerateCoefficient(
                f"cos_coeff is 0 (sin_coeff={b!r}); atan(-b/a) is undefined. "
                "Use method='atan2'."
            )
        c = math.copysign(math.hypot(a, b), a)
        return WaveParameters(amplitude=c, phase_shift=math.atan(-b / a))

    raise InvalidInput(f"Unknown wave method {method!r}. Use one of {WAVE_METHODS}.")


def linear_form(intercept: float, cos_coeff: float, sin_coeff: float, x) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    return intercept + cos_coeff * np.cos(x) + sin_coeff * np.sin(x)


def wave_form(intercept: float, wave: WaveParameters, x) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    return intercept + wave.amplitude * np.cos(x + wave.phase_shift)


def check_equivalence(model, angles=None, method: str = "atan2") -> float:
    """
    Max absolute difference between the linear-combination and cosine-wave
    predictions of ``model`` (any object with intercept/cos_coeff/sin_coeff).

    The trend term, if any, is identical in both forms and is left out.
    ``angles`` defaults to 1000 points spread over (0, 2π].
    """
    if angles is None:
        angles = np.linspace(2.0 * np.pi / 1000.0, 2.0 * np.pi, 1000)
    wave = to_wave_parameters(model.cos_coeff, model.sin_coeff, method=method)
    lin = linear_form(model.intercept, model.cos_coeff, model.sin_coeff, angles)
    cw = wave_form(model.intercept, wave, angles)
    return float(np.max(np.abs(lin - cw))) if np.size(angles) else 0.0


__all__ = [
    "WAVE_METHODS",
    "to_wave_parameters",
    "linear_form",
    "wave_form",
    "check_equivalence",
]
