from __future__ import annotations

"""
errors.py
=========
Error taxonomy shared by every stage of the analysis.

All errors subclass ``ValueError`` so callers that already guard numeric
input with ``except ValueError`` keep working. Messages quote the offending
values verbatim.
"""


class SeasonalDeviationError(ValueError):
    """Base class for all analysis errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidInput(SeasonalDeviationError):
    """Out-of-range or malformed input (day-of-year, columns, thresholds)."""


class InsufficientData(SeasonalDeviationError):
    """Fewer usable observations than free model parameters."""


class MissingParameter(SeasonalDeviationError):
    """A required argument was not supplied (e.g. year for a trend model)."""


class DegenerateCoefficient(SeasonalDeviationError):
    """cos_coeff == 0 under the classical amplitude/phase formula."""


__all__ = [
    "SeasonalDeviationError",
    "InvalidInput",
    "InsufficientData",
    "MissingParameter",
    "DegenerateCoefficient",
]
