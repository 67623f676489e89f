"""Ordering of years by a residual statistic.

Ranks are 1-based ordinals with no gaps. Ties on the statistic are always
broken by ascending year, in both orders, so the result is deterministic and
re-ranking an already ranked list by the same key reproduces it.

``top_n`` gives the years with the *largest* statistic ("most unusual"),
``bottom_n`` the years with the *smallest* ("most ideal").
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List

from seasonal_deviation.core.errors import InvalidInput
from seasonal_deviation.core.model import RankedYear, ResidualStats

_KEYS: Dict[str, Callable[[ResidualStats], float]] = {
    "mean_error": lambda s: s.mean_error,
    "mean_abs_error": lambda s: s.mean_abs_error,
    "prop_unusual": lambda s: s.prop_unusually_warm + s.prop_unusually_cold,
    "prop_unusually_warm": lambda s: s.prop_unusually_warm,
    "prop_unusually_cold": lambda s: s.prop_unusually_cold,
}

RANK_KEYS = tuple(_KEYS)
ORDERS = ("ascending", "descending")


def statistic(stats: ResidualStats, by: str) -> float:
    try:
        return _KEYS[by](stats)
    except KeyError:
        raise InvalidInput(
            f"Unknown ranking key {by!r}. Use one of {RANK_KEYS}."
        ) from None


def rank_years(
    stats: Iterable[ResidualStats],
    by: str = "mean_abs_error",
    order: str = "descending",
) -> List[RankedYear]:
    if by not in _KEYS:
        raise InvalidInput(f"Unknown ranking key {by!r}. Use one of {RANK_KEYS}.")
    if order not in ORDERS:
        raise InvalidInput(f"Unknown order {order!r}. Use one of {ORDERS}.")

    items = [s.stats if isinstance(s, RankedYear) else s for s in stats]
    key = _KEYS[by]
    # Stable two-pass sort: year first, then the statistic.
    by_year = sorted(items, key=lambda s: s.year)
    ordered = sorted(by_year, key=key, reverse=(order == "descending"))
    return [RankedYear(rank=i, stats=s) for i, s in enumerate(ordered, start=1)]


def top_n(
    stats: Iterable[ResidualStats], n: int, by: str = "mean_abs_error"
) -> List[RankedYear]:
    if n < 0:
        raise InvalidInput(f"n must be >= 0, got {n!r}")
    return rank_years(stats, by=by, order="descending")[:n]


def bottom_n(
    stats: Iterable[ResidualStats], n: int, by: str = "mean_abs_error"
) -> List[RankedYear]:
    if n < 0:
        raise InvalidInput(f"n must be >= 0, got {n!r}")
    return rank_years(stats, by=by, order="ascending")[:n]


def format_ranking(ranked: List[RankedYear], by: str, title: str = "") -> str:
    lines = []
    if title:
        lines.append(title)
    lines.append(
        f"{'rank':>4}  {'year':>4}  {'mean_err':>9}  {'mean_abs':>9}"
        f"  {'warm%':>6}  {'cold%':>6}  {by}"
    )
    for r in ranked:
        s = r.stats
        lines.append(
            f"{r.rank:>4}  {s.year:>4}  {s.mean_error:>+9.3f}  {s.mean_abs_error:>9.3f}"
            f"  {100 * s.prop_unusually_warm:>6.2f}  {100 * s.prop_unusually_cold:>6.2f}"
            f"  {statistic(s, by):.4f}"
        )
    return "\n".join(lines) + "\n"


__all__ = [
    "RANK_KEYS",
    "ORDERS",
    "statistic",
    "rank_years",
    "top_n",
    "bottom_n",
    "format_ranking",
]
