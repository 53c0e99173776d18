from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from literacy_core.models.config_models import DEFAULT_LEVEL_THRESHOLDS, Thresholds
from literacy_core.models.table import LATEST, NormalizedTable

"""Derived metrics.

Pure functions over numbers or a NormalizedTable: no module state, no I/O,
identical inputs give identical outputs, so callers may memoize freely.
Missing input (None / NaN) yields None or the ``UNKNOWN`` sentinel instead
of an exception.
"""

__all__ = [
    "UNKNOWN",
    "Regression",
    "adjust",
    "bucket",
    "to_score",
    "fit",
    "normalize",
    "select_extremes",
    "ses_scores",
    "ses_category",
    "category_stats",
    "is_missing",
]

UNKNOWN = "Unknown"

SES_LOW = "Low"
SES_MIDDLE = "Middle"
SES_HIGH = "High"

_SES_ALIASES = {
    "low": SES_LOW,
    "middle": SES_MIDDLE,
    "medium": SES_MIDDLE,
    "high": SES_HIGH,
}

T = TypeVar("T")


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


def adjust(base_value: float | None, ses_category: str, gap: float) -> float | str:
    """SES-adjusted score: low -> base - gap, high -> base + gap, middle -> base.

    Returns ``UNKNOWN`` when ``base_value`` is missing.

    Raises:
        ValueError: unrecognized SES category.
    """
    category = _SES_ALIASES.get(ses_category.strip().lower()) if isinstance(ses_category, str) else None
    if category is None:
        raise ValueError(f"unknown SES category: {ses_category!r}")
    if is_missing(base_value):
        return UNKNOWN
    if category == SES_LOW:
        return base_value - gap  # type: ignore[operator]
    if category == SES_HIGH:
        return base_value + gap  # type: ignore[operator]
    return base_value  # type: ignore[return-value]


def bucket(value: float | None, thresholds: Thresholds = DEFAULT_LEVEL_THRESHOLDS) -> str:
    """Label of the first threshold whose upper bound is greater than ``value``.

    A value exactly on a bound belongs to the next bucket up
    (``bucket(200)`` with a 200 bound -> the label after it). Values beyond
    every bound get the last label; missing values get ``UNKNOWN``.
    """
    if is_missing(value) or not thresholds:
        return UNKNOWN
    ordered = sorted(thresholds, key=lambda t: t[0])
    for upper, label in ordered:
        if value < upper:  # type: ignore[operator]
            return label
    return ordered[-1][1]


def to_score(percent_below: float | None, score_max: float, slope: float) -> float | None:
    """Affine percent -> score transform: ``score_max - percent * slope``."""
    if is_missing(percent_below):
        return None
    return score_max - float(percent_below) * slope  # type: ignore[arg-type]


@dataclass(frozen=True)
class Regression:
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def fit(points: Iterable[tuple[float, float]]) -> Regression | None:
    """Least-squares line through ``(x, y)`` points.

    Points with a missing coordinate are ignored. Returns None with fewer
    than two points or when every x is equal.
    """
    pts = [(float(x), float(y)) for x, y in points if not is_missing(x) and not is_missing(y)]
    if len(pts) < 2 or all(x == pts[0][0] for x, _ in pts):
        return None
    n = len(pts)
    x_mean = sum(x for x, _ in pts) / n
    y_mean = sum(y for _, y in pts) / n
    num = sum((x - x_mean) * (y - y_mean) for x, y in pts)
    den = sum((x - x_mean) ** 2 for x, _ in pts)
    if den == 0:
        return None
    slope = num / den
    return Regression(slope=slope, intercept=y_mean - slope * x_mean)


def normalize(value: float | None, domain_min: float, domain_max: float) -> float | None:
    """Position of ``value`` in the domain, clamped to [0, 1].

    A degenerate domain (min == max) maps everything to 0.5.
    """
    if is_missing(value):
        return None
    if domain_max == domain_min:
        return 0.5
    pos = (value - domain_min) / (domain_max - domain_min)  # type: ignore[operator]
    return min(1.0, max(0.0, pos))


def select_extremes(
    records: Iterable[T],
    key_fn: Callable[[T], float | None],
    n: int,
    ascending: bool = True,
) -> list[T]:
    """First ``n`` records ordered by ``key_fn``; ties keep insertion order.

    Records whose key is missing are left out.
    """
    keyed = [r for r in records if not is_missing(key_fn(r))]
    # sorted() is stable in both directions
    return sorted(keyed, key=key_fn, reverse=not ascending)[: max(n, 0)]  # type: ignore[arg-type]


def ses_scores(
    table: NormalizedTable,
    entity_code: str,
    gap: float,
    year: int | str = LATEST,
) -> dict[str, float | None]:
    """Low / Middle / High bands around a state's score plus the national value.

    Bands are None when the state has no score for ``year``.
    """
    base = table.value(entity_code, year)
    national = table.aggregate_value(year)

    def band(category: str) -> float | None:
        v = adjust(base, category, gap)
        return None if v == UNKNOWN else v  # type: ignore[return-value]

    return {
        SES_LOW: band(SES_LOW),
        SES_MIDDLE: band(SES_MIDDLE),
        SES_HIGH: band(SES_HIGH),
        "NationalAverage": national,
    }


def ses_category(poverty_rate: float | None, thresholds: Thresholds) -> str:
    """SES label for a poverty rate, e.g. ``<15`` High, ``<30`` Middle, else Low."""
    return bucket(poverty_rate, thresholds)


def category_stats(
    records: Sequence[T],
    label_fn: Callable[[T], str],
    value_fn: Callable[[T], float | None],
    label: str,
) -> dict[str, Any]:
    """Count, total and mean of ``value_fn`` over the records carrying ``label``."""
    members = [r for r in records if label_fn(r) == label]
    values = [float(v) for v in (value_fn(r) for r in members) if not is_missing(v)]  # type: ignore[arg-type]
    return {
        "label": label,
        "count": len(members),
        "total": sum(values),
        "mean": (sum(values) / len(values)) if values else None,
        "members": members,
    }
