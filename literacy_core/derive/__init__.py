"""Derived metrics computed from normalized tables."""

from .metrics import (
    UNKNOWN,
    Regression,
    adjust,
    bucket,
    category_stats,
    fit,
    normalize,
    select_extremes,
    ses_category,
    ses_scores,
    to_score,
)

__all__ = [
    "UNKNOWN",
    "Regression",
    "adjust",
    "bucket",
    "category_stats",
    "fit",
    "normalize",
    "select_extremes",
    "ses_category",
    "ses_scores",
    "to_score",
]
