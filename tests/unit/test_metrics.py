from __future__ import annotations

import math

import pytest

from literacy_core.derive.metrics import (
    UNKNOWN,
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
from literacy_core.models.config_models import DEFAULT_SES_POVERTY_THRESHOLDS
from literacy_core.models.table import AggregateRecord, EntityRecord, NormalizedTable


def test_adjust_bands():
    assert adjust(250, "low", 18) == 232
    assert adjust(250, "middle", 18) == 250
    assert adjust(250, "Medium", 18) == 250
    assert adjust(250, "HIGH", 18) == 268


def test_adjust_missing_base_is_unknown():
    assert adjust(None, "low", 18) == UNKNOWN
    assert adjust(math.nan, "high", 18) == UNKNOWN


def test_adjust_unknown_category():
    with pytest.raises(ValueError):
        adjust(250, "upper", 18)


@pytest.mark.parametrize(
    "value,expected",
    [
        (150, "Below Basic"),
        (199.9, "Below Basic"),
        (200, "Basic"),
        (239.99, "Basic"),
        (240, "Proficient"),
        (280, "Advanced"),
        (500, "Advanced"),
        (None, UNKNOWN),
        (math.nan, UNKNOWN),
    ],
)
def test_bucket_default_levels(value, expected):
    assert bucket(value) == expected


def test_bucket_last_label_without_open_bound():
    assert bucket(99, ((10, "a"), (20, "b"))) == "b"
    assert bucket(5, ()) == UNKNOWN


def test_to_score():
    assert to_score(20, 320, 2) == 280
    assert to_score(0, 320, 2) == 320
    assert to_score(None, 320, 2) is None


def test_fit_exact_line():
    reg = fit([(1, 3), (2, 5), (3, 7)])
    assert reg is not None
    assert reg.slope == pytest.approx(2.0)
    assert reg.intercept == pytest.approx(1.0)
    assert reg.predict(10) == pytest.approx(21.0)


def test_fit_degenerate_inputs():
    assert fit([]) is None
    assert fit([(1, 2)]) is None
    assert fit([(4, 1), (4, 9)]) is None


def test_fit_ignores_missing_points():
    reg = fit([(1, 3), (None, 100), (2, 5), (3, math.nan)])
    assert reg is not None
    assert reg.slope == pytest.approx(2.0)


def test_normalize():
    assert normalize(150, 100, 200) == 0.5
    assert normalize(50, 100, 200) == 0.0
    assert normalize(250, 100, 200) == 1.0
    assert normalize(7, 3, 3) == 0.5
    assert normalize(None, 0, 1) is None


def test_select_extremes_ties_keep_input_order():
    rows = [("a", 3), ("b", 1), ("c", 1), ("d", 5), ("e", None)]
    low = select_extremes(rows, lambda r: r[1], 2)
    assert [r[0] for r in low] == ["b", "c"]
    high = select_extremes(rows, lambda r: r[1], 2, ascending=False)
    assert [r[0] for r in high] == ["d", "a"]
    assert len(select_extremes(rows, lambda r: r[1], 10)) == 4
    assert select_extremes(rows, lambda r: r[1], 0) == []


def test_ses_scores_from_table():
    table = NormalizedTable.build(
        {"CA": EntityRecord("CA", {2019: 215, 2022: 214})},
        AggregateRecord({2019: 220, 2022: 216}),
    )
    assert ses_scores(table, "CA", 18) == {
        "Low": 196,
        "Middle": 214,
        "High": 232,
        "NationalAverage": 216,
    }
    assert ses_scores(table, "CA", 18, 2019)["High"] == 233
    missing = ses_scores(table, "WY", 18)
    assert missing["Low"] is None and missing["NationalAverage"] == 216


@pytest.mark.parametrize(
    "poverty,expected",
    [(10.0, "High"), (15.0, "Middle"), (29.9, "Middle"), (30.0, "Low"), (None, UNKNOWN)],
)
def test_ses_category(poverty, expected):
    assert ses_category(poverty, DEFAULT_SES_POVERTY_THRESHOLDS) == expected


def test_category_stats():
    rows = [
        {"state": "AL", "level": "Basic", "rate": 80.0},
        {"state": "CA", "level": "Proficient", "rate": 90.0},
        {"state": "TX", "level": "Basic", "rate": None},
        {"state": "OH", "level": "Basic", "rate": 84.0},
    ]
    stats = category_stats(rows, lambda r: r["level"], lambda r: r["rate"], "Basic")
    assert stats["count"] == 3
    assert stats["total"] == 164.0
    assert stats["mean"] == 82.0
    assert [r["state"] for r in stats["members"]] == ["AL", "TX", "OH"]

    empty = category_stats(rows, lambda r: r["level"], lambda r: r["rate"], "Advanced")
    assert empty["count"] == 0 and empty["mean"] is None


def test_fit_through_origin():
    reg = fit([(1, 2), (2, 4), (3, 6)])
    assert reg is not None
    assert reg.slope == pytest.approx(2.0)
    assert reg.intercept == pytest.approx(0.0)
    assert fit([(5, 10)]) is None
    assert fit([(3, 1), (3, 5)]) is None


@pytest.mark.parametrize("x", [0.1, 0.3, 0.7, 1.1, 215.3])
def test_fit_rejects_equal_float_x(x):
    assert fit([(x, 1.0), (x, 2.0), (x, 3.0)]) is None


def test_adjust_non_string_category():
    with pytest.raises(ValueError):
        adjust(250, None, 18)  # type: ignore[arg-type]
