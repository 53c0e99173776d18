from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_excel
from literacy_core.excel.columns import MissingColumnsError
from literacy_core.excel.sources import (
    load_college_enrollment,
    load_hs_graduates,
    load_piaac,
    load_poverty_rates,
    parse_leading_number,
    to_state_code,
)


def _csv(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "value,expected",
    [
        ("55.3 (1.2)", 55.3),
        ("12,345", 12345.0),
        ("-2.5", -2.5),
        (42, 42.0),
        ("‡", None),
        ("", None),
        (None, None),
        (float("nan"), None),
        (float("inf"), None),
    ],
)
def test_parse_leading_number(value, expected):
    assert parse_leading_number(value) == expected


def test_to_state_code():
    assert to_state_code("Texas") == "TX"
    assert to_state_code("tx") == "TX"
    assert to_state_code(" New York ") == "NY"
    assert to_state_code("Guam") is None
    assert to_state_code(None) is None


def test_load_piaac_csv(temp_workdir: Path):
    p = _csv(
        temp_workdir / "piaac.csv",
        "State,Lit_P1,Lit_P1_SE\nAlabama,23.5,1.1\nAlaska,18,0.9\nNational,21,0.5\n",
    )
    assert load_piaac(p) == {"AL": 23.5, "AK": 18.0}


def test_load_piaac_workbook_uses_state_sheet(temp_workdir: Path):
    p = make_excel(
        temp_workdir / "piaac.xlsx",
        {
            "Counties": [["County", "Lit_P1"], ["Autauga", 30]],
            "State estimates": [["STATE", "lit_p1"], ["Ohio", 19.2]],
        },
    )
    assert load_piaac(p) == {"OH": 19.2}


def test_load_piaac_missing_column(temp_workdir: Path):
    p = _csv(temp_workdir / "bad.csv", "State,Score\nOhio,1\n")
    with pytest.raises(MissingColumnsError):
        load_piaac(p)


def test_load_hs_graduates_prefers_configured_year(temp_workdir: Path):
    p = _csv(
        temp_workdir / "hs.csv",
        "State,2020-21,2021–22,2022-23,hsRate\n"
        "Alabama,\"48,000\",\"49,100\",\"50,200\",90\n"
        "Alaska,7000,7100,7200,\n",
    )
    hs = load_hs_graduates(p)
    assert hs.school_year == "2021–22"
    assert hs.counts == {"AL": 49100.0, "AK": 7100.0}
    assert hs.rates == {"AL": 90.0}


def test_load_hs_graduates_falls_back_to_latest(temp_workdir: Path):
    p = _csv(temp_workdir / "hs.csv", "State,2018-19,2019-20\nOhio,100,120\n")
    hs = load_hs_graduates(p, preferred_school_year="2021-22")
    assert hs.school_year == "2019-20"
    assert hs.counts == {"OH": 120.0}
    assert hs.rates == {}


def test_load_college_enrollment_positive_only(temp_workdir: Path):
    p = _csv(
        temp_workdir / "college.csv",
        "STATE,total,Male\nOhio,41.2,39\nUtah,0,1\nIowa,‡,2\n",
    )
    assert load_college_enrollment(p) == {"OH": 41.2}


def test_load_college_enrollment_no_values(temp_workdir: Path):
    p = _csv(temp_workdir / "college.csv", "State,Total\nOhio,\n")
    assert load_college_enrollment(p) == {}


def test_load_poverty_rates_mean_per_state(temp_workdir: Path):
    p = _csv(
        temp_workdir / "poverty.csv",
        "District,State,Poverty_150\nA,Ohio,10\nB,Ohio,20\nC,TX,33.5\nD,Nowhere,50\nE,Ohio,n/a\n",
    )
    assert load_poverty_rates(p) == {"OH": 15.0, "TX": 33.5}
