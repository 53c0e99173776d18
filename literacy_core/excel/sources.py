from __future__ import annotations

import logging
import math
import re
from collections.abc import Hashable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from literacy_core.excel.columns import resolve_columns
from literacy_core.excel.lookup import looks_like_code, state_code

"""Loaders for the secondary state-level sources.

These files already have a proper header row, so they are read with pandas
header handling and columns are matched through ``resolve_columns``:

- PIAAC literacy (``State``, ``Lit_P1`` = % adults at/below Level 1)
- high-school graduates per school year plus ACGR (``hsRate``)
- college enrollment (``State``, ``Total``)
- district poverty rates (``State``, ``Poverty_150``), averaged per state

Every loader returns plain ``{state code: value}`` mappings.
"""

__all__ = [
    "HighSchoolData",
    "parse_leading_number",
    "to_state_code",
    "load_piaac",
    "load_hs_graduates",
    "load_college_enrollment",
    "load_poverty_rates",
]

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_SCHOOL_YEAR = re.compile(r"(\d{4})\s*[–-]\s*(\d{2})")

STATE_ALIASES = ("STATE", "state", "State or jurisdiction", "Jurisdiction", "JURISDICTION")
PIAAC_COLUMNS = {"State": STATE_ALIASES, "Lit_P1": ("lit_p1", "LIT_P1")}
COLLEGE_COLUMNS = {"State": STATE_ALIASES, "Total": ("total", "TOTAL")}
HS_COLUMNS = {"State": STATE_ALIASES, "hsRate": ("hs_rate", "HSRate", "ACGR")}
POVERTY_COLUMNS = {"State": STATE_ALIASES, "Poverty_150": ("poverty_150",)}


@dataclass(frozen=True)
class HighSchoolData:
    counts: dict[str, float] = field(default_factory=dict)  # graduates in ``school_year``
    rates: dict[str, float] = field(default_factory=dict)  # ACGR, percent
    school_year: str | None = None  # column the counts came from


def parse_leading_number(value: Any) -> float | None:
    """First number found in a cell: ``"55.3 (1.2)"`` -> 55.3, ``"12,345"`` -> 12345."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else None
    m = _NUMBER.search(str(value).replace(",", ""))
    return float(m.group(0)) if m else None


def to_state_code(name: Any) -> str | None:
    """Full state name or USPS code -> USPS code."""
    if name is None or (isinstance(name, float) and pd.isna(name)):
        return None
    text = str(name).strip()
    if not text:
        return None
    code = state_code(text)
    if code is not None:
        return code
    return text.upper() if looks_like_code(text) else None


def _read_table(path: Path, sheet_hint: str | None = None) -> pd.DataFrame:
    if path.suffix.lower() in {".xlsx", ".xlsm", ".xls"}:
        with pd.ExcelFile(path) as xls:
            names = [str(n) for n in xls.sheet_names]
            chosen = names[0]
            if sheet_hint is not None:
                chosen = next((n for n in names if sheet_hint in n.lower()), names[0])
            return xls.parse(chosen, dtype=object)
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _by_state(df: pd.DataFrame, state_col: Hashable, value_col: Hashable, positive_only: bool) -> dict[str, float]:
    out: dict[str, float] = {}
    for name, raw in zip(df[state_col].tolist(), df[value_col].tolist(), strict=False):
        code = to_state_code(name)
        if code is None:
            continue
        value = parse_leading_number(raw)
        if value is None or (positive_only and value <= 0):
            continue
        out[code] = value
    return out


def load_piaac(path: Path) -> dict[str, float]:
    """State code -> percent of adults at or below literacy Level 1.

    For workbooks the first sheet whose name mentions "state" is used.
    """
    df = _read_table(path, sheet_hint="state")
    cols = resolve_columns(df.columns, PIAAC_COLUMNS)
    out = _by_state(df, cols["State"], cols["Lit_P1"], positive_only=False)
    logger.debug("piaac path=%s states=%d", path, len(out))
    return out


def _school_year_key(column: str) -> str | None:
    m = _SCHOOL_YEAR.search(column)
    return f"{m.group(1)}-{m.group(2)}" if m else None


def load_hs_graduates(path: Path, preferred_school_year: str = "2021-22") -> HighSchoolData:
    """Graduate counts for one school year plus the ACGR column when present.

    The ``preferred_school_year`` column (hyphen or en dash) is used when it
    exists, otherwise the latest school year in the header.
    """
    df = _read_table(path)
    cols = resolve_columns(df.columns, HS_COLUMNS, required=["State"])

    year_cols = {c: _school_year_key(str(c)) for c in df.columns if _school_year_key(str(c))}
    chosen: Hashable | None = next((c for c, k in year_cols.items() if k == preferred_school_year), None)
    if chosen is None and year_cols:
        chosen = max(year_cols, key=lambda c: int(year_cols[c][:4]))  # type: ignore[index]

    counts = _by_state(df, cols["State"], chosen, positive_only=False) if chosen is not None else {}
    rates = _by_state(df, cols["State"], cols["hsRate"], positive_only=False) if "hsRate" in cols else {}
    logger.debug("hs_graduates path=%s school_year=%s counts=%d rates=%d", path, chosen, len(counts), len(rates))
    return HighSchoolData(counts=counts, rates=rates, school_year=None if chosen is None else str(chosen))


def load_college_enrollment(path: Path) -> dict[str, float]:
    """State code -> percent of 18-24 year olds enrolled (positive values only)."""
    df = _read_table(path)
    cols = resolve_columns(df.columns, COLLEGE_COLUMNS)
    out = _by_state(df, cols["State"], cols["Total"], positive_only=True)
    if not out:
        logger.warning("no college enrollment rates parsed from %s", path)
    return out


def load_poverty_rates(path: Path) -> dict[str, float]:
    """Mean ``Poverty_150`` per state over the district rows."""
    df = _read_table(path)
    cols = resolve_columns(df.columns, POVERTY_COLUMNS)
    frame = pd.DataFrame(
        {
            "state": [to_state_code(v) for v in df[cols["State"]].tolist()],
            "rate": [parse_leading_number(v) for v in df[cols["Poverty_150"]].tolist()],
        }
    ).dropna()
    means = frame.groupby("state")["rate"].mean()
    return {str(k): float(v) for k, v in means.items()}
