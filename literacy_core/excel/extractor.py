from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from numbers import Real
from typing import Any

from literacy_core.excel.lookup import STATE_NAME_TO_CODE, fold_names, resolve_entity
from literacy_core.models.config_models import ExtractionSettings
from literacy_core.models.table import AggregateRecord, EntityRecord, NormalizedTable, YearColumn

"""Tabular extractor for state score exports.

Turns a loosely structured RawGrid (title rows, footnotes, units rows) into a
NormalizedTable of state code -> {year -> value} plus the national aggregate.

Header location tries three strategies in strict order; the first one that
finds a header wins and later ones are never consulted:

1. label-match: first cell of one of the first ``scan_rows`` rows contains a
   label token ("state", "jurisdiction") and is not itself an entity or the
   aggregate
2. year-density: a row with at least ``year_density_threshold`` year cells in
   columns 1..``year_density_max_column``
3. name-anchor: the first row naming a known state (or the aggregate), then
   the nearest row above it that holds a year cell

Per-row and per-cell problems never fail the extraction: unresolved names and
unparseable cells are skipped and reported through the optional ``notes``
list. Only structural problems raise.
"""

__all__ = [
    "ExtractionError",
    "ParseStructureError",
    "NoYearColumnsError",
    "ExtractionWarning",
    "UnresolvedEntityWarning",
    "MissingValueWarning",
    "HeaderLocation",
    "cell_text",
    "coerce_score",
    "make_year_pattern",
    "make_aggregate_pattern",
    "locate_header",
    "find_year_columns",
    "latest_year_column",
    "extract",
]

logger = logging.getLogger(__name__)

YearPattern = Callable[[str], "int | None"]
AggregatePattern = Callable[[str], bool]

_LEADING_NUMBER = re.compile(r"^(\d+\.?\d*)")

STRATEGY_LABEL = "label"
STRATEGY_YEAR_DENSITY = "year-density"
STRATEGY_NAME_ANCHOR = "name-anchor"


class ExtractionError(Exception):
    """Base class for structural extraction failures (fatal for one source)."""


class ParseStructureError(ExtractionError):
    """No strategy could locate the header row / first data row."""

    def __init__(self, message: str, previews: Sequence[str] = ()) -> None:
        self.previews = tuple(previews)
        if self.previews:
            message = f"{message}; first rows: {list(self.previews)}"
        super().__init__(message)


class NoYearColumnsError(ExtractionError):
    """A header row was located but none of its cells is a year."""

    def __init__(self, message: str, header_row: int, header_preview: Sequence[str] = ()) -> None:
        self.header_row = header_row
        self.header_preview = tuple(header_preview)
        super().__init__(message)


@dataclass(frozen=True)
class ExtractionWarning:
    row_index: int
    text: str


@dataclass(frozen=True)
class UnresolvedEntityWarning(ExtractionWarning):
    """Data row whose name is neither a known entity nor the aggregate."""


@dataclass(frozen=True)
class MissingValueWarning(ExtractionWarning):
    """Cell that failed numeric coercion; the (entity, year) pair is absent."""
    entity: str = ""
    year: int = 0


@dataclass(frozen=True)
class HeaderLocation:
    header_row: int
    data_start: int
    strategy: str


# Cell helpers ---------------------------------------------------------------

def cell_text(cell: Any) -> str:
    """Trimmed string form of a cell; integral floats lose their ``.0``."""
    if cell is None:
        return ""
    if isinstance(cell, float):
        if math.isnan(cell):
            return ""
        if cell.is_integer():
            return str(int(cell))
    return str(cell).strip()


def coerce_score(cell: Any) -> float | int | None:
    """Numeric value of a score cell, or None when it must be treated as missing.

    Numbers are taken as-is, strings contribute their leading decimal number
    ("215*" -> 215.0). NaN, infinite, zero and negative values are
    missing-data sentinels in these exports and are rejected.
    """
    if cell is None or isinstance(cell, bool):
        return None
    value: float | int
    if isinstance(cell, Real):
        value = cell  # type: ignore[assignment]
    elif isinstance(cell, str):
        m = _LEADING_NUMBER.match(cell.lstrip())
        if not m:
            return None
        value = float(m.group(1))
    else:
        return None
    if not math.isfinite(value):
        return None
    if value <= 0:
        return None
    return value


def make_year_pattern(year_min: int, year_max: int, allow_suffix: bool = True) -> YearPattern:
    """Build a predicate returning the year a header text denotes, or None.

    With ``allow_suffix`` a footnote marker after the four digits is tolerated
    ("2019¹", "2019 (revised)"), but not a fifth digit.
    """
    regex = re.compile(r"^(\d{4})(?!\d)" if allow_suffix else r"^(\d{4})$")

    def year_of(text: str) -> int | None:
        m = regex.match(text.strip())
        if not m:
            return None
        year = int(m.group(1))
        if year_min <= year <= year_max:
            return year
        return None

    return year_of


def make_aggregate_pattern(label: str) -> AggregatePattern:
    """Case- and whitespace-insensitive containment test for the aggregate label."""
    needle = " ".join(label.lower().split())

    def is_aggregate(text: str) -> bool:
        return needle in " ".join(text.lower().split())

    return is_aggregate


def _row(grid: Sequence[Sequence[Any]], i: int) -> Sequence[Any]:
    row = grid[i]
    return row if row is not None else ()


def _first_cell(row: Sequence[Any]) -> str:
    return cell_text(row[0]) if row else ""


def _previews(grid: Sequence[Sequence[Any]], n: int) -> list[str]:
    return [_first_cell(_row(grid, i)) for i in range(min(n, len(grid)))]


# Header location strategies -------------------------------------------------

def _locate_by_label(
    grid: Sequence[Sequence[Any]],
    name_to_code: Mapping[str, str],
    folded: Mapping[str, str],
    aggregate_pattern: AggregatePattern,
    settings: ExtractionSettings,
) -> HeaderLocation | None:
    tokens = [t.lower() for t in settings.label_tokens]
    if not tokens:
        return None
    match = all if settings.label_require_all else any
    offset = 2 if settings.units_row_after_header else 1
    for i in range(min(settings.scan_rows, len(grid))):
        first = _first_cell(_row(grid, i))
        if not first or not match(t in first.lower() for t in tokens):
            continue
        # "United States" contains "state" but is a data row
        if aggregate_pattern(first) or resolve_entity(first, name_to_code, folded) is not None:
            continue
        return HeaderLocation(i, i + offset, STRATEGY_LABEL)
    return None


def _locate_by_year_density(
    grid: Sequence[Sequence[Any]], year_pattern: YearPattern, settings: ExtractionSettings
) -> HeaderLocation | None:
    for i in range(min(settings.scan_rows, len(grid))):
        row = _row(grid, i)
        count = sum(
            1
            for j in range(1, min(len(row), settings.year_density_max_column))
            if year_pattern(cell_text(row[j])) is not None
        )
        if count >= settings.year_density_threshold:
            return HeaderLocation(i, i + 1, STRATEGY_YEAR_DENSITY)
    return None


def _locate_by_name_anchor(
    grid: Sequence[Sequence[Any]],
    name_to_code: Mapping[str, str],
    folded: Mapping[str, str],
    aggregate_pattern: AggregatePattern,
    year_pattern: YearPattern,
    settings: ExtractionSettings,
) -> HeaderLocation | None:
    for j in range(min(settings.backscan_rows, len(grid))):
        first = _first_cell(_row(grid, j))
        if not first:
            continue
        if resolve_entity(first, name_to_code, folded) is None and not aggregate_pattern(first):
            continue
        # Walk upward to the nearest row holding a year cell
        for h in range(j - 1, max(0, j - settings.backscan_depth) - 1, -1):
            if any(year_pattern(cell_text(c)) is not None for c in _row(grid, h)):
                return HeaderLocation(h, j, STRATEGY_NAME_ANCHOR)
    return None


def locate_header(
    grid: Sequence[Sequence[Any]],
    name_to_code: Mapping[str, str],
    aggregate_pattern: AggregatePattern,
    year_pattern: YearPattern,
    settings: ExtractionSettings,
) -> HeaderLocation:
    """Run the strategies in order and return the first hit.

    Raises:
        ParseStructureError: no strategy located a header.
    """
    folded = fold_names(name_to_code)
    loc = _locate_by_label(grid, name_to_code, folded, aggregate_pattern, settings)
    if loc is None:
        loc = _locate_by_year_density(grid, year_pattern, settings)
    if loc is None:
        loc = _locate_by_name_anchor(grid, name_to_code, folded, aggregate_pattern, year_pattern, settings)
    if loc is None:
        raise ParseStructureError(
            "could not locate header row or data start row",
            _previews(grid, settings.preview_rows),
        )
    logger.debug(
        "header located strategy=%s header_row=%d data_start=%d",
        loc.strategy,
        loc.header_row,
        loc.data_start,
    )
    return loc


def find_year_columns(
    header_row: Sequence[Any], year_pattern: YearPattern, header_index: int = -1
) -> tuple[YearColumn, ...]:
    """Year columns of a header row, deduplicated by year, most recent first.

    Column 0 holds entity names and is never a year column. When a year
    appears twice the leftmost column wins.

    Raises:
        NoYearColumnsError: the header has no year cell.
    """
    by_year: dict[int, YearColumn] = {}
    for j in range(1, len(header_row)):
        year = year_pattern(cell_text(header_row[j]))
        if year is not None and year not in by_year:
            by_year[year] = YearColumn(column_index=j, year=year)
    if not by_year:
        preview = [cell_text(c) for c in header_row]
        raise NoYearColumnsError(
            f"no year columns in header row {header_index}: {preview}", header_index, preview
        )
    return tuple(sorted(by_year.values(), key=lambda yc: yc.year, reverse=True))


def latest_year_column(year_columns: Sequence[YearColumn]) -> YearColumn:
    """Most recent year column (index 0 of the descending order)."""
    return sorted(year_columns, key=lambda yc: yc.year, reverse=True)[0]


# Extraction -----------------------------------------------------------------

def _row_values(
    row: Sequence[Any],
    year_columns: Sequence[YearColumn],
    row_index: int,
    entity: str,
    notes: list[ExtractionWarning] | None,
) -> dict[int, float]:
    values: dict[int, float] = {}
    for yc in year_columns:
        cell = row[yc.column_index] if yc.column_index < len(row) else None
        score = coerce_score(cell)
        if score is not None:
            values[yc.year] = score
        elif notes is not None and cell_text(cell):
            notes.append(MissingValueWarning(row_index, cell_text(cell), entity=entity, year=yc.year))
    return values


def extract(
    grid: Sequence[Sequence[Any]],
    name_to_code: Mapping[str, str] = STATE_NAME_TO_CODE,
    aggregate_pattern: AggregatePattern | None = None,
    year_pattern: YearPattern | None = None,
    settings: ExtractionSettings | None = None,
    *,
    source: str | None = None,
    notes: list[ExtractionWarning] | None = None,
) -> NormalizedTable:
    """Extract a NormalizedTable from a raw grid.

    Args:
        grid: row-major cells (number, string or None)
        name_to_code: full entity name -> short code
        aggregate_pattern: predicate marking the aggregate row; defaults to
            ``settings.aggregate_label`` containment
        year_pattern: header text -> year or None; defaults to the
            ``settings`` year range
        settings: extraction knobs (defaults to ``ExtractionSettings()``)
        source: label stored on the table, used in log lines
        notes: when given, non-fatal warnings are appended to it

    Raises:
        ParseStructureError: header / data start not located.
        NoYearColumnsError: header located but without year columns.
    """
    settings = settings or ExtractionSettings()
    if aggregate_pattern is None:
        aggregate_pattern = make_aggregate_pattern(settings.aggregate_label)
    if year_pattern is None:
        year_pattern = make_year_pattern(settings.year_min, settings.year_max, settings.allow_year_suffix)

    loc = locate_header(grid, name_to_code, aggregate_pattern, year_pattern, settings)
    year_columns = find_year_columns(_row(grid, loc.header_row), year_pattern, loc.header_row)
    folded = fold_names(name_to_code)

    records: dict[str, dict[int, float]] = {}
    aggregate: dict[int, float] | None = None
    unresolved = 0

    for i in range(loc.data_start, len(grid)):
        row = _row(grid, i)
        name = _first_cell(row)
        if not name:
            continue

        if aggregate_pattern(name):
            values = _row_values(row, year_columns, i, "aggregate", notes)
            if aggregate is None:
                aggregate = {}
            for year, v in values.items():
                aggregate.setdefault(year, v)
            continue

        code = resolve_entity(name, name_to_code, folded)
        if code is None:
            unresolved += 1
            if notes is not None:
                notes.append(UnresolvedEntityWarning(i, name))
            continue

        values = _row_values(row, year_columns, i, code, notes)
        if not values:
            continue
        merged = records.setdefault(code, {})
        for year, v in values.items():
            merged.setdefault(year, v)

    table = NormalizedTable.build(
        records={code: EntityRecord(code, vals) for code, vals in records.items()},
        aggregate=AggregateRecord(aggregate) if aggregate else None,
        year_columns=year_columns,
        source=source,
    )
    logger.debug(
        "extracted source=%s entities=%d years=%s aggregate=%s unresolved_rows=%d",
        source,
        len(table.records),
        list(table.years),
        table.aggregate is not None,
        unresolved,
    )
    return table
