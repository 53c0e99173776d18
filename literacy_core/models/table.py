from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

"""Normalized table model.

A NormalizedTable is built once per raw source by the extractor and is
read-only afterwards: mappings are wrapped in ``MappingProxyType`` and the
dataclasses are frozen, so a table can be shared by reference between
consumers and caches.

JSON form (``to_dict``)::

    {
      "years": [2019, 2022],
      "records": {"CA": {"2019": 215, "2022": 219}},
      "aggregate": {"2019": 220, "2022": 222}   # or null
    }
"""

__all__ = [
    "AGGREGATE_KEY",
    "LATEST",
    "YearColumn",
    "EntityRecord",
    "AggregateRecord",
    "NormalizedTable",
]

AGGREGATE_KEY = "national"
LATEST = "latest"

YearSelector = int | str


def _frozen_values(values: Mapping[int, float]) -> Mapping[int, float]:
    return MappingProxyType({int(y): values[y] for y in sorted(values)})


@dataclass(frozen=True)
class YearColumn:
    """A header column recognized as a calendar year."""
    column_index: int
    year: int


@dataclass(frozen=True)
class EntityRecord:
    entity_code: str  # USPS code
    values_by_year: Mapping[int, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values_by_year", _frozen_values(self.values_by_year))


@dataclass(frozen=True)
class AggregateRecord:
    """Nationwide summary row, kept apart from the per-state records."""
    values_by_year: Mapping[int, float]
    label: str = AGGREGATE_KEY

    def __post_init__(self) -> None:
        object.__setattr__(self, "values_by_year", _frozen_values(self.values_by_year))


@dataclass(frozen=True)
class NormalizedTable:
    records: Mapping[str, EntityRecord]
    aggregate: AggregateRecord | None
    years: tuple[int, ...]
    # Descriptive only: where the numbers came from. Not serialized.
    year_columns: tuple[YearColumn, ...] = field(default=(), compare=False)
    source: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))
        object.__setattr__(self, "years", tuple(self.years))

    @staticmethod
    def build(
        records: Mapping[str, EntityRecord],
        aggregate: AggregateRecord | None,
        year_columns: tuple[YearColumn, ...] = (),
        source: str | None = None,
    ) -> NormalizedTable:
        """Construct a table, deriving ``years`` from the values present."""
        years: set[int] = set()
        for rec in records.values():
            years.update(rec.values_by_year)
        if aggregate is not None:
            years.update(aggregate.values_by_year)
        return NormalizedTable(
            records=records,
            aggregate=aggregate,
            years=tuple(sorted(years)),
            year_columns=year_columns,
            source=source,
        )

    # Queries -----------------------------------------------------------

    def latest_year(self) -> int | None:
        return self.years[-1] if self.years else None

    def _resolve_year(self, year: YearSelector) -> int | None:
        if year == LATEST:
            return self.latest_year()
        if isinstance(year, str):
            raise ValueError(f"unknown year selector: {year!r}")
        return int(year)

    def value(self, entity_code: str, year: YearSelector = LATEST) -> float | None:
        """Value for ``(entity_code, year)``; ``year`` may be ``"latest"``."""
        rec = self.records.get(entity_code)
        resolved = self._resolve_year(year)
        if rec is None or resolved is None:
            return None
        return rec.values_by_year.get(resolved)

    def aggregate_value(self, year: YearSelector = LATEST) -> float | None:
        resolved = self._resolve_year(year)
        if self.aggregate is None or resolved is None:
            return None
        return self.aggregate.values_by_year.get(resolved)

    def entity_codes(self) -> list[str]:
        return list(self.records)

    # Serialization -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "years": list(self.years),
            "records": {
                code: {str(y): v for y, v in rec.values_by_year.items()}
                for code, rec in self.records.items()
            },
            "aggregate": (
                {str(y): v for y, v in self.aggregate.values_by_year.items()}
                if self.aggregate is not None
                else None
            ),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any], source: str | None = None) -> NormalizedTable:
        records = {
            code: EntityRecord(code, {int(y): v for y, v in values.items()})
            for code, values in data["records"].items()
        }
        agg_raw = data.get("aggregate")
        aggregate = (
            AggregateRecord({int(y): v for y, v in agg_raw.items()})
            if agg_raw is not None
            else None
        )
        return NormalizedTable(
            records=records,
            aggregate=aggregate,
            years=tuple(int(y) for y in data["years"]),
            source=source,
        )

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, allow_nan=False, **kwargs)

    @staticmethod
    def from_json(text: str, source: str | None = None) -> NormalizedTable:
        return NormalizedTable.from_dict(json.loads(text), source=source)
