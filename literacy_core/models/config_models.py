from __future__ import annotations

import math
from dataclasses import dataclass, field

"""Config dataclasses for the literacy data tool.

These are the typed, frozen views of ``config/sources.yml`` produced by
``literacy_core.config.loader``. Defaults mirror the layout of the NAEP
state score exports.
"""

# (upper_bound, label) pairs, ascending by bound
Thresholds = tuple[tuple[float, str], ...]

DEFAULT_LEVEL_THRESHOLDS: Thresholds = (
    (200.0, "Below Basic"),
    (240.0, "Basic"),
    (280.0, "Proficient"),
    (math.inf, "Advanced"),
)

# Higher poverty rate -> lower SES
DEFAULT_SES_POVERTY_THRESHOLDS: Thresholds = (
    (15.0, "High"),
    (30.0, "Middle"),
    (math.inf, "Low"),
)


@dataclass(frozen=True)
class ExtractionSettings:
    """Knobs for the header-locating heuristics and row classification."""
    scan_rows: int = 15  # rows inspected by label-match and year-density
    label_tokens: tuple[str, ...] = ("state", "jurisdiction")
    label_require_all: bool = False  # True: every token must appear in the first cell
    units_row_after_header: bool = False  # data starts at header + 2 when True
    year_density_threshold: int = 3
    year_density_max_column: int = 15
    backscan_rows: int = 30
    backscan_depth: int = 5
    year_min: int = 1990
    year_max: int = 2025
    allow_year_suffix: bool = True  # accept "2019¹" / "2019 (rev)" style headers
    aggregate_label: str = "United States"
    preview_rows: int = 10


@dataclass(frozen=True)
class DerivationSettings:
    """Constants used by the derived-metric functions."""
    ses_gap: float = 18.0
    score_max: float = 320.0
    score_slope: float = 2.0
    level_thresholds: Thresholds = DEFAULT_LEVEL_THRESHOLDS
    ses_poverty_thresholds: Thresholds = DEFAULT_SES_POVERTY_THRESHOLDS
    preferred_school_year: str = "2021-22"


@dataclass(frozen=True)
class CacheSettings:
    directory: str | None = None  # None -> in-memory only
    max_age_minutes: float = 1440.0


@dataclass(frozen=True)
class OutcomesConfig:
    """Secondary state-level inputs joined into the outcomes document.

    Each input is optional; an omitted one leaves its fields null.
    """
    output_path: str
    piaac: str | None = None
    hs_graduates: str | None = None
    college_enrollment: str | None = None
    poverty: str | None = None


@dataclass(frozen=True)
class SourceConfig:
    """One raw score table to extract (one spreadsheet, one sheet)."""
    key: str  # output key, e.g. "grade4"
    path: str
    sheet: str | None = None  # None -> first sheet
    partition: int | str | None = None  # grade-like partition key


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    sources: tuple[SourceConfig, ...]
    output_path: str | None = None
    dataset_label: str = "NAEP Reading Assessment"
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    derivation: DerivationSettings = field(default_factory=DerivationSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    outcomes: OutcomesConfig | None = None  # None -> no outcomes document
