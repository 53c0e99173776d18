from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

"""Processing result models.

``ProcessingResult`` carries everything the SUMMARY line needs plus
per-source statistics.
"""


@dataclass(frozen=True)
class SourceStat:
    """Per-source processing statistics."""
    source: str  # source key
    file_name: str
    status: str  # success / failed
    entities: int  # states extracted
    years: tuple[int, ...]
    has_aggregate: bool
    warnings: int
    elapsed_seconds: float
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results for one run."""
    success_sources: int
    failed_sources: int
    total_entities: int
    all_years: tuple[int, ...]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    output_path: Path | None = None  # combined JSON, when written
    outcomes_path: Path | None = None
    failed_inputs: int = 0  # secondary inputs that could not be read
    error_log_path: Path | None = None
    source_stats: list[SourceStat] | None = None
