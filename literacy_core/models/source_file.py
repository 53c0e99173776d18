from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .table import NormalizedTable

"""SourceFile domain model and SourceStatus enum.

Processing context for one configured source through a run:
pending -> processing -> (success | failed).
"""


class SourceStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceFile:
    """Outcome of processing a single source."""
    key: str                              # source key from config
    path: Path
    partition: int | str | None = None
    start_time: datetime | None = None    # UTC
    end_time: datetime | None = None      # UTC
    status: SourceStatus = SourceStatus.PENDING
    table: NormalizedTable | None = None  # set on success
    warnings: int = 0                     # skipped rows / rejected cells
    error_type: str | None = None         # UPPER_SNAKE on failure
    error: str | None = None              # failure summary
