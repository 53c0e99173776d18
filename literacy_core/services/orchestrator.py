from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..excel.columns import MissingColumnsError
from ..excel.extractor import ExtractionWarning, NoYearColumnsError, ParseStructureError
from ..excel.reader import SheetNotFoundError
from ..excel.sources import (
    HighSchoolData,
    load_college_enrollment,
    load_hs_graduates,
    load_piaac,
    load_poverty_rates,
)
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import AppConfig, SourceConfig
from ..models.processing_result import ProcessingResult, SourceStat
from ..models.source_file import SourceFile, SourceStatus
from ..models.table import NormalizedTable
from ..services.cache import TimedCache
from .outcomes import SecondaryInputs, outcomes_document, write_outcomes
from .progress import ProgressTracker
from .tables import load_table, make_cache

logger = logging.getLogger(__name__)

"""Run orchestration.

Processes every configured source independently: a source that cannot be
read or whose structure cannot be located is reported failed (and written
to the error log) without affecting the others. Successful tables are
combined into one JSON document::

    {
      "sources": {"grade4": {"partition": 4, "table": {...}}, ...},
      "allYears": [...],
      "metadata": {"generated": "...Z", "source": "...", "partitions": [4, 8]}
    }

When an ``outcomes`` section is configured, the secondary state-level inputs
are loaded the same way (a failing input is logged and left empty) and the
outcomes document is written next to it.
"""

__all__ = [
    "ProcessingError",
    "process_all",
    "write_combined",
    "read_combined",
]

FILE_LEVEL_ROW = -1


class ProcessingError(Exception):
    """Fatal run-level error (nothing could be processed)."""


def _classify(exc: Exception) -> tuple[str, int]:
    if isinstance(exc, ParseStructureError):
        return "PARSE_STRUCTURE_ERROR", FILE_LEVEL_ROW
    if isinstance(exc, NoYearColumnsError):
        return "NO_YEAR_COLUMNS", exc.header_row
    if isinstance(exc, SheetNotFoundError):
        return "SHEET_NOT_FOUND", FILE_LEVEL_ROW
    if isinstance(exc, MissingColumnsError):
        return "MISSING_COLUMNS", FILE_LEVEL_ROW
    if isinstance(exc, (OSError, ValueError)):
        return "READ_ERROR", FILE_LEVEL_ROW
    return "UNEXPECTED_ERROR", FILE_LEVEL_ROW


def _record_failure(key: str, path: Path, exc: Exception, error_log: ErrorLogBuffer) -> str:
    error_type, row = _classify(exc)
    logger.error("source=%s file=%s %s: %s", key, path.name, error_type, exc)
    error_log.append(
        ErrorRecord.create(
            source=key,
            file=path.name,
            row=row,
            error_type=error_type,
            message=str(exc),
        )
    )
    return error_type


def _process_single_source(
    source: SourceConfig,
    config: AppConfig,
    cache: TimedCache | None,
    error_log: ErrorLogBuffer,
) -> SourceFile:
    """Read and extract one source, converting failures into a FAILED result."""
    start_time = datetime.now(UTC)
    path = Path(source.path)
    notes: list[ExtractionWarning] = []
    try:
        if not path.exists():
            raise FileNotFoundError(f"source file not found: {path}")
        table = load_table(source, config.extraction, cache=cache, notes=notes)
    except Exception as e:
        error_type = _record_failure(source.key, path, e, error_log)
        return SourceFile(
            key=source.key,
            path=path,
            partition=source.partition,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=SourceStatus.FAILED,
            error_type=error_type,
            error=str(e),
        )

    if notes:
        logger.debug("source=%s skipped_rows_or_cells=%d", source.key, len(notes))
    if not table.records:
        logger.warning("source=%s produced no state records", source.key)
    logger.info(
        "source=%s states=%d years=%s national=%s",
        source.key,
        len(table.records),
        list(table.years),
        "yes" if table.aggregate is not None else "no",
    )
    return SourceFile(
        key=source.key,
        path=path,
        partition=source.partition,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=SourceStatus.SUCCESS,
        table=table,
        warnings=len(notes),
    )


def _load_secondary(config: AppConfig, error_log: ErrorLogBuffer) -> tuple[SecondaryInputs, int]:
    """Read every configured secondary input; returns the inputs and the failure count."""
    outcomes = config.outcomes
    loaders: dict[str, Callable[[Path], Any]] = {
        "piaac": load_piaac,
        "hs_graduates": lambda p: load_hs_graduates(p, config.derivation.preferred_school_year),
        "college_enrollment": load_college_enrollment,
        "poverty": load_poverty_rates,
    }
    loaded: dict[str, Any] = {}
    failed = 0
    for name, loader in loaders.items():
        raw = getattr(outcomes, name)
        if raw is None:
            continue
        path = Path(raw)
        try:
            if not path.exists():
                raise FileNotFoundError(f"source file not found: {path}")
            loaded[name] = loader(path)
        except Exception as e:
            _record_failure(name, path, e, error_log)
            failed += 1
            continue
        logger.info("input=%s file=%s loaded", name, path.name)
    inputs = SecondaryInputs(
        literacy_pct=loaded.get("piaac", {}),
        hs=loaded.get("hs_graduates", HighSchoolData()),
        college=loaded.get("college_enrollment", {}),
        poverty=loaded.get("poverty", {}),
        loaded=tuple(loaded),
    )
    return inputs, failed


def write_combined(
    path: Path,
    tables: Mapping[str, NormalizedTable],
    partitions: Mapping[str, Any] | None = None,
    dataset_label: str = "NAEP Reading Assessment",
) -> Path:
    """Write successful tables as one combined JSON document."""
    partitions = partitions or {}
    all_years = sorted({y for t in tables.values() for y in t.years})
    doc = {
        "sources": {
            key: {"partition": partitions.get(key), "table": table.to_dict()}
            for key, table in tables.items()
        },
        "allYears": all_years,
        "metadata": {
            "generated": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "source": dataset_label,
            "partitions": [partitions.get(k) for k in tables],
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc, ensure_ascii=False, allow_nan=False, indent=2), encoding="utf-8")
    return path


def read_combined(path: Path) -> dict[str, NormalizedTable]:
    """Tables from a document written by ``write_combined``, keyed by source."""
    doc = json.loads(path.read_text(encoding="utf-8"))
    return {
        key: NormalizedTable.from_dict(entry["table"], source=key)
        for key, entry in doc["sources"].items()
    }


def process_all(config: AppConfig, error_log: ErrorLogBuffer | None = None) -> ProcessingResult:
    """Extract every configured source and write the combined document.

    Raises:
        ProcessingError: the configuration lists no sources.
    """
    if not config.sources:
        raise ProcessingError("no sources configured")

    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    cache = make_cache(config.cache) if config.cache.directory else None

    results: list[SourceFile] = []
    with ProgressTracker(len(config.sources)) as progress:
        for source in config.sources:
            progress.start_source(source.key)
            result = _process_single_source(source, config, cache, error_log)
            results.append(result)
            progress.finish_source(success=result.status == SourceStatus.SUCCESS)
            progress.set_postfix(
                success=sum(r.status == SourceStatus.SUCCESS for r in results),
                failed=sum(r.status == SourceStatus.FAILED for r in results),
            )

    tables = {r.key: r.table for r in results if r.table is not None}
    output_path: Path | None = None
    if tables and config.output_path:
        output_path = write_combined(
            Path(config.output_path),
            tables,
            partitions={s.key: s.partition for s in config.sources},
            dataset_label=config.dataset_label,
        )
        logger.info("wrote %s", output_path)

    outcomes_path: Path | None = None
    failed_inputs = 0
    if config.outcomes is not None:
        inputs, failed_inputs = _load_secondary(config, error_log)
        outcomes_path = write_outcomes(
            Path(config.outcomes.output_path),
            outcomes_document(inputs, tables, config.derivation),
        )
        logger.info("wrote %s", outcomes_path)

    error_log_path = error_log.flush()
    if error_log_path is not None:
        logger.info("error log: %s", error_log_path)

    end_time = datetime.now(UTC)
    stats = [
        SourceStat(
            source=r.key,
            file_name=r.path.name,
            status=r.status.value,
            entities=len(r.table.records) if r.table else 0,
            years=r.table.years if r.table else (),
            has_aggregate=bool(r.table and r.table.aggregate is not None),
            warnings=r.warnings,
            elapsed_seconds=(
                (r.end_time - r.start_time).total_seconds() if r.start_time and r.end_time else 0.0
            ),
            error=r.error,
        )
        for r in results
    ]
    return ProcessingResult(
        success_sources=len(tables),
        failed_sources=len(results) - len(tables),
        total_entities=sum(s.entities for s in stats),
        all_years=tuple(sorted({y for t in tables.values() for y in t.years})),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        output_path=output_path,
        outcomes_path=outcomes_path,
        failed_inputs=failed_inputs,
        error_log_path=error_log_path,
        source_stats=stats,
    )
