from __future__ import annotations

import logging
from pathlib import Path

from literacy_core.excel.extractor import ExtractionWarning, extract
from literacy_core.excel.lookup import STATE_NAME_TO_CODE
from literacy_core.excel.reader import read_grid
from literacy_core.models.config_models import CacheSettings, ExtractionSettings, SourceConfig
from literacy_core.models.table import NormalizedTable
from literacy_core.services.cache import JsonFileStore, MemoryStore, TimedCache

"""Source -> NormalizedTable, optionally memoized per source identity."""

__all__ = [
    "source_identity",
    "make_cache",
    "load_table",
]

logger = logging.getLogger(__name__)


def source_identity(source: SourceConfig) -> str:
    """Cache key: resolved path, sheet, size and mtime of the source file."""
    path = Path(source.path).resolve()
    stat = path.stat()
    return f"table:{path}:{source.sheet or ''}:{stat.st_size}:{stat.st_mtime_ns}"


def make_cache(settings: CacheSettings) -> TimedCache:
    store = JsonFileStore(Path(settings.directory)) if settings.directory else MemoryStore()
    return TimedCache(store, max_age_seconds=settings.max_age_minutes * 60)


def load_table(
    source: SourceConfig,
    settings: ExtractionSettings,
    cache: TimedCache | None = None,
    notes: list[ExtractionWarning] | None = None,
) -> NormalizedTable:
    """Read and extract one source.

    With a cache, the table's JSON form is stored under the source identity
    and reused while fresh; a changed file gets a new identity. Extraction
    errors propagate and are never cached.
    """
    path = Path(source.path)

    def compute() -> NormalizedTable:
        grid = read_grid(path, source.sheet)
        logger.debug("read source=%s rows=%d", source.key, len(grid))
        return extract(grid, STATE_NAME_TO_CODE, settings=settings, source=source.key, notes=notes)

    if cache is None:
        return compute()
    # Cached form is the JSON dict; year_columns are not part of it
    data = cache.get_or_compute(source_identity(source), lambda: compute().to_dict())
    return NormalizedTable.from_dict(data, source=source.key)
