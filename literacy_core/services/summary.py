from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format::

    SUMMARY sources={total}/{total} success={success} failed={failed}
    entities={entities} years={first}-{last}|none elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny durations
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(total_sources: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_sources=2, failed_sources=0, total_entities=102,
        ...     all_years=(1998, 2022), start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(2, result)
        'SUMMARY sources=2/2 success=2 failed=0 entities=102 years=1998-2022 elapsed_sec=2'
    """
    years = f"{result.all_years[0]}-{result.all_years[-1]}" if result.all_years else "none"
    return (
        f"SUMMARY sources={total_sources}/{total_sources} "
        f"success={result.success_sources} "
        f"failed={result.failed_sources} "
        f"entities={result.total_entities} "
        f"years={years} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
