from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from literacy_core.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from literacy_core.excel.extractor import (
    ExtractionError,
    cell_text,
    find_year_columns,
    locate_header,
    make_aggregate_pattern,
    make_year_pattern,
)
from literacy_core.excel.lookup import STATE_NAME_TO_CODE
from literacy_core.excel.reader import SheetNotFoundError, read_grid
from literacy_core.logging.init import log_summary, set_debug, setup_logging
from literacy_core.models.config_models import AppConfig
from literacy_core.services.orchestrator import ProcessingError, process_all
from literacy_core.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- load ``.env`` (may set LITERACY_CORE_CONFIG)
- load and validate the YAML config
- extract every source, write the combined JSON, print the SUMMARY line

Exit codes: 0 all sources extracted, 2 at least one source failed,
1 fatal (config error, nothing to process).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_ENV_VAR = "LITERACY_CORE_CONFIG"


def _load_env_file(path: Path) -> None:
    """Load ``.env`` without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Extract state score tables from spreadsheet exports")
    p.add_argument("--config", type=Path, default=None, help="Path to sources YAML")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print located header, year columns and first rows per source, then exit",
    )
    return p.parse_args(argv)


def _resolve_config_path(arg: Path | None) -> Path:
    if arg is not None:
        return arg
    env = os.getenv(CONFIG_ENV_VAR)
    return Path(env) if env else DEFAULT_CONFIG_PATH


def _inspect_data(cfg: AppConfig) -> int:
    settings = cfg.extraction
    year_pattern = make_year_pattern(settings.year_min, settings.year_max, settings.allow_year_suffix)
    aggregate_pattern = make_aggregate_pattern(settings.aggregate_label)
    failed = 0
    for source in cfg.sources:
        print(f"SOURCE: {source.key} ({source.path})")
        try:
            grid = read_grid(Path(source.path), source.sheet)
            loc = locate_header(grid, STATE_NAME_TO_CODE, aggregate_pattern, year_pattern, settings)
            year_cols = find_year_columns(grid[loc.header_row], year_pattern, loc.header_row)
        except (OSError, ValueError, SheetNotFoundError, ExtractionError) as e:
            print(f"  error={e}")
            failed += 1
            continue
        print(f"  header_row={loc.header_row} data_start={loc.data_start} strategy={loc.strategy}")
        print(f"  years={[yc.year for yc in year_cols]}")
        for row in grid[loc.data_start:loc.data_start + 3]:
            print(f"    {[cell_text(c) for c in row]}")
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when no list was given (cli main([]) in tests)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    config_path = _resolve_config_path(args.config)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    logger.info(f"Extracting {len(cfg.sources)} source(s) using {config_path}")
    try:
        result = process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    total = result.success_sources + result.failed_sources
    summary_line = render_summary_line(total, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_sources > 0 or result.failed_inputs > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
