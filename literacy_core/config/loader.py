from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from literacy_core.models.config_models import (
    AppConfig,
    CacheSettings,
    DerivationSettings,
    ExtractionSettings,
    OutcomesConfig,
    SourceConfig,
    Thresholds,
)

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/sources.yml``)
- Validate against the bundled JSON schema (``config_schema.json``)
- Apply defaults for every optional section
- Return frozen dataclasses from ``literacy_core.models.config_models``
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/sources.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the
            config data violates the schema.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_thresholds(raw: list[list[Any]], name: str) -> Thresholds:
    """Turn ``[[bound, label], ...]`` into an ascending thresholds tuple.

    A null bound means "no upper bound" and must come last.
    """
    pairs: list[tuple[float, str]] = []
    for bound, label in raw:
        pairs.append((math.inf if bound is None else float(bound), str(label)))
    bounds = [b for b, _ in pairs]
    if bounds != sorted(bounds) or len(set(bounds)) != len(bounds):
        raise ConfigError(f"{name}: bounds must be strictly ascending, got {bounds}")
    return tuple(pairs)


def _build_extraction(raw: dict[str, Any]) -> ExtractionSettings:
    kwargs = dict(raw)
    if "label_tokens" in kwargs:
        kwargs["label_tokens"] = tuple(t.strip().lower() for t in kwargs["label_tokens"])
    settings = ExtractionSettings(**kwargs)
    if settings.year_min > settings.year_max:
        raise ConfigError(
            f"extraction: year_min {settings.year_min} is greater than year_max {settings.year_max}"
        )
    return settings


def _build_derivation(raw: dict[str, Any]) -> DerivationSettings:
    kwargs = dict(raw)
    for key in ("level_thresholds", "ses_poverty_thresholds"):
        if key in kwargs:
            kwargs[key] = parse_thresholds(kwargs[key], key)
    for key in ("ses_gap", "score_max", "score_slope"):
        if key in kwargs:
            kwargs[key] = float(kwargs[key])
    return DerivationSettings(**kwargs)


def _build_sources(raw: list[dict[str, Any]]) -> tuple[SourceConfig, ...]:
    sources = tuple(
        SourceConfig(
            key=s["key"],
            path=s["path"],
            sheet=s.get("sheet"),
            partition=s.get("partition"),
        )
        for s in raw
    )
    keys = [s.key for s in sources]
    dupes = sorted({k for k in keys if keys.count(k) > 1})
    if dupes:
        raise ConfigError(f"duplicate source keys: {dupes}")
    return sources


def _build_outcomes(raw: dict[str, Any] | None) -> OutcomesConfig | None:
    if raw is None:
        return None
    return OutcomesConfig(**raw)


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    cache_raw = data.get("cache") or {}
    return AppConfig(
        sources=_build_sources(data["sources"]),
        output_path=data.get("output_path"),
        dataset_label=data.get("dataset_label", "NAEP Reading Assessment"),
        extraction=_build_extraction(data.get("extraction") or {}),
        derivation=_build_derivation(data.get("derivation") or {}),
        cache=CacheSettings(
            directory=cache_raw.get("directory"),
            max_age_minutes=float(cache_raw.get("max_age_minutes", 1440.0)),
        ),
        outcomes=_build_outcomes(data.get("outcomes")),
    )
