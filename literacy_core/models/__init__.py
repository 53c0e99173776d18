"""Domain models for the literacy data tool."""

from .config_models import AppConfig, CacheSettings, DerivationSettings, ExtractionSettings, SourceConfig
from .table import AggregateRecord, EntityRecord, NormalizedTable, YearColumn

__all__ = [
    # Configuration models
    "AppConfig",
    "CacheSettings",
    "DerivationSettings",
    "ExtractionSettings",
    "SourceConfig",
    # Table models
    "AggregateRecord",
    "EntityRecord",
    "NormalizedTable",
    "YearColumn",
]
