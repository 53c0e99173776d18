from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from literacy_core.derive.metrics import ses_category, ses_scores
from literacy_core.models.config_models import DerivationSettings
from literacy_core.models.table import LATEST, NormalizedTable

"""Per-state context for the avatar narrative.

Everything the caller knows about the reader (state, grade, ...) comes in as
an argument; nothing is read from shared UI state.
"""

__all__ = [
    "StateContext",
    "build_state_context",
]


@dataclass(frozen=True)
class StateContext:
    state: str
    partition: int | str | None  # grade
    poverty_rate: float | None
    ses: str
    literacy_low_level_pct: float | None
    scores: dict[str, float | None]  # Low / Middle / High / NationalAverage


def build_state_context(
    state: str,
    partition: int | str | None,
    table: NormalizedTable,
    poverty_rates: Mapping[str, float],
    literacy_pct: Mapping[str, float],
    derivation: DerivationSettings,
    year: int | str = LATEST,
) -> StateContext:
    code = state.strip().upper()
    poverty = poverty_rates.get(code)
    return StateContext(
        state=code,
        partition=partition,
        poverty_rate=poverty,
        ses=ses_category(poverty, derivation.ses_poverty_thresholds),
        literacy_low_level_pct=literacy_pct.get(code),
        scores=ses_scores(table, code, derivation.ses_gap, year),
    )
