from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..derive.metrics import ses_category, ses_scores
from ..derive.outcomes import build_outcomes
from ..excel.sources import HighSchoolData
from ..models.config_models import DerivationSettings
from ..models.table import NormalizedTable

"""Outcomes document: one entry per state joining literacy, graduation,
enrollment and poverty, plus SES bands around each extracted score table::

    {
      "states": [{"state": "AL", ..., "ses": "Middle",
                  "ses_scores": {"grade4": {"Low": ..., ...}}}, ...],
      "metadata": {"generated": "...Z", "school_year": "2021-22",
                   "inputs": ["piaac", ...], "sources": ["grade4", ...]}
    }
"""

__all__ = [
    "SecondaryInputs",
    "outcomes_document",
    "write_outcomes",
]


@dataclass(frozen=True)
class SecondaryInputs:
    literacy_pct: dict[str, float] = field(default_factory=dict)  # PIAAC Lit_P1
    hs: HighSchoolData = field(default_factory=HighSchoolData)
    college: dict[str, float] = field(default_factory=dict)
    poverty: dict[str, float] = field(default_factory=dict)
    loaded: tuple[str, ...] = ()  # names of the inputs actually read


def outcomes_document(
    inputs: SecondaryInputs,
    tables: Mapping[str, NormalizedTable],
    derivation: DerivationSettings,
) -> dict[str, Any]:
    states = []
    for record in build_outcomes(inputs.literacy_pct, inputs.hs, inputs.college, derivation):
        entry = record.to_dict()
        poverty = inputs.poverty.get(record.state)
        entry["poverty_rate"] = poverty
        entry["ses"] = ses_category(poverty, derivation.ses_poverty_thresholds)
        entry["ses_scores"] = {
            key: ses_scores(table, record.state, derivation.ses_gap) for key, table in tables.items()
        }
        states.append(entry)
    return {
        "states": states,
        "metadata": {
            "generated": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "school_year": inputs.hs.school_year,
            "inputs": list(inputs.loaded),
            "sources": list(tables),
        },
    }


def write_outcomes(path: Path, document: Mapping[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, ensure_ascii=False, allow_nan=False, indent=2), encoding="utf-8")
    return path
