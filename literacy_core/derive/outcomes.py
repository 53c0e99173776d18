from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from literacy_core.derive.metrics import bucket, normalize, to_score
from literacy_core.excel.lookup import STATE_NAME_TO_CODE
from literacy_core.excel.sources import HighSchoolData
from literacy_core.models.config_models import DerivationSettings

"""State outcome dataset: approximate literacy score vs. graduation / enrollment."""

__all__ = [
    "OutcomeRecord",
    "build_outcomes",
]


@dataclass(frozen=True)
class OutcomeRecord:
    state_name: str
    state: str
    lit_p1: float | None
    literacy_score: float | None
    level: str
    hs_graduates: float | None
    hs_rate: float | None  # ACGR
    hs_rate_proxy: float | None  # 0-100 position of the graduate count, only without ACGR
    college_rate: float | None
    school_year: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_outcomes(
    literacy_pct: Mapping[str, float],
    hs: HighSchoolData,
    college: Mapping[str, float],
    derivation: DerivationSettings,
) -> list[OutcomeRecord]:
    """One record per state (lookup table order), missing inputs as None."""
    counts = [v for v in hs.counts.values() if v is not None]
    lo = min(counts) if counts else None
    hi = max(counts) if counts else None

    out: list[OutcomeRecord] = []
    for name, code in STATE_NAME_TO_CODE.items():
        lit = literacy_pct.get(code)
        score = to_score(lit, derivation.score_max, derivation.score_slope)
        grads = hs.counts.get(code)
        rate = hs.rates.get(code)
        proxy = None
        if rate is None and grads is not None and lo is not None and hi is not None and hi > lo:
            proxy = normalize(grads, lo, hi) * 100  # type: ignore[operator]
        out.append(
            OutcomeRecord(
                state_name=name,
                state=code,
                lit_p1=lit,
                literacy_score=score,
                level=bucket(score, derivation.level_thresholds),
                hs_graduates=grads,
                hs_rate=rate,
                hs_rate_proxy=proxy,
                college_rate=college.get(code),
                school_year=hs.school_year,
            )
        )
    return out
