from __future__ import annotations

import re
from collections.abc import Mapping

"""State name <-> USPS code lookup.

Single shared table for every loader; the aggregate label ("United States")
is deliberately absent, aggregate rows are matched by pattern instead.
"""

__all__ = [
    "STATE_NAME_TO_CODE",
    "STATE_CODE_TO_NAME",
    "fold_names",
    "resolve_entity",
    "state_code",
    "state_name",
    "looks_like_code",
]

STATE_NAME_TO_CODE: Mapping[str, str] = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "District of Columbia": "DC", "Florida": "FL", "Georgia": "GA", "Hawaii": "HI",
    "Idaho": "ID", "Illinois": "IL", "Indiana": "IN", "Iowa": "IA",
    "Kansas": "KS", "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME",
    "Maryland": "MD", "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN",
    "Mississippi": "MS", "Missouri": "MO", "Montana": "MT", "Nebraska": "NE",
    "Nevada": "NV", "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM",
    "New York": "NY", "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH",
    "Oklahoma": "OK", "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI",
    "South Carolina": "SC", "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX",
    "Utah": "UT", "Vermont": "VT", "Virginia": "VA", "Washington": "WA",
    "West Virginia": "WV", "Wisconsin": "WI", "Wyoming": "WY",
}

STATE_CODE_TO_NAME: Mapping[str, str] = {code: name for name, code in STATE_NAME_TO_CODE.items()}

_CODE_RE = re.compile(r"^[A-Za-z]{2}$")

def fold_names(name_to_code: Mapping[str, str]) -> dict[str, str]:
    """Lower-cased name -> code, for the case-insensitive fallback."""
    return {name.lower(): code for name, code in name_to_code.items()}


def resolve_entity(
    name: str,
    name_to_code: Mapping[str, str] = STATE_NAME_TO_CODE,
    folded: Mapping[str, str] | None = None,
) -> str | None:
    """Exact lookup, then case-insensitive fallback. None when unresolved.

    Pass ``folded`` (from ``fold_names``) when resolving many names against
    the same table.
    """
    code = name_to_code.get(name)
    if code is not None:
        return code
    if folded is None:
        folded = fold_names(name_to_code)
    return folded.get(name.lower())


def state_code(name: str) -> str | None:
    return resolve_entity(name.strip())


def state_name(code: str) -> str | None:
    return STATE_CODE_TO_NAME.get(code.strip().upper())


def looks_like_code(text: str) -> bool:
    """True for a known two-letter USPS code such as ``"TX"``."""
    return bool(_CODE_RE.match(text)) and text.upper() in STATE_CODE_TO_NAME
