from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence

"""Column alias resolution.

Exports spell the same column several ways ("Total", "total", " Total ").
``resolve_columns`` is run once per source and yields a canonical-name ->
actual-column mapping, so downstream code indexes by canonical names only.
"""

__all__ = [
    "MissingColumnsError",
    "resolve_columns",
]


class MissingColumnsError(Exception):
    """Raised when required canonical columns cannot be matched in a header."""


def _fold(name: object) -> str:
    return " ".join(str(name).split()).lower()


def resolve_columns(
    columns: Iterable[Hashable],
    aliases: Mapping[str, Sequence[str]],
    required: Iterable[str] | None = None,
) -> dict[str, Hashable]:
    """Map each canonical column name to the matching actual column label.

    Labels are returned as given, so a header pandas parsed as a number stays
    a number and still indexes the frame.

    Matching order per canonical name: every alias exactly, then every alias
    whitespace-trimmed and case-insensitive. The canonical name itself is
    always tried first.

    Args:
        columns: actual header values
        aliases: canonical name -> alternative spellings
        required: canonical names that must resolve (default: all)

    Raises:
        MissingColumnsError: a required canonical name has no match.
    """
    actual = [c for c in columns if c is not None]
    exact: dict[str, Hashable] = {}
    folded: dict[str, Hashable] = {}
    for c in actual:
        exact.setdefault(str(c), c)
        folded.setdefault(_fold(c), c)

    resolved: dict[str, Hashable] = {}
    for canonical, alts in aliases.items():
        candidates = [canonical, *alts]
        match = next((exact[a] for a in candidates if a in exact), None)
        if match is None:
            match = next((folded[_fold(a)] for a in candidates if _fold(a) in folded), None)
        if match is not None:
            resolved[canonical] = match

    needed = set(aliases) if required is None else set(required)
    missing = needed - set(resolved)
    if missing:
        raise MissingColumnsError(
            f"missing columns: {sorted(missing)} (available: {[str(c) for c in actual]})"
        )
    return resolved
