from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

"""Raw sheet reading.

Sheets are read with ``header=None`` so that no header interpretation
happens here; locating the header row is the extractor's job. The result is
a RawGrid: a list of rows, each a list of cells (number, string or None).
"""

__all__ = [
    "RawGrid",
    "SheetNotFoundError",
    "read_excel_file",
    "dataframe_to_grid",
    "read_grid",
]

RawGrid = list[list[Any]]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


class SheetNotFoundError(Exception):
    """Raised when a requested sheet is not present in the workbook."""


def read_excel_file(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read an Excel file returning raw DataFrames keyed by sheet name.

    Parameters
    ----------
    path: Excel file path
    target_sheets: restrict to these sheet names (None -> every sheet)
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path) as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # Raw read, header handling happens in the extractor
            dfs[str(name)] = xls.parse(name, header=None)
    return dfs


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):  # pragma: no cover - non-scalar cells
        return value
    if isinstance(value, str):
        return value
    # numpy scalars -> plain Python numbers
    if hasattr(value, "item"):
        return value.item()
    return value


def dataframe_to_grid(df: pd.DataFrame) -> RawGrid:
    """Convert a header-less DataFrame to a row-major grid, NaN -> None."""
    return [[_clean_cell(v) for v in row] for row in df.astype(object).itertuples(index=False, name=None)]


def read_grid(path: Path, sheet: str | None = None) -> RawGrid:
    """Read one sheet (or a CSV file) as a RawGrid.

    Raises:
        SheetNotFoundError: ``sheet`` is given but absent from the workbook.
        ValueError: unsupported file extension.
    """
    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        df = pd.read_csv(path, header=None, dtype=object, keep_default_na=True)
        return dataframe_to_grid(df)
    if suffix not in EXCEL_SUFFIXES:
        raise ValueError(f"unsupported file type: {path.name}")

    with pd.ExcelFile(path) as xls:
        names = [str(n) for n in xls.sheet_names]
        if sheet is None:
            if not names:
                raise SheetNotFoundError(f"workbook '{path.name}' has no sheets")
            sheet_name = names[0]
        elif sheet in names:
            sheet_name = sheet
        else:
            raise SheetNotFoundError(f"sheet '{sheet}' not found in '{path.name}' (sheets: {names})")
        df = xls.parse(sheet_name, header=None)
    return dataframe_to_grid(df)
