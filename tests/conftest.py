# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from literacy_core.logging.init import reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # Rebind the stdout handler to the capture stream of the running test
    reset_logging()
    setup_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("LITERACY_CORE_CONFIG", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """output_path: ./data/combined.json
sources:
  - key: grade4
    path: ./data/grade4.xlsx
    partition: 4
  - key: grade8
    path: ./data/grade8.xlsx
    partition: 8
extraction:
  scan_rows: 15
  year_min: 1990
  year_max: 2025
derivation:
  ses_gap: 18
  level_thresholds:
    - [200, Below Basic]
    - [240, Basic]
    - [280, Proficient]
    - [null, Advanced]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sources.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_excel(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write a real .xlsx with header-less sheets."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


# NAEP-style export: title rows, header, units row, aggregate, states, footnotes
GRADE4_ROWS: list[list[object]] = [
    ["Table 221.40. Average NAEP reading scale scores, grade 4", None, None, None],
    [None, None, None, None],
    ["State or jurisdiction", "2017", "2019", "2022"],
    ["United States", 221, 219, 216],
    ["Alabama", 216, 212, "210*"],
    ["California", 215, 216, 214],
    ["texas", 216, 216, "‡"],
    ["Puerto Rico", None, None, None],
    ["† Not applicable.", None, None, None],
]

GRADE8_ROWS: list[list[object]] = [
    ["Average reading scale score, grade 8", None, None, None, None],
    ["State or jurisdiction", "2015", "2017", "2019", "2022"],
    ["United States", 264, 265, 262, 259],
    ["California", 259, 263, 259, 257],
    ["New York", 263, 264, 262, 257],
]


@pytest.fixture()
def naep_files(temp_workdir: Path) -> dict[str, Path]:
    data = temp_workdir / "data"
    return {
        "grade4": make_excel(data / "grade4.xlsx", {"Grade 4": GRADE4_ROWS}),
        "grade8": make_excel(data / "grade8.xlsx", {"Grade 8": GRADE8_ROWS}),
    }


@pytest.fixture()
def grade4_rows() -> list[list[object]]:
    return [list(r) for r in GRADE4_ROWS]
