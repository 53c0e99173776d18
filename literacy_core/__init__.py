"""State literacy and education statistics: spreadsheet extraction and derived metrics."""

__version__ = "0.1.0"
