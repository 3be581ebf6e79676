"""
config.py

File locations, naming and filter thresholds shared by the pipeline.
Everything here can be overridden through function arguments or CLI flags.
"""

from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------
# Data directory layout
# ---------------------------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]


def resolve_data_dir() -> Path:
    """
    Return the data directory: $STREETCAR_DELAYS_DATA_DIR if set,
    otherwise <repo>/data (falling back to <repo>/Data if only that exists).
    """
    env = os.environ.get("STREETCAR_DELAYS_DATA_DIR")
    if env:
        return Path(env).expanduser()
    d = REPO_ROOT / "data"
    if d.exists():
        return d
    alt = REPO_ROOT / "Data"
    return alt if alt.exists() else d


DATA_DIR = resolve_data_dir()

RAW_SUBDIR = "raw_data"
ANALYSIS_SUBDIR = "analysis_data"

RAW_FILE_TEMPLATE = "streetcar_delays{year}.csv"
CLEANED_CSV = "cleaned_streetcar_delays.csv"
ROSTER_CSV = "line_roster.csv"

YEARS: tuple[int, ...] = (2022, 2023, 2024)

# ---------------------------------------------------------------------
# Cleaning thresholds (minutes). Rows strictly below MIN or strictly
# above MAX are dropped, never clamped.
# ---------------------------------------------------------------------

MIN_DELAY_MINUTES = 2.0
MAX_DELAY_MINUTES = 120.0

# 2024 was only published through August when the report was written;
# year-over-year tables are restricted to these months.
COMPARISON_MONTHS: tuple[int, ...] = tuple(range(1, 9))
