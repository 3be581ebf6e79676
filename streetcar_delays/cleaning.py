"""
cleaning.py

Turn standardized raw delay rows into the analysis table:

    date          (datetime64, second precision)
    day_of_week   (ordered categorical, Sunday..Saturday, derived from date)
    line          (int route code)
    service_type  (ordered categorical: Regular, Reduced, Night)
    min_delay     (float minutes)

Steps, in order:
    0. rows with an unparseable timestamp or non-numeric delay are dropped
    1. rows whose line is not in the roster are dropped
    2. service_type comes from the roster
    3. day_of_week is re-derived from the timestamp (raw label discarded)
    4. delays below the minimum threshold are dropped
    5. delays above the maximum threshold are dropped
    6. only the five output columns are kept

Dropped rows are tallied per reason in a RejectionReport; they never
abort the run. The input frame is not modified.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path

import pandas as pd

from streetcar_delays import config
from streetcar_delays.delay_ingestion import parse_timestamps
from streetcar_delays.errors import RejectionReason
from streetcar_delays.roster import SERVICE_TYPES, validate_roster

logger = logging.getLogger(__name__)

CLEANED_COLUMNS = ["date", "day_of_week", "line", "service_type", "min_delay"]

DAY_ORDER = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# pandas dayofweek is Monday=0
_DOW_NAMES = {
    0: "Monday",
    1: "Tuesday",
    2: "Wednesday",
    3: "Thursday",
    4: "Friday",
    5: "Saturday",
    6: "Sunday",
}

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class RejectionReport:
    """Row counts for one clean() call."""

    total: int = 0
    malformed: int = 0
    unknown_line: int = 0
    below_min_delay: int = 0
    above_max_delay: int = 0
    kept: int = 0

    @property
    def rejected(self) -> int:
        return self.total - self.kept

    @property
    def rejection_rate(self) -> float:
        return self.rejected / self.total if self.total else 0.0

    def by_reason(self) -> dict[RejectionReason, int]:
        return {
            RejectionReason.MALFORMED_RECORD: self.malformed,
            RejectionReason.UNKNOWN_LINE: self.unknown_line,
            RejectionReason.BELOW_MIN_DELAY: self.below_min_delay,
            RejectionReason.ABOVE_MAX_DELAY: self.above_max_delay,
        }

    def as_dict(self) -> dict:
        out = asdict(self)
        out["rejected"] = self.rejected
        out["rejection_rate"] = round(self.rejection_rate, 4)
        return out


@dataclass(frozen=True)
class CleaningResult:
    records: pd.DataFrame
    report: RejectionReport


def day_of_week(dates: pd.Series) -> pd.Series:
    """Sunday..Saturday ordered categorical for a datetime series."""
    names = pd.to_datetime(dates).dt.dayofweek.map(_DOW_NAMES)
    return pd.Series(
        pd.Categorical(names, categories=DAY_ORDER, ordered=True),
        index=dates.index,
        name="day_of_week",
    )


def _line_codes(lines: pd.Series) -> pd.Series:
    """
    Route codes as nullable ints. "504", " 504 ", 504.0 all map to 504;
    anything non-numeric or fractional becomes NA.
    """
    nums = pd.to_numeric(lines.astype("string").str.strip(), errors="coerce").astype("Float64")
    whole = nums.notna() & (nums % 1 == 0)
    return nums.where(whole).astype("Int64")


def empty_cleaned_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": pd.Series(dtype="datetime64[ns]"),
            "day_of_week": pd.Categorical([], categories=DAY_ORDER, ordered=True),
            "line": pd.Series(dtype="int64"),
            "service_type": pd.Categorical([], categories=list(SERVICE_TYPES), ordered=True),
            "min_delay": pd.Series(dtype="float64"),
        }
    )


def clean(
    raw_records: pd.DataFrame,
    line_roster: Mapping,
    *,
    min_delay: float = config.MIN_DELAY_MINUTES,
    max_delay: float = config.MAX_DELAY_MINUTES,
) -> CleaningResult:
    """
    Clean raw delay rows (see delay_ingestion.RAW_COLUMNS; only `timestamp`,
    `line` and `delay_minutes` are required).

    Raises EmptyRoster / InvalidRoster before touching any row if the
    roster cannot classify anything.
    """
    roster = validate_roster(line_roster)

    missing = {"timestamp", "line", "delay_minutes"} - set(raw_records.columns)
    if missing:
        raise KeyError(f"raw records missing column(s): {', '.join(sorted(missing))}")

    total = len(raw_records)
    d = pd.DataFrame(
        {
            "date": parse_timestamps(raw_records["timestamp"]),
            "line": _line_codes(raw_records["line"]),
            "delay_minutes": pd.to_numeric(
                raw_records["delay_minutes"], errors="coerce"
            ).astype("float64"),
        },
        index=raw_records.index,
    )

    # 0. malformed
    ok = d["date"].notna() & d["delay_minutes"].notna()
    malformed = int((~ok).sum())
    d = d[ok]

    # 1. unknown lines
    known = d["line"].isin(list(roster))
    unknown_line = int((~known).sum())
    d = d[known].copy()
    d["line"] = d["line"].astype("int64")

    # 2. service type, 3. day of week
    d["service_type"] = pd.Categorical(
        d["line"].map(roster), categories=list(SERVICE_TYPES), ordered=True
    )
    d["day_of_week"] = day_of_week(d["date"])

    # 4. / 5. thresholds
    below = d["delay_minutes"] < min_delay
    above = d["delay_minutes"] > max_delay
    below_min_delay = int(below.sum())
    above_max_delay = int(above.sum())
    d = d[~below & ~above]

    # 6. projection
    records = d.rename(columns={"delay_minutes": "min_delay"})[CLEANED_COLUMNS].reset_index(
        drop=True
    )

    report = RejectionReport(
        total=total,
        malformed=malformed,
        unknown_line=unknown_line,
        below_min_delay=below_min_delay,
        above_max_delay=above_max_delay,
        kept=len(records),
    )
    logger.info(
        "Cleaned %d of %d delay rows (%.1f%% rejected)",
        report.kept,
        report.total,
        report.rejection_rate * 100.0,
        extra=report.as_dict(),
    )
    return CleaningResult(records=records, report=report)


# ---------------------------------------------------------------------
# Cleaned file I/O
# ---------------------------------------------------------------------


def write_cleaned(records: pd.DataFrame, path: Path | str) -> Path:
    """Write the cleaned table as CSV with a header row."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    out = records[CLEANED_COLUMNS].copy()
    out["date"] = pd.to_datetime(out["date"]).dt.strftime(DATE_FORMAT)
    out.to_csv(path, index=False)
    logger.info("Wrote %d cleaned rows to %s", len(out), path)
    return path


def read_cleaned(path: Path | str) -> pd.DataFrame:
    """
    Read a cleaned CSV back with analysis dtypes. day_of_week is derived
    from date again rather than trusted from the file.
    """
    df = pd.read_csv(
        Path(path),
        dtype={"line": "int64", "service_type": "string", "min_delay": "float64"},
        encoding="utf-8-sig",
    )
    if df.empty:
        return empty_cleaned_frame()

    df["date"] = pd.to_datetime(df["date"], format=DATE_FORMAT)
    df["day_of_week"] = day_of_week(df["date"])
    df["service_type"] = pd.Categorical(
        df["service_type"], categories=list(SERVICE_TYPES), ordered=True
    )
    return df[CLEANED_COLUMNS]
