"""
delay_ingestion.py

Read the yearly TTC streetcar delay files and standardize them into one
raw table. Nothing is filtered here: rows with bad timestamps or delay
values are kept with NaT / NaN so the cleaning stage can count them.

The files themselves are fetched by an external step (Toronto open data
portal) and saved as data/raw_data/streetcar_delays{year}.csv. The portal
also serves .xlsx, which is read the same way.

OUTPUTS
-------
load_raw_delays() -> DataFrame:
    timestamp       (datetime64, NaT if unparseable)
    line            (string route code as delivered, e.g. "504")
    delay_minutes   (float, NaN if non-numeric)
    day             (string day label from the source, not trusted)
    location        (string)
    incident        (string)
    bound           (string, E/W/N/S/B, may be NA)
    vehicle         (string)
    min_gap         (float)
    source_year     (Int64, year of the file the row came from)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from streetcar_delays import config

logger = logging.getLogger(__name__)

RAW_COLUMNS = [
    "timestamp",
    "line",
    "delay_minutes",
    "day",
    "location",
    "incident",
    "bound",
    "vehicle",
    "min_gap",
    "source_year",
]

EXCEL_EXTS = (".xlsx", ".xls", ".xlsm")

# ---------------------------------------------------------------------
# Helpers: header normalization, picking columns, file readers
# ---------------------------------------------------------------------


def _normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert column names to snake_case, lowercase, no punctuation.
    """
    df = df.copy()
    df.columns = (
        df.columns.astype(str)
        .str.strip()
        .str.lower()
        .str.replace("[^a-z0-9_]+", "_", regex=True)
        .str.strip("_")
    )
    return df


def _pick_exact(df: pd.DataFrame, candidates: list[str]) -> str | None:
    """
    Return the first column in df.columns that exactly matches any candidate.
    """
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _pick_fuzzy_all(df: pd.DataFrame, keywords: list[str]) -> str | None:
    """
    Pick first column whose name contains ALL keywords, useful for things
    like 'min delay' that might be written in many ways.
    """
    for col in df.columns:
        if all(kw in col for kw in keywords):
            return col
    return None


def _read_delay_csv(path: Path) -> pd.DataFrame:
    """
    CSV reader: keep all columns as string (so nothing gets silently cast).
    """
    return pd.read_csv(
        path,
        dtype="string",
        encoding="utf-8-sig",
        low_memory=False,
    )


def _read_delay_excel(path: Path) -> pd.DataFrame:
    """
    Excel reader: keep all columns as string.
    Requires openpyxl in your environment.
    """
    return pd.read_excel(
        path,
        dtype="string",
        engine="openpyxl",
    )


def read_raw_delay_file(path: Path | str) -> pd.DataFrame:
    """Read one yearly file (.csv or Excel) with every column as string."""
    path = Path(path)
    if path.suffix.lower() in EXCEL_EXTS:
        return _read_delay_excel(path)
    return _read_delay_csv(path)


# ---------------------------------------------------------------------
# Datetime parsing helpers
# ---------------------------------------------------------------------

DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d-%b-%y %H:%M",
]
DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%d %H:%M:%S", "%m/%d/%Y", "%d-%b-%y"]
TIME_FORMATS = ["%H:%M:%S", "%H:%M", "%I:%M:%S %p", "%I:%M %p"]


def _try_parse_series(series: pd.Series, formats: list[str]) -> pd.Series:
    """
    Try parsing a datetime-like series with a list of explicit formats.
    Starts from the parse with the fewest NaT, then fills rows still NaT
    from the other formats in list order, so files mixing e.g. "HH:MM" and
    "HH:MM:SS" keep every parseable row. If no format matches anything,
    returns a best-effort fallback using pandas to_datetime with
    errors='coerce'.
    """
    parses: list[pd.Series] = []
    best = None
    best_non_null = -1
    for fmt in formats:
        parsed = pd.to_datetime(series, format=fmt, errors="coerce")
        parses.append(parsed)
        non_null = int(parsed.notna().sum())
        if non_null > best_non_null:
            best_non_null = non_null
            best = parsed
    if best is None or best_non_null == 0:
        return pd.to_datetime(series, errors="coerce")

    out = best
    for parsed in parses:
        mask = out.isna()
        if not mask.any():
            break
        out = out.where(~mask, parsed)
    return out


def parse_timestamps(series: pd.Series) -> pd.Series:
    """
    Parse combined date+time strings to datetime64 at second precision.
    Unparseable values become NaT.
    """
    if pd.api.types.is_datetime64_any_dtype(series):
        out = series
    else:
        out = _try_parse_series(series.astype("string").str.strip(), DATETIME_FORMATS)
    if getattr(out.dt, "tz", None) is not None:
        out = out.dt.tz_localize(None)
    return out.dt.floor("s")


def _time_of_day(series: pd.Series) -> pd.Series:
    """
    Time column -> Timedelta since midnight.

    Spreadsheet exports sometimes carry a dummy date ("1899-12-31T02:30:00Z"),
    so the clock part is pulled out with a regex before parsing.
    """
    s = series.astype("string").str.strip()
    clock = s.str.extract(r"(\d{1,2}:\d{2}(?::\d{2})?(?:\s*[AaPp][Mm])?)", expand=False)
    parsed = _try_parse_series(clock, TIME_FORMATS)
    return parsed - parsed.dt.normalize()


def _parse_datetime_fields(
    raw: pd.DataFrame,
    col_ts: str | None,
    col_date: str | None,
    col_time: str | None,
) -> pd.Series:
    """
    Parse timestamp from either a single datetime column or separate
    date/time columns. A date column without a time column is parsed as a
    combined date-time.
    """
    if col_ts:
        return parse_timestamps(raw[col_ts])

    if col_date is None:
        return pd.Series(pd.NaT, index=raw.index, dtype="datetime64[ns]")
    if col_time is None:
        return parse_timestamps(raw[col_date])

    d = _try_parse_series(raw[col_date].astype("string").str.strip(), DATE_FORMATS)
    if getattr(d.dt, "tz", None) is not None:
        d = d.dt.tz_localize(None)
    t = _time_of_day(raw[col_time])
    return (d.dt.normalize() + t).dt.floor("s")


def _iter_files(dir_path: Path) -> Iterable[Path]:
    try:
        return sorted(dir_path.iterdir())
    except OSError:
        return []


def _find_first_file_by_keywords(
    dir_path: Path, keywords: list[str], exts: Iterable[str]
) -> Path | None:
    """
    Best-effort discovery when exact filenames don't match.
    Returns the first path whose lowercase filename contains ALL keywords
    and ends with one of the provided extensions.
    """
    kw = [k.lower() for k in keywords]
    extset = {e.lower() for e in exts}
    for p in _iter_files(dir_path):
        name = p.name.lower()
        if all(k in name for k in kw) and any(name.endswith(e) for e in extset):
            return p
    return None


def find_raw_delay_file(raw_dir: Path, year: int) -> Path:
    """
    Locate the raw file for `year`: the canonical name first, then any
    .csv / Excel file whose name mentions both "streetcar" and the year.
    """
    exact = raw_dir / config.RAW_FILE_TEMPLATE.format(year=year)
    if exact.exists():
        return exact
    alt = _find_first_file_by_keywords(raw_dir, ["streetcar", str(year)], (".csv",) + EXCEL_EXTS)
    if alt is None:
        raise FileNotFoundError(f"no streetcar delay file for {year} (looked for {exact})")
    logger.warning("Using %s for %d (canonical name not found)", alt.name, year)
    return alt


# ---------------------------------------------------------------------
# Standardizer for one yearly table
# ---------------------------------------------------------------------


def _text(raw: pd.DataFrame, col: str | None) -> pd.Series:
    if col is None:
        return pd.Series(pd.NA, index=raw.index, dtype="string")
    return raw[col].astype("string").str.strip().replace("", pd.NA)


def _number(raw: pd.DataFrame, col: str | None) -> pd.Series:
    if col is None:
        return pd.Series(float("nan"), index=raw.index, dtype="float64")
    return pd.to_numeric(raw[col].astype("string").str.strip(), errors="coerce").astype("float64")


def standardize_raw_delays(
    df: pd.DataFrame,
    source_year: int | None = None,
) -> pd.DataFrame:
    """
    Map one raw TTC streetcar table onto RAW_COLUMNS.

    TTC headers are "Date, Line, Time, Day, Location, Incident, Min Delay,
    Min Gap, Bound, Vehicle"; older and newer files vary in case and
    spacing, and some carry a combined date-time column instead.
    """
    raw = _normalize_headers(df)

    col_ts = _pick_exact(raw, ["timestamp", "datetime", "date_time", "report_date_time"])
    col_date = _pick_exact(raw, ["date", "report_date", "incident_date"])
    col_time = _pick_exact(raw, ["time", "report_time", "incident_time"])
    col_line = _pick_exact(raw, ["line", "route", "line_number", "route_number"])
    col_minutes = _pick_exact(
        raw, ["min_delay", "delay_minutes", "delay_min", "mins_delay"]
    ) or _pick_fuzzy_all(raw, ["delay", "min"])
    col_gap = _pick_exact(raw, ["min_gap", "gap_minutes"]) or _pick_fuzzy_all(raw, ["gap"])
    col_day = _pick_exact(raw, ["day", "day_of_week", "weekday"])
    col_location = _pick_exact(raw, ["location", "station", "stop", "intersection"])
    col_incident = _pick_exact(raw, ["incident", "incident_type", "cause", "delay_code"])
    col_bound = _pick_exact(raw, ["bound", "direction", "dir"])
    col_vehicle = _pick_exact(raw, ["vehicle", "vehicle_number", "car"])

    if col_ts is None and col_date is None:
        logger.warning("No timestamp column found; every row will be malformed")
    if col_line is None:
        logger.warning("No line column found; every row will be an unknown line")

    out = pd.DataFrame(
        {
            "timestamp": _parse_datetime_fields(raw, col_ts, col_date, col_time),
            "line": _text(raw, col_line),
            "delay_minutes": _number(raw, col_minutes),
            "day": _text(raw, col_day),
            "location": _text(raw, col_location),
            "incident": _text(raw, col_incident),
            "bound": _text(raw, col_bound),
            "vehicle": _text(raw, col_vehicle),
            "min_gap": _number(raw, col_gap),
            "source_year": pd.Series(source_year, index=raw.index, dtype="Int64"),
        }
    )
    return out[RAW_COLUMNS].reset_index(drop=True)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------


def load_raw_delays(
    years: Iterable[int] = config.YEARS,
    raw_dir: Path | None = None,
) -> pd.DataFrame:
    """
    Read and standardize every requested year, concatenated in year order.
    A missing year is a misconfigured run and raises FileNotFoundError.
    """
    raw_dir = Path(raw_dir) if raw_dir is not None else config.DATA_DIR / config.RAW_SUBDIR

    frames: list[pd.DataFrame] = []
    for year in years:
        path = find_raw_delay_file(raw_dir, year)
        std = standardize_raw_delays(read_raw_delay_file(path), source_year=year)
        logger.info("Read %d raw rows from %s", len(std), path.name, extra={"year": year})
        frames.append(std)

    if not frames:
        return empty_raw_frame()
    return pd.concat(frames, ignore_index=True)


def empty_raw_frame() -> pd.DataFrame:
    """Zero-row frame in the raw schema."""
    return standardize_raw_delays(pd.DataFrame())
