"""
roster.py

Line roster: which streetcar lines are in revenue service and what kind
of service each one runs.

    Regular  daytime core network
    Reduced  daytime lines with fewer hours (507 and 508 started part-way
             through 2022-2024)
    Night    overnight-only 300-series lines

The roster is reference data, not something derived from the delay logs.
It is passed explicitly into clean() so a roster change never touches
pipeline code.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

import pandas as pd

from streetcar_delays.errors import EmptyRoster, InvalidRoster

logger = logging.getLogger(__name__)

SERVICE_TYPES: tuple[str, ...] = ("Regular", "Reduced", "Night")

REGULAR_LINES = (501, 503, 504, 505, 506, 509, 510, 511, 512)
REDUCED_LINES = (507, 508)
NIGHT_LINES = (301, 304, 305, 306, 310)

DEFAULT_ROSTER: dict[int, str] = {
    **{line: "Regular" for line in REGULAR_LINES},
    **{line: "Reduced" for line in REDUCED_LINES},
    **{line: "Night" for line in NIGHT_LINES},
}


def _line_code(line) -> int:
    """
    Whole-number line code: "504", " 504 ", 504.0 and "504.0" are all 504,
    matching how delay records are read.
    """
    try:
        num = float(str(line).strip())
    except ValueError:
        raise InvalidRoster(f"line code {line!r} is not an integer") from None
    if not num.is_integer():
        raise InvalidRoster(f"line code {line!r} is not an integer")
    return int(num)


def _normalize_entries(entries: Iterable[tuple]) -> dict[int, str]:
    """
    (line, service type) pairs -> {line code: canonical label}.

    A line listed twice with the same service type is fine; listed with two
    different service types it is ambiguous and raises InvalidRoster.
    """
    canon = {s.lower(): s for s in SERVICE_TYPES}
    out: dict[int, str] = {}
    for line, service in entries:
        code = _line_code(line)
        label = canon.get(str(service).strip().lower())
        if label is None:
            raise InvalidRoster(
                f"line {code} has service type {service!r}; "
                f"expected one of {', '.join(SERVICE_TYPES)}"
            )
        if out.get(code, label) != label:
            raise InvalidRoster(f"line {code} is listed as both {out[code]} and {label}")
        out[code] = label
    return out


def validate_roster(line_roster: Mapping) -> dict[int, str]:
    """
    Return a normalized copy of `line_roster` with int keys and canonical
    service-type labels (case-insensitive match).

    Raises EmptyRoster if there are no entries and InvalidRoster if a line
    code is not a whole number, a service type is not Regular/Reduced/Night,
    or two keys name the same line with different service types.
    """
    if not line_roster:
        raise EmptyRoster("line roster is empty; no delay record could be kept")
    return _normalize_entries(line_roster.items())


def lines_for(line_roster: Mapping[int, str], service_type: str) -> list[int]:
    """Sorted line codes of one service type."""
    return sorted(line for line, s in line_roster.items() if s == service_type)


def load_roster(path: Path | str) -> dict[int, str]:
    """
    Read a roster CSV with `line` and `service_type` columns.
    Header case/spacing is normalized, so "Line" / "Service Type" also work.
    """
    path = Path(path)
    df = pd.read_csv(path, dtype="string", encoding="utf-8-sig")
    df.columns = df.columns.str.strip().str.lower().str.replace("[^a-z0-9_]+", "_", regex=True)

    missing = {"line", "service_type"} - set(df.columns)
    if missing:
        raise InvalidRoster(f"{path} is missing column(s): {', '.join(sorted(missing))}")

    df = df.dropna(subset=["line", "service_type"])
    if df.empty:
        raise EmptyRoster(f"{path} lists no lines; no delay record could be kept")
    # pairs, not a dict: a line repeated with a different service type must raise
    roster = _normalize_entries(zip(df["line"], df["service_type"]))
    logger.info("Loaded line roster", extra={"path": str(path), "n_lines": len(roster)})
    return roster
