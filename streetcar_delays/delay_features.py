"""
delay_features.py

The standard summary tables the delay report is built from. Each builder
takes the cleaned table (see cleaning.CLEANED_COLUMNS) and returns a
summary frame from aggregation.aggregate(), completed over the declared
domains so that lines or hours with no delays still appear.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import pandas as pd

from streetcar_delays import config
from streetcar_delays.aggregation import aggregate, overall_summary, restrict_to_months
from streetcar_delays.cleaning import DAY_ORDER
from streetcar_delays.roster import SERVICE_TYPES, validate_roster

HOURS = list(range(24))


def build_service_type_by_year(
    records: pd.DataFrame, years: Iterable[int], fill_value: float = 0
) -> pd.DataFrame:
    """
    (service_type, year) summary over every service type and year.
    """
    return aggregate(
        records,
        ["service_type", "year"],
        complete_over={"service_type": SERVICE_TYPES, "year": list(years)},
        fill_value=fill_value,
    )


def build_line_by_year(
    records: pd.DataFrame,
    line_roster: Mapping[int, str],
    years: Iterable[int],
    fill_value: float = 0,
) -> pd.DataFrame:
    """
    (line, year) summary over every roster line and year, plus each line's
    service type. Lines that started service part-way through the window
    show count 0 for the years before they ran.
    """
    lines = sorted(line_roster)
    out = aggregate(
        records,
        ["line", "year"],
        complete_over={"line": lines, "year": list(years)},
        fill_value=fill_value,
    )
    out.insert(1, "service_type", out["line"].map(line_roster))
    return out


def build_line_summary(
    records: pd.DataFrame, line_roster: Mapping[int, str], fill_value: float = 0
) -> pd.DataFrame:
    """
    Per-line summary across the whole window, ordered by service type then line.
    """
    lines = sorted(line_roster, key=lambda line: (SERVICE_TYPES.index(line_roster[line]), line))
    out = aggregate(records, ["line"], complete_over={"line": lines}, fill_value=fill_value)
    out.insert(1, "service_type", out["line"].map(line_roster))
    return out


def build_month_by_year(
    records: pd.DataFrame,
    years: Iterable[int],
    months: Iterable[int] = config.COMPARISON_MONTHS,
    fill_value: float = 0,
) -> pd.DataFrame:
    """
    (year, month) summary restricted to `months` so a partial final year
    lines up with the complete ones.
    """
    months = list(months)
    return aggregate(
        restrict_to_months(records, months),
        ["year", "month"],
        complete_over={"year": list(years), "month": months},
        fill_value=fill_value,
    )


def build_dow_profile(records: pd.DataFrame, fill_value: float = 0) -> pd.DataFrame:
    """
    Day-of-week profile, Sunday..Saturday.
    """
    return aggregate(
        records, ["day_of_week"], complete_over={"day_of_week": DAY_ORDER}, fill_value=fill_value
    )


def build_time_of_day_profile(records: pd.DataFrame, fill_value: float = 0) -> pd.DataFrame:
    """
    Hour-of-day profile (0..23) across all lines.
    """
    return aggregate(records, ["hour"], complete_over={"hour": HOURS}, fill_value=fill_value)


def build_service_type_by_hour(records: pd.DataFrame, fill_value: float = 0) -> pd.DataFrame:
    """
    (service_type, hour) profile; Night lines only run overnight, so most of
    their daytime hours are completed rows.
    """
    return aggregate(
        records,
        ["service_type", "hour"],
        complete_over={"service_type": SERVICE_TYPES, "hour": HOURS},
        fill_value=fill_value,
    )


def build_report_tables(
    records: pd.DataFrame,
    line_roster: Mapping[int, str],
    years: Iterable[int] = config.YEARS,
    comparison_months: Iterable[int] = config.COMPARISON_MONTHS,
    fill_value: float = 0,
) -> dict[str, pd.DataFrame]:
    """
    Build every table the report uses.

    Returns a dict with:
      overall               -> one-row summary of the whole cleaned set
      service_type_by_year  -> service type x year
      line_by_year          -> roster line x year
      line_summary          -> roster line, whole window
      month_by_year         -> year x month (comparison months only)
      day_of_week           -> Sunday..Saturday
      hour                  -> 0..23
      service_type_by_hour  -> service type x hour
    """
    line_roster = validate_roster(line_roster)
    years = list(years)
    return {
        "overall": overall_summary(records),
        "service_type_by_year": build_service_type_by_year(records, years, fill_value),
        "line_by_year": build_line_by_year(records, line_roster, years, fill_value),
        "line_summary": build_line_summary(records, line_roster, fill_value),
        "month_by_year": build_month_by_year(records, years, comparison_months, fill_value),
        "day_of_week": build_dow_profile(records, fill_value),
        "hour": build_time_of_day_profile(records, fill_value),
        "service_type_by_hour": build_service_type_by_hour(records, fill_value),
    }
