"""
aggregation.py

Grouped descriptive statistics over the cleaned delay table.

aggregate() partitions cleaned records by one or more of

    line, service_type, year, month, day_of_week, hour

(year/month/hour are derived from `date`) and reports, per partition,
count / min / max / mean / median / stddev of `min_delay`.

With `complete_over`, the output is the full Cartesian product of the
declared per-dimension domains: combinations with no records still get a
row (count 0, statistics = fill_value). Lines 507 and 508 did not run for
the whole 2022-2024 window, so omitting empty combinations would hide that.

Calendar policy (e.g. comparing only Jan-Aug across years) is applied
before aggregation with the restrict_* helpers, never inside aggregate().
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from streetcar_delays.cleaning import day_of_week
from streetcar_delays.errors import InvalidDimension

DIMENSIONS: tuple[str, ...] = ("line", "service_type", "year", "month", "day_of_week", "hour")
STATISTICS: list[str] = ["count", "min", "max", "mean", "median", "stddev"]


# ---------------------------------------------------------------------
# Dimension handling
# ---------------------------------------------------------------------


def _check_keys(group_keys: Iterable[str]) -> list[str]:
    """Validate and de-duplicate grouping keys, keeping first-seen order."""
    keys: list[str] = []
    for k in group_keys:
        if k not in DIMENSIONS:
            raise InvalidDimension(k, DIMENSIONS)
        if k not in keys:
            keys.append(k)
    if not keys:
        raise InvalidDimension("", DIMENSIONS)
    return keys


def add_dimensions(records: pd.DataFrame, keys: Sequence[str] = DIMENSIONS) -> pd.DataFrame:
    """
    Return a copy of `records` with any of year / month / hour /
    day_of_week in `keys` derived from `date`.
    """
    d = records.copy()
    needs_date = {"year", "month", "hour"} & set(keys)
    if "day_of_week" in keys and "day_of_week" not in d.columns:
        needs_date.add("day_of_week")
    if not needs_date:
        return d

    dates = pd.to_datetime(d["date"])
    if "year" in needs_date:
        d["year"] = dates.dt.year.astype("int64")
    if "month" in needs_date:
        d["month"] = dates.dt.month.astype("int64")
    if "hour" in needs_date:
        d["hour"] = dates.dt.hour.astype("int64")
    if "day_of_week" in needs_date:
        d["day_of_week"] = day_of_week(dates)
    return d


# ---------------------------------------------------------------------
# Sub-period pre-filters
# ---------------------------------------------------------------------


def restrict_to_months(records: pd.DataFrame, months: Iterable[int]) -> pd.DataFrame:
    """Keep only records whose month is in `months`."""
    months = set(months)
    return records[pd.to_datetime(records["date"]).dt.month.isin(months)].reset_index(drop=True)


def restrict_to_period(
    records: pd.DataFrame, start_month: int = 1, end_month: int = 8
) -> pd.DataFrame:
    """
    Keep records from start_month..end_month (inclusive) of every year,
    e.g. the default Jan-Aug aligns full years with a partial final year.
    """
    if not 1 <= start_month <= end_month <= 12:
        raise ValueError(f"invalid month range {start_month}..{end_month}")
    return restrict_to_months(records, range(start_month, end_month + 1))


def restrict_to_years(records: pd.DataFrame, years: Iterable[int]) -> pd.DataFrame:
    years = set(years)
    return records[pd.to_datetime(records["date"]).dt.year.isin(years)].reset_index(drop=True)


# ---------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------


def _empty_summary(keys: list[str]) -> pd.DataFrame:
    cols = {k: pd.Series(dtype="object") for k in keys}
    cols["count"] = pd.Series(dtype="int64")
    for stat in STATISTICS[1:]:
        cols[stat] = pd.Series(dtype="float64")
    return pd.DataFrame(cols)


def aggregate(
    records: pd.DataFrame,
    group_keys: Iterable[str],
    complete_over: Mapping[str, Iterable] | None = None,
    fill_value: float = 0,
) -> pd.DataFrame:
    """
    Summarize `min_delay` per combination of `group_keys`.

    Parameters
    ----------
    records : cleaned delay table (see cleaning.CLEANED_COLUMNS)
    group_keys : ordered dimension names, a subset of DIMENSIONS
    complete_over : optional {dimension: domain}. Every key must also be a
        grouping key. Grouping keys without a declared domain range over
        the values observed in `records`.
    fill_value : statistic value for completed (empty) combinations.
        Pass np.nan to keep "no service" distinguishable from zero.

    Returns
    -------
    pd.DataFrame with the grouping columns followed by
        count, min, max, mean, median, stddev
    stddev is the sample standard deviation (NaN for single-record groups).
    Values are not rounded; see round_for_display().
    """
    keys = _check_keys(group_keys)
    domains = dict(complete_over) if complete_over is not None else None
    if domains is not None:
        for k in domains:
            if k not in keys:
                raise InvalidDimension(k, tuple(keys))

    d = add_dimensions(records, keys)

    if d.empty and domains is None:
        return _empty_summary(keys)

    # std is the sample standard deviation (ddof=1)
    out = (
        d.groupby(keys, observed=True, sort=True)["min_delay"]
        .agg(
            count="count",
            min="min",
            max="max",
            mean="mean",
            median="median",
            stddev="std",
        )
        .reset_index()
    )
    out["count"] = out["count"].astype("int64")

    if domains is None:
        return out[keys + STATISTICS]

    levels = []
    for k in keys:
        if k in domains:
            levels.append(list(dict.fromkeys(domains[k])))
        else:
            levels.append(sorted(d[k].dropna().unique().tolist()))
    grid = pd.MultiIndex.from_product(levels, names=keys).to_frame(index=False)

    # categorical keys (service_type, day_of_week) join on their plain labels
    for k in keys:
        if isinstance(out[k].dtype, pd.CategoricalDtype):
            out[k] = out[k].astype("object")

    if out.empty:
        full = grid.reindex(columns=keys + STATISTICS)
    else:
        full = grid.merge(out, on=keys, how="left")
    absent = full["count"].isna()
    full.loc[absent, STATISTICS[1:]] = fill_value
    full["count"] = full["count"].fillna(0).astype("int64")
    return full[keys + STATISTICS]


def round_for_display(summary: pd.DataFrame, decimals: int = 1) -> pd.DataFrame:
    """Copy of a summary with mean/median/stddev rounded for tables."""
    out = summary.copy()
    for col in ("mean", "median", "stddev"):
        if col in out.columns:
            out[col] = out[col].astype("float64").round(decimals)
    return out


def summary_table(
    summary: pd.DataFrame,
    index: str,
    columns: str,
    value: str = "count",
) -> pd.DataFrame:
    """
    Pivot a two-key summary into a wide table, e.g. lines down the side and
    years across the top. Combination order from the summary is preserved.
    """
    for col in (index, columns, value):
        if col not in summary.columns:
            raise KeyError(f"summary has no column {col!r}")
    wide = summary.pivot(index=index, columns=columns, values=value)
    wide = wide.reindex(
        index=pd.unique(summary[index]), columns=pd.unique(summary[columns])
    )
    wide.columns.name = columns
    return wide


def overall_summary(records: pd.DataFrame) -> pd.DataFrame:
    """Single-row summary of min_delay across every record."""
    s = records["min_delay"].astype("float64")
    n = int(s.count())
    return pd.DataFrame(
        {
            "count": [n],
            "min": [s.min() if n else np.nan],
            "max": [s.max() if n else np.nan],
            "mean": [s.mean() if n else np.nan],
            "median": [s.median() if n else np.nan],
            "stddev": [s.std(ddof=1) if n > 1 else np.nan],
        }
    )
