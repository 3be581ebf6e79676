import numpy as np
import pandas as pd
import pytest

from conftest import make_raw
from streetcar_delays.aggregation import (
    DIMENSIONS,
    STATISTICS,
    add_dimensions,
    aggregate,
    overall_summary,
    restrict_to_period,
    restrict_to_years,
    round_for_display,
    summary_table,
)
from streetcar_delays.cleaning import clean
from streetcar_delays.errors import InvalidDimension


@pytest.fixture
def two_service_types(roster):
    raw = make_raw(
        [
            ("2022-02-01 08:00:00", "504", 4),
            ("2022-05-01 09:00:00", "501", 6),
            ("2022-09-01 10:00:00", "505", 11),
            ("2022-03-01 01:00:00", "306", 5),
            ("2022-03-02 02:30:00", "310", 9),
        ]
    )
    return clean(raw, roster).records


def test_group_by_service_type_and_year(two_service_types):
    out = aggregate(two_service_types, ["service_type", "year"])

    assert list(out.columns) == ["service_type", "year"] + STATISTICS
    assert out["service_type"].astype(str).tolist() == ["Regular", "Night"]
    assert out["year"].tolist() == [2022, 2022]
    assert out["count"].tolist() == [3, 2]

    regular = out.iloc[0]
    assert regular["min"] == 4
    assert regular["max"] == 11
    assert regular["mean"] == pytest.approx(7.0)
    assert regular["median"] == 6
    assert regular["stddev"] == pytest.approx(np.std([4, 6, 11], ddof=1))


def test_completion_fills_missing_line_year(roster):
    raw = make_raw(
        [
            ("2023-04-01 08:00:00", "507", 10),
            ("2022-04-01 08:00:00", "508", 5),
            ("2023-04-01 09:00:00", "508", 7),
        ]
    )
    records = clean(raw, roster).records
    out = aggregate(
        records,
        ["line", "year"],
        complete_over={"line": [507, 508], "year": [2022, 2023]},
    )

    assert len(out) == 4
    assert list(zip(out["line"], out["year"])) == [
        (507, 2022),
        (507, 2023),
        (508, 2022),
        (508, 2023),
    ]
    missing = out[(out["line"] == 507) & (out["year"] == 2022)].iloc[0]
    assert missing["count"] == 0
    for stat in ["min", "max", "mean", "median", "stddev"]:
        assert missing[stat] == 0


def test_completion_cardinality_ignores_present_partitions(cleaned):
    lines = [501, 504, 506, 507]
    years = [2022, 2023, 2024]
    out = aggregate(cleaned, ["line", "year"], complete_over={"line": lines, "year": years})
    assert len(out) == len(lines) * len(years)
    assert set(out["line"]) == set(lines)


def test_completion_with_nan_marker(cleaned):
    out = aggregate(
        cleaned, ["hour"], complete_over={"hour": range(24)}, fill_value=np.nan
    )
    assert len(out) == 24
    empty = out[out["count"] == 0]
    assert not empty.empty
    assert empty[["min", "max", "mean", "median", "stddev"]].isna().all().all()


def test_completion_over_categorical_dimension(cleaned):
    days = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
    out = aggregate(cleaned, ["day_of_week"], complete_over={"day_of_week": days})
    assert out["day_of_week"].tolist() == days
    assert out["count"].sum() == len(cleaned)


def test_partial_completion_uses_observed_values(cleaned):
    out = aggregate(
        cleaned, ["service_type", "year"], complete_over={"year": [2022, 2023, 2024]}
    )
    assert len(out) == 3 * cleaned["service_type"].nunique()


def test_counts_add_up_by_line(cleaned):
    out = aggregate(cleaned, ["line"])
    assert out["count"].sum() == len(cleaned)


def test_single_record_group_has_no_stddev(cleaned):
    out = aggregate(cleaned, ["line"])
    assert (out["count"] == 1).any()
    assert out.loc[out["count"] == 1, "stddev"].isna().all()


def test_empty_records_give_empty_summary(cleaned):
    out = aggregate(cleaned.iloc[0:0], ["line", "month"])
    assert out.empty
    assert list(out.columns) == ["line", "month"] + STATISTICS


def test_empty_records_with_completion(cleaned):
    out = aggregate(
        cleaned.iloc[0:0], ["line", "year"], complete_over={"line": [507], "year": [2022, 2023]}
    )
    assert out["count"].tolist() == [0, 0]
    assert (out["mean"] == 0).all()


def test_unknown_dimension(cleaned):
    with pytest.raises(InvalidDimension) as err:
        aggregate(cleaned, ["line", "route"])
    assert err.value.name == "route"


def test_no_dimension(cleaned):
    with pytest.raises(InvalidDimension):
        aggregate(cleaned, [])


def test_completion_key_must_be_grouped(cleaned):
    with pytest.raises(InvalidDimension):
        aggregate(cleaned, ["line"], complete_over={"year": [2022]})


def test_duplicate_keys_collapse(cleaned):
    out = aggregate(cleaned, ["year", "year"])
    assert list(out.columns) == ["year"] + STATISTICS


def test_add_dimensions_does_not_touch_input(cleaned):
    before = cleaned.copy()
    d = add_dimensions(cleaned, DIMENSIONS)
    assert {"year", "month", "hour"} <= set(d.columns)
    pd.testing.assert_frame_equal(cleaned, before)


def test_restrict_to_period(cleaned):
    jan_aug = restrict_to_period(cleaned, 1, 8)
    assert jan_aug["date"].dt.month.between(1, 8).all()
    assert len(jan_aug) == len(cleaned)

    with pytest.raises(ValueError):
        restrict_to_period(cleaned, 9, 3)


def test_restrict_to_years(cleaned):
    out = restrict_to_years(cleaned, [2024])
    assert out["date"].dt.year.eq(2024).all()
    assert len(out) == 2


def test_round_for_display(two_service_types):
    out = round_for_display(aggregate(two_service_types, ["service_type"]))
    night = out[out["service_type"] == "Night"].iloc[0]
    assert night["stddev"] == 2.8


def test_summary_table(cleaned):
    summary = aggregate(
        cleaned, ["line", "year"], complete_over={"line": [504, 507], "year": [2022, 2024]}
    )
    wide = summary_table(summary, "line", "year")
    assert wide.loc[504, 2022] == 1
    assert wide.loc[507, 2022] == 0
    assert list(wide.columns) == [2022, 2024]


def test_overall_summary(cleaned):
    out = overall_summary(cleaned)
    assert out.loc[0, "count"] == len(cleaned)
    assert out.loc[0, "max"] == 120
