from streetcar_delays.cleaning import DAY_ORDER
from streetcar_delays.delay_features import (
    build_line_by_year,
    build_line_summary,
    build_month_by_year,
    build_report_tables,
)
from streetcar_delays.roster import DEFAULT_ROSTER

YEARS = [2022, 2023, 2024]


def test_report_tables_keys(cleaned, roster):
    tables = build_report_tables(cleaned, roster, years=YEARS)
    assert set(tables) == {
        "overall",
        "service_type_by_year",
        "line_by_year",
        "line_summary",
        "month_by_year",
        "day_of_week",
        "hour",
        "service_type_by_hour",
    }
    assert len(tables["service_type_by_year"]) == 3 * 3
    assert tables["day_of_week"]["day_of_week"].tolist() == DAY_ORDER
    assert len(tables["hour"]) == 24
    assert len(tables["service_type_by_hour"]) == 3 * 24
    assert tables["overall"].loc[0, "count"] == len(cleaned)


def test_line_by_year_covers_whole_roster(cleaned, roster):
    out = build_line_by_year(cleaned, roster, YEARS)
    assert len(out) == len(DEFAULT_ROSTER) * len(YEARS)
    assert out["count"].sum() == len(cleaned)

    row = out[(out["line"] == 507) & (out["year"] == 2022)].iloc[0]
    assert row["service_type"] == "Reduced"
    assert row["count"] == 0
    assert row["mean"] == 0


def test_line_summary_ordered_by_service_type(cleaned, roster):
    out = build_line_summary(cleaned, roster)
    assert out["service_type"].tolist()[:9] == ["Regular"] * 9
    assert out["line"].tolist()[9:11] == [507, 508]
    assert out["line"].tolist()[-5:] == [301, 304, 305, 306, 310]


def test_month_by_year_restricted_to_comparison_months(cleaned):
    out = build_month_by_year(cleaned, YEARS, months=range(1, 4))
    assert len(out) == 3 * 3
    assert set(out["month"]) == {1, 2, 3}
    # Jan 2022: lines 504 and 501
    jan_2022 = out[(out["year"] == 2022) & (out["month"] == 1)].iloc[0]
    assert jan_2022["count"] == 2
