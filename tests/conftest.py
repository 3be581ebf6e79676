from __future__ import annotations

import pandas as pd
import pytest

from streetcar_delays.cleaning import clean
from streetcar_delays.roster import DEFAULT_ROSTER

TTC_HEADER = "Date,Line,Time,Day,Location,Incident,Min Delay,Min Gap,Bound,Vehicle\n"


def make_raw(rows) -> pd.DataFrame:
    """rows: iterable of (timestamp, line, delay_minutes[, day])."""
    rows = [tuple(r) + (None,) * (4 - len(r)) for r in rows]
    return pd.DataFrame(
        {
            "timestamp": pd.Series([r[0] for r in rows], dtype="object"),
            "line": pd.Series([r[1] for r in rows], dtype="object"),
            "delay_minutes": pd.Series([r[2] for r in rows], dtype="object"),
            "day": pd.Series([r[3] for r in rows], dtype="object"),
        }
    )


@pytest.fixture
def roster() -> dict[int, str]:
    return dict(DEFAULT_ROSTER)


@pytest.fixture
def raw_delays() -> pd.DataFrame:
    return make_raw(
        [
            ("2022-01-03 07:15:00", "504", 10, "Monday"),
            ("2022-01-03 08:40:00", "501", 25, "Monday"),
            ("2022-06-11 23:05:00", "306", 6, "Saturday"),
            ("2023-02-14 17:30:00", "508", 12, "Tuesday"),
            ("2023-02-14 18:00:00", "505", 1, "Tuesday"),  # below threshold
            ("2023-07-01 12:00:00", "512", 240, "Saturday"),  # above threshold
            ("2023-09-20 09:10:00", "999", 8, "Wednesday"),  # unknown line
            ("not a timestamp", "504", 8, "Monday"),  # malformed
            ("2024-03-05 06:45:00", "510", "n/a", "Tuesday"),  # malformed delay
            ("2024-03-05 06:50:00", "507", 2, "Tuesday"),
            ("2024-08-31 22:00:00", "310", 120, "Saturday"),
        ]
    )


@pytest.fixture
def cleaned(raw_delays, roster) -> pd.DataFrame:
    return clean(raw_delays, roster).records


@pytest.fixture
def raw_dir(tmp_path):
    d = tmp_path / "raw_data"
    d.mkdir()
    (d / "streetcar_delays2022.csv").write_text(
        TTC_HEADER
        + "2022-01-01,504,02:30,Saturday,King and Spadina,Operations,10,20,E,4401\n"
        + "2022-01-02,508,14:05,Sunday,Lake Shore and Kipling,Mechanical,4,8,W,4520\n"
        + "2022-01-02,301,03:10,Sunday,Queen and Broadview,Diversion,130,140,E,4412\n",
        encoding="utf-8",
    )
    (d / "ttc-streetcar-delay-data-2023.csv").write_text(
        TTC_HEADER
        + "2023-05-09,510,17:45,Tuesday,Spadina Station,Security,15,30,N,4499\n"
        + "bad date,510,17:45,Tuesday,Spadina Station,Security,15,30,N,4499\n",
        encoding="utf-8",
    )
    return d
