"""
run_analysis.py

End-to-end batch pipeline:
1. Read the yearly raw streetcar delay files (data/raw_data/).
2. Clean them into one analysis table and report rejected rows.
3. Write the cleaned table (data/analysis_data/cleaned_streetcar_delays.csv).
4. Build the summary tables and print a preview (optionally save as CSV).

Recommended:
    python -m streetcar_delays.run_analysis
    streetcar-delays --years 2022 2023 2024 --tables-dir data/analysis_data/tables
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from streetcar_delays import config
from streetcar_delays.aggregation import round_for_display, summary_table
from streetcar_delays.cleaning import clean, write_cleaned
from streetcar_delays.delay_features import build_report_tables
from streetcar_delays.delay_ingestion import load_raw_delays
from streetcar_delays.errors import StreetcarDelayError
from streetcar_delays.log_format import configure_logging
from streetcar_delays.roster import DEFAULT_ROSTER, load_roster

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="streetcar-delays",
        description="Clean TTC streetcar delay logs and build summary tables.",
    )
    p.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="data directory holding raw_data/ and analysis_data/ (default: repo data/)",
    )
    p.add_argument(
        "--years", type=int, nargs="+", default=list(config.YEARS), help="years to load"
    )
    p.add_argument(
        "--roster",
        type=Path,
        default=None,
        help="CSV with line,service_type columns (default: built-in roster)",
    )
    p.add_argument("--output", type=Path, default=None, help="cleaned CSV path")
    p.add_argument(
        "--tables-dir", type=Path, default=None, help="also write every summary table here as CSV"
    )
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    p.add_argument("--json-logs", action="store_true", help="emit single-line JSON logs")
    return p


def run(
    data_dir: Path,
    years: list[int],
    roster: dict[int, str],
    output: Path,
    tables_dir: Path | None = None,
) -> dict[str, pd.DataFrame]:
    """Run the whole pipeline and return the summary tables."""
    raw = load_raw_delays(years, raw_dir=data_dir / config.RAW_SUBDIR)
    result = clean(raw, roster)
    write_cleaned(result.records, output)

    tables = build_report_tables(result.records, roster, years=years)

    if tables_dir is not None:
        tables_dir.mkdir(parents=True, exist_ok=True)
        for name, df in tables.items():
            df.to_csv(tables_dir / f"{name}.csv", index=False)
        logger.info("Wrote %d summary tables to %s", len(tables), tables_dir)

    return tables


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level, json_logs=args.json_logs)

    data_dir = args.data_dir if args.data_dir is not None else config.DATA_DIR
    output = (
        args.output
        if args.output is not None
        else data_dir / config.ANALYSIS_SUBDIR / config.CLEANED_CSV
    )

    try:
        roster = load_roster(args.roster) if args.roster is not None else dict(DEFAULT_ROSTER)
        tables = run(data_dir, args.years, roster, output, args.tables_dir)
    except (StreetcarDelayError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 2

    print("=== Overall ===")
    print(round_for_display(tables["overall"]).to_string(index=False))

    print("\n=== Delays by service type and year (count) ===")
    print(summary_table(tables["service_type_by_year"], "service_type", "year"))

    print("\n=== Delays by line and year (count) ===")
    print(summary_table(tables["line_by_year"], "line", "year"))

    print("\n=== Mean delay by line and year (minutes) ===")
    print(summary_table(round_for_display(tables["line_by_year"]), "line", "year", value="mean"))

    print("\n=== Day-of-week profile ===")
    print(round_for_display(tables["day_of_week"]).to_string(index=False))

    print(f"\n[OK] Cleaned table written to: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
