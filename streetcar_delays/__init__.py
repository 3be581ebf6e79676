"""
streetcar_delays

Clean and summarize TTC streetcar delay logs (2022-2024).

Structure:
- delay_ingestion.py : reading the yearly raw files (I/O)
- cleaning.py        : raw rows -> cleaned analysis table
- aggregation.py     : grouped count/min/max/mean/median/stddev summaries
- delay_features.py  : the standard report tables
- run_analysis.py    : end-to-end batch runner / CLI
"""

__version__ = "0.1.0"
