#!/usr/bin/env python3
"""
Export Dashboard - Monthly KPI Dashboard Export

Reads the report store, computes month-over-month KPI trends for the
selected month and writes the dashboard as JSON, a KPI CSV and a
multi-sheet Excel workbook.
"""

import argparse
import logging
from pathlib import Path

import yaml

from opsreport.config import load_config, setup_logging
from opsreport.historical import HistoricalData
from opsreport.reporting import DashboardExporter
from opsreport.store import ReportStore, InvalidMonthKeyError
from opsreport.trends import compute_kpi_trends


def main() -> int:
    parser = argparse.ArgumentParser(description="Export the monthly operations dashboard")
    parser.add_argument("--config", type=Path, default="config.yaml", help="Path to the configuration file (default: config.yaml)")
    parser.add_argument("--month", help="Month to export as MM/YYYY (default: latest)")
    parser.add_argument("--output-dir", type=Path, help="Override the output directory specified in the config file.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose DEBUG logging.")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, yaml.YAMLError) as e:
        logging.error(f"Could not load configuration {args.config}: {e}")
        return 1

    setup_logging("DEBUG" if args.verbose else config.get("log_level", "INFO"))
    logger = logging.getLogger("export_runner")

    try:
        store = ReportStore.load(Path(config.get("store", {}).get("path", "sample-data/reports.json")))
    except InvalidMonthKeyError as e:
        logger.error(f"The report store contains an invalid month: {e}")
        return 1
    if not len(store):
        logger.error("The report store is empty. Import a report first.")
        return 1

    month = args.month or store.latest_month()
    if month not in store:
        logger.error(f"No report for {month}. Available months: {', '.join(store.months())}")
        return 1

    historical = None
    historical_path = config.get("store", {}).get("historical_path")
    if historical_path and Path(historical_path).exists():
        historical = HistoricalData.load(Path(historical_path))
    else:
        logger.warning("No historical data file configured. Skipping historical sheets.")

    report = store.get(month)
    previous_month = store.previous_month(month)
    trends = compute_kpi_trends(report, store.previous_report(month))

    output_dir = Path(args.output_dir or config.get("output_directory", "output/"))
    exporter = DashboardExporter(config, output_dir)
    try:
        paths = exporter.export_all(month, report, trends, historical)
    except Exception as e:
        logger.critical(f"Dashboard export failed: {e}", exc_info=True)
        return 1

    print("\n" + "="*60 + f"\nDASHBOARD EXPORT COMPLETE - {month}\n" + "="*60)
    print(f"  - Compared against: {previous_month or 'N/A'}")
    for kpi, trend in trends.items():
        print(f"  - {kpi}: {trend or 'N/A'}")
    for path in paths:
        print(f"  - Saved: {path}")
    print("="*60)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
