#!/usr/bin/env python3
"""
=================================================
Monthly Report Import Pipeline
=================================================

Imports a Core Banking monthly operations report (PDF, Word or text) into
the report store:
1.  Ingestion: Extract the raw text of the document.
2.  Optimization: Keep only the report sections that carry figures.
3.  Confirmation: Show the trimmed content and token count before sending.
4.  Extraction: Ask the LLM for a structured JSON report.
5.  Validation: Check the structure of the returned report.
6.  Merge: Store the report under its MM/YYYY month and print the KPI trends.

The pipeline is configured through the `config.yaml` file.
"""

import argparse
import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv

from opsreport.config import load_config, setup_logging
from opsreport.cooldown import ApiCooldown, CooldownActiveError
from opsreport.extraction import ReportExtractor
from opsreport.ingestion import DocumentIngester, DocumentReadError, UnsupportedDocumentError
from opsreport.llm import LLMRateLimitError
from opsreport.reporting import DashboardExporter
from opsreport.store import ReportStore, InvalidMonthKeyError, parse_month_key
from opsreport.trends import compute_kpi_trends
from opsreport.validation import ReportValidator


def confirm(request) -> bool:
    print("\n" + "="*60 + "\nCONTENT TO BE SENT FOR ANALYSIS\n" + "="*60)
    print(request.content)
    print("="*60)
    print(f"Tokens: {request.token_count:,}" if request.token_count else "Tokens: N/A")
    answer = input("Send to the AI for analysis? [y/N]: ")
    return answer.strip().lower() in ("y", "yes")


def ask_month() -> str:
    return input("Analysis succeeded. Enter the month/year for this report (e.g. 03/2025): ").strip()


def main() -> int:
    """Main function to run the report import pipeline."""
    parser = argparse.ArgumentParser(description="Import a monthly operations report with AI extraction")
    parser.add_argument("document", type=Path, help="Report document (.pdf, .docx, .doc, .txt, .md)")
    parser.add_argument("--config", type=Path, default="config.yaml", help="Path to the configuration file (default: config.yaml)")
    parser.add_argument("--month", help="Month of the report as MM/YYYY. Prompted for when omitted.")
    parser.add_argument("--output-dir", type=Path, help="Override the output directory specified in the config file.")
    parser.add_argument("--save-optimized", action="store_true", help="Save the trimmed report text for review.")
    parser.add_argument("-y", "--yes", action="store_true", help="Send without the confirmation prompt.")
    parser.add_argument("--force", action="store_true", help="Store the report even if validation fails.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose DEBUG logging.")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        logging.error(f"Configuration file not found at: {args.config}")
        return 1
    except yaml.YAMLError as e:
        logging.error(f"Error parsing YAML configuration file: {e}")
        return 1

    setup_logging("DEBUG" if args.verbose else config.get("log_level", "INFO"))
    logger = logging.getLogger(__name__)
    logger.info(f"Configuration loaded from {args.config}")

    output_dir = Path(args.output_dir or config.get("output_directory", "output/"))
    store_path = Path(config.get("store", {}).get("path", "sample-data/reports.json"))
    cooldown_cfg = config.get("cooldown", {})
    cooldown = ApiCooldown(Path(cooldown_cfg.get("state_file", output_dir / ".api_cooldown.json")),
                           cooldown_cfg.get("seconds", 60))

    try:
        cooldown.check()
    except CooldownActiveError as e:
        logger.error(str(e))
        return 1

    if args.month:
        try:
            parse_month_key(args.month)
        except InvalidMonthKeyError as e:
            logger.error(str(e))
            return 1

    ingester = DocumentIngester(config)
    extractor = ReportExtractor(config)
    validator = ReportValidator(config)

    try:
        document = ingester.ingest_file(args.document)
    except FileNotFoundError:
        logger.error(f"Document not found: {args.document}")
        return 1
    except (UnsupportedDocumentError, DocumentReadError) as e:
        logger.error(f"Error while processing the file: {e}")
        return 1

    request = extractor.prepare(document)
    if args.save_optimized:
        DashboardExporter(config, output_dir).save_optimized_text(request.content)

    if not args.yes and not confirm(request):
        logger.info("Cancelled. Nothing was sent.")
        return 0

    cooldown.mark()
    try:
        report = extractor.run(request)
    except LLMRateLimitError:
        logger.error("Too many analysis requests in a short time. Please wait about a minute and try again.")
        return 1
    except Exception as e:
        logger.critical(f"An error occurred while analysing the report: {e}", exc_info=True)
        return 1

    summary = validator.validate(report)
    if not summary['is_valid']:
        for error in summary['errors']:
            logger.error(f"Validation error: {error}")
        if not args.force:
            logger.error("Report rejected. Use --force to store it anyway.")
            return 1

    month = args.month or ask_month()
    try:
        parse_month_key(month)
    except InvalidMonthKeyError as e:
        logger.error(str(e))
        return 1

    try:
        store = ReportStore.load(store_path)
    except InvalidMonthKeyError as e:
        logger.error(f"The report store contains an invalid month: {e}")
        return 1
    store.add(month, report)
    store.save(store_path)

    trends = compute_kpi_trends(store.get(month), store.previous_report(month))
    print("\n" + "="*60 + f"\nREPORT ADDED FOR {month}\n" + "="*60)
    for kpi, trend in trends.items():
        print(f"  - {kpi}: {trend or 'N/A'} vs previous month")
    print("="*60)

    logger.info("Pipeline finished successfully.")
    return 0


if __name__ == "__main__":
    load_dotenv()
    raise SystemExit(main())
