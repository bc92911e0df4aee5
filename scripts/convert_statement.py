"""CLI script to convert a bank or credit card statement export.

Usage:
    python -m scripts.convert_statement "Axis 086 account statement.csv"
    python -m scripts.convert_statement icici_cc_current.csv --output ynab.csv --account "ICICI Amazon Pay"

Supports: ICICI Bank, ICICI credit card, Axis Bank, Axis credit card,
HDFC credit card and generic CSV exports (auto-detected).
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import get_settings
from parsers.csv_parser import import_statement
from services.exceptions import InvalidDataError
from services.exporter import render_preview, to_csv_text
from services.mapper import TransactionMapper


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a bank statement export into a YNAB-style CSV."
    )
    parser.add_argument("statement_file", help="Path to the statement export")
    parser.add_argument("--output", "-o", default="", help="Write the CSV extract here")
    parser.add_argument("--account", default="", help="Account name stamped on every transaction")
    parser.add_argument(
        "--preview", type=int, default=None, help="Number of preview rows to print"
    )
    parser.add_argument(
        "--no-header", action="store_true", help="Omit the header row from the output"
    )
    parser.add_argument(
        "--sanitize", action="store_true", help="Strip special characters from payee/memo"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # Setup logging
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    statement_path = Path(args.statement_file)
    if not statement_path.exists():
        print(f"❌ File not found: {statement_path}")
        return 1

    print(f"📂 Converting: {statement_path.name}")

    mapper = TransactionMapper(settings=settings, account_name=args.account)
    try:
        result = import_statement(str(statement_path), mapper=mapper, settings=settings)
    except InvalidDataError as e:
        print(f"❌ {e}")
        return 1

    transactions = result["transactions"]
    include_header = not args.no_header

    # Print summary
    print(f"\n🏦 Format detected: {result['dialect']}")
    if result["fallback"]:
        print(f"⚠️  Mapped using fallback format: {result['mapping']}")
    print(f"✅ Transactions: {len(transactions)}")
    if result["skipped"] > 0:
        print(f"⏭️  Skipped rows: {result['skipped']}")

    preview_rows = args.preview if args.preview is not None else settings.preview_rows
    print()
    for line in render_preview(
        transactions,
        include_header=include_header,
        sanitize=True,
        max_rows=preview_rows,
        date_format=settings.export_date_format,
    ):
        print(line)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(
            to_csv_text(
                transactions,
                include_header=include_header,
                sanitize=args.sanitize,
                date_format=settings.export_date_format,
            ),
            encoding="utf-8",
        )
        print(f"\n💾 Wrote {len(transactions)} transactions to {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
