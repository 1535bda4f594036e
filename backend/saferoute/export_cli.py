# backend/saferoute/export_cli.py
"""
One-shot export of the reports view, for cron jobs and printing outside the app.

    saferoute-export --status resolved --month March --year 2024 --out march.csv
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from saferoute import settings
from saferoute.models.report import ReportStatus
from saferoute.services.composer import ALL_MONTHS, ALL_YEARS
from saferoute.services.console import ReportsConsole
from saferoute.services.export import ExportDocument, NothingToExport, to_csv

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export the filtered SafeRoute reports view.")
    parser.add_argument("--status", "-s", default="pending", choices=[s.value for s in ReportStatus],
                        help="Status tab to export.")
    parser.add_argument("--search", default="", help="Free-text search term.")
    parser.add_argument("--barangay", "-b", default="All Barangays",
                        help="Barangay scope (super_admin only).")
    parser.add_argument("--month", default=ALL_MONTHS, help="Month name, e.g. March.")
    parser.add_argument("--year", default=ALL_YEARS, help="Four-digit year.")
    parser.add_argument("--sort", choices=["asc", "desc"], default="desc")
    parser.add_argument("--format", "-f", choices=["csv", "json"], default="csv")
    parser.add_argument("--out", "-o", default="-", help="Output path, '-' for stdout.")
    return parser


async def collect(console: ReportsConsole, args: argparse.Namespace) -> ExportDocument:
    await console.refresh()
    composer = console.composer
    composer.set_status_tab(args.status)
    composer.set_search_term(args.search)
    composer.set_region_scope(args.barangay)
    composer.set_month_year(args.month, args.year)
    composer.set_sort_order(args.sort)
    return console.export()


def render(doc: ExportDocument, fmt: str) -> str:
    if fmt == "json":
        return doc.model_dump_json(indent=2)
    return to_csv(doc)


def main(argv: Optional[List[str]] = None, console: Optional[ReportsConsole] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    args = build_parser().parse_args(argv)

    if console is None:
        from saferoute.db.adapters import DynamoDirectory, DynamoReportStore

        console = ReportsConsole(settings.session_from_env(), DynamoDirectory(), DynamoReportStore())

    try:
        doc = asyncio.run(collect(console, args))
    except NothingToExport as e:
        print(str(e), file=sys.stderr)
        return 1

    text = render(doc, args.format)
    if args.out == "-":
        sys.stdout.write(text)
    else:
        with open(args.out, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        log.info("wrote %d reports to %s", doc.total, args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
