#!/usr/bin/env python3
# scripts/export_report.py
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from csv_utils import REPORT_COLUMNS, iter_csv
from filter_helpers import build_report_query
from query import filter_report
from upstream import UpstreamClient

logger = logging.getLogger("export_report")


def main() -> None:
    ap = argparse.ArgumentParser(description="Fetch borrow records from the upstream service and write the report as CSV.")
    ap.add_argument("--q", default="", help="Free-text search (borrow code, item, borrower, branch, department)")
    ap.add_argument("--status", default="", help="active / returned / overdue (default: all)")
    ap.add_argument("--date", default="", help="Loan date YYYY-MM-DD (default: all)")
    ap.add_argument("--out", default="-", help="Output file (default: stdout)")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    records = asyncio.run(UpstreamClient().list_borrows())
    query = build_report_query(args.q, args.status, args.date)
    rows = filter_report(records, query)
    logger.info("fetched=%s exported=%s", len(records), len(rows))

    if args.out == "-":
        sys.stdout.writelines(iter_csv(rows, REPORT_COLUMNS))
        return

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as fh:
        fh.writelines(iter_csv(rows, REPORT_COLUMNS))
    print(f"Wrote {len(rows)} rows to {out_path}")


if __name__ == "__main__":
    main()
