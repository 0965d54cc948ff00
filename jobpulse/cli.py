"""Command-line entry point: ``jobpulse search|stats|refresh``."""
from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Sequence

from jobpulse.aggregate.orchestrator import DEFAULT_LIMIT, AggregationReport
from jobpulse.core.extract import DEFAULT_LOCATION
from jobpulse.service import build_service

CSV_COLUMNS = [
    "rank", "title", "company", "location", "source", "posted_at",
    "salary", "employment_type", "synthetic", "url",
]


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.getenv("JOBPULSE_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _csv_rows(report: AggregationReport) -> List[dict]:
    rows = []
    for i, job in enumerate(report.jobs, start=1):
        rows.append({
            "rank": i,
            "title": job.title,
            "company": job.company or "",
            "location": job.location or "",
            "source": job.source_name,
            "posted_at": job.posted_at.isoformat() if isinstance(job.posted_at, datetime) else "",
            "salary": job.salary or "",
            "employment_type": job.employment_type.value if job.employment_type else "",
            "synthetic": job.synthetic,
            "url": job.source_url or "",
        })
    return rows


def write_csv(report: AggregationReport, path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as fcsv:
        writer = csv.DictWriter(fcsv, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(_csv_rows(report))


def print_report(report: AggregationReport) -> None:
    parts = [f"{s.name}={s.status}:{s.count}" for s in report.sources_queried]
    print("Sources: " + (", ".join(parts) or "(none)"))
    print(
        f"Summary: total_found={report.total_found} returned={len(report.jobs)} "
        f"cache_hits={report.cache_hits} fallback_used={report.fallback_used} elapsed_ms={report.elapsed_ms}"
    )
    for i, job in enumerate(report.jobs, start=1):
        posted = job.posted_at.date().isoformat() if job.posted_at else "-"
        flag = " [synthetic]" if job.synthetic else ""
        print(f"{i:>3}. {job.title} | {job.company or '-'} | {job.location or '-'} | {posted} | {job.source_name}{flag}")
        if job.source_url:
            print(f"     {job.source_url}")
    for rec in report.recommendations:
        print(f"Tip: {rec}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="jobpulse", description="South African job aggregator")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (overrides JOBPULSE_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_search = sub.add_parser("search", help="Aggregate jobs for keywords")
    p_search.add_argument("keywords", nargs="*", help="Search keywords")
    p_search.add_argument("--location", type=str, default=DEFAULT_LOCATION, help="City or province (default: South Africa)")
    p_search.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Max results to return")
    p_search.add_argument("--json", action="store_true", help="Print the full report as JSON")
    p_search.add_argument("--csv-out", type=str, default=None, help="Also write the ranked jobs to this CSV file")

    sub.add_parser("stats", help="Print source health, cache stats and compliance info as JSON")
    sub.add_parser("refresh", help="Refresh the cache with a synthetic batch")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    service = build_service()

    if args.command == "search":
        report = service.search_jobs(" ".join(args.keywords), args.location, args.limit)
        if args.json:
            print(report.model_dump_json(indent=2))
        else:
            print_report(report)
        if args.csv_out:
            write_csv(report, args.csv_out)
            print(f"CSV written to: {args.csv_out}", file=sys.stderr)
    elif args.command == "stats":
        print(json.dumps(service.get_stats(), indent=2, default=str))
    elif args.command == "refresh":
        service.refresh_cache()
        print(json.dumps(service.cache.stats()))
    return 0


if __name__ == "__main__":
    # When executed as `python -m jobpulse.cli ...`
    sys.exit(main())
